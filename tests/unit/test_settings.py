from pathlib import Path

import pytest
from pydantic import ValidationError

from aegis.config.settings import Settings


def _settings() -> Settings:
    return Settings(_env_file=None)  # type: ignore[call-arg]


class TestSettingsDefaults:
    def test_default_app_env(self) -> None:
        assert _settings().app_env == "dev"

    def test_default_storage(self) -> None:
        s = _settings()
        assert s.storage_backend == "file"
        assert s.storage_dir == Path(".aegis")

    def test_default_limits(self) -> None:
        s = _settings()
        assert s.task_history_limit == 50
        assert s.content_persist_limit_bytes == 500_000
        assert s.audit_log_cap == 2000
        assert s.analysis_size_limit_bytes == 4_000_000

    def test_default_timings(self) -> None:
        s = _settings()
        assert s.upload_delay_seconds == 0.8
        assert s.analysis_skip_delay_seconds == 1.0
        assert s.sanitize_total_seconds == 3.0

    def test_default_pdf_engine(self) -> None:
        assert _settings().pdf_engine == "pymupdf"

    def test_default_analysis_provider(self) -> None:
        assert _settings().analysis_provider == "example"


class TestSettingsFromEnv:
    def test_loads_storage_backend(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("STORAGE_BACKEND", "postgres")
        assert _settings().storage_backend == "postgres"

    def test_loads_db_port(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DB_PORT", "5433")
        assert _settings().db_port == 5433

    def test_loads_float_delay(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("UPLOAD_DELAY_SECONDS", "0")
        assert _settings().upload_delay_seconds == 0.0

    def test_reads_env_file(self, tmp_path: Path) -> None:
        env_file = tmp_path / ".env"
        env_file.write_text("ANALYSIS_PROVIDER=openai\nUNRELATED_KEY=1\n", encoding="utf-8")
        s = Settings(_env_file=env_file)  # type: ignore[call-arg]
        assert s.analysis_provider == "openai"


class TestSettingsValidation:
    def test_invalid_db_port_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DB_PORT", "not_a_number")
        with pytest.raises(ValidationError):
            _settings()

    def test_invalid_quota_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("STORAGE_QUOTA_BYTES", "lots")
        with pytest.raises(ValidationError):
            _settings()
