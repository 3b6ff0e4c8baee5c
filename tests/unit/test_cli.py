from collections.abc import Iterator
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from aegis.main import aegis


@pytest.fixture()
def runner(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[CliRunner]:
    monkeypatch.chdir(tmp_path)
    env = {
        "STORAGE_BACKEND": "file",
        "STORAGE_DIR": str(tmp_path / "state"),
        "UPLOAD_DELAY_SECONDS": "0",
        "ANALYSIS_SKIP_DELAY_SECONDS": "0",
        "SANITIZE_TOTAL_SECONDS": "0",
        "ANALYSIS_PROVIDER": "example",
        "PDF_ENGINE": "pymupdf",
    }
    with patch("aegis.main.Log.configure"):
        yield CliRunner(env=env)


def _write(tmp_path: Path, name: str, content: bytes) -> Path:
    path = tmp_path / name
    path.write_bytes(content)
    return path


class TestSanitizeCommand:
    def test_sanitizes_and_writes_artifacts(self, runner: CliRunner, tmp_path: Path) -> None:
        notes = _write(tmp_path, "notes.txt", b"hello")
        song = _write(tmp_path, "song.mp3", b"ID3")
        out = tmp_path / "out"

        result = runner.invoke(aegis, ["sanitize", str(notes), str(song), "--output-dir", str(out)])

        assert result.exit_code == 0, result.output
        assert "COMPLETED" in result.output
        assert (out / "notes_safe.pdf").read_bytes().startswith(b"%PDF")
        assert (out / "song_safe.mp3").read_bytes().startswith(b"AEGIS CDR - SAFE MEDIA WRAPPER")

    def test_unknown_file_fails_with_report(self, runner: CliRunner, tmp_path: Path) -> None:
        blob = _write(tmp_path, "blob.xyz", b"\x00\x01")
        out = tmp_path / "out"

        result = runner.invoke(aegis, ["sanitize", str(blob), "--output-dir", str(out)])

        assert result.exit_code == 0, result.output
        assert "FAILED" in result.output
        report = (out / "safe_file").read_text(encoding="utf-8")
        assert "Status: FAILED" in report

    def test_missing_path_is_rejected(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(aegis, ["sanitize", str(tmp_path / "missing.txt")])
        assert result.exit_code != 0


class TestHistoryAndLogs:
    def test_history_is_empty_initially(self, runner: CliRunner) -> None:
        result = runner.invoke(aegis, ["history"])
        assert result.exit_code == 0
        assert "No tasks recorded." in result.output

    def test_history_lists_sanitized_tasks(self, runner: CliRunner, tmp_path: Path) -> None:
        notes = _write(tmp_path, "notes.txt", b"hello")
        runner.invoke(aegis, ["sanitize", str(notes), "--output-dir", str(tmp_path / "out")])

        result = runner.invoke(aegis, ["history"])

        assert result.exit_code == 0
        assert "notes.txt" in result.output
        assert "notes_safe.pdf" in result.output

    def test_logs_show_pipeline_activity(self, runner: CliRunner, tmp_path: Path) -> None:
        notes = _write(tmp_path, "notes.txt", b"hello")
        runner.invoke(aegis, ["sanitize", str(notes), "--output-dir", str(tmp_path / "out")])

        result = runner.invoke(aegis, ["logs", "--limit", "100"])

        assert result.exit_code == 0
        assert "Batch upload started: 1 files" in result.output
        assert "File reconstruction successful" in result.output

    def test_logs_search_filters_entries(self, runner: CliRunner, tmp_path: Path) -> None:
        notes = _write(tmp_path, "notes.txt", b"hello")
        runner.invoke(aegis, ["sanitize", str(notes), "--output-dir", str(tmp_path / "out")])

        result = runner.invoke(aegis, ["logs", "--search", "BATCH UPLOAD"])

        assert result.exit_code == 0, result.output
        lines = result.output.strip().splitlines()
        assert len(lines) == 1
        assert "Batch upload started: 1 files" in lines[0]

    def test_clear_commands(self, runner: CliRunner, tmp_path: Path) -> None:
        notes = _write(tmp_path, "notes.txt", b"hello")
        runner.invoke(aegis, ["sanitize", str(notes), "--output-dir", str(tmp_path / "out")])

        assert runner.invoke(aegis, ["clear-history"]).exit_code == 0
        assert "No tasks recorded." in runner.invoke(aegis, ["history"]).output

        assert runner.invoke(aegis, ["clear-logs"]).exit_code == 0
        assert runner.invoke(aegis, ["logs"]).output == ""


class TestExportCommand:
    def test_exports_finished_task(self, runner: CliRunner, tmp_path: Path) -> None:
        notes = _write(tmp_path, "notes.txt", b"hello")
        runner.invoke(aegis, ["sanitize", str(notes), "--output-dir", str(tmp_path / "out")])
        task_id = runner.invoke(aegis, ["history"]).output.split()[0]
        again = tmp_path / "again"

        result = runner.invoke(aegis, ["export", task_id, "--output-dir", str(again)])

        assert result.exit_code == 0, result.output
        assert (again / "notes_safe.pdf").exists()

    def test_unknown_task_id(self, runner: CliRunner) -> None:
        result = runner.invoke(aegis, ["export", "does-not-exist"])
        assert result.exit_code == 1
        assert "Task does-not-exist not found" in result.output
