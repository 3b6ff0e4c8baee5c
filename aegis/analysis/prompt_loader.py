from pathlib import Path

from aegis.analysis.exceptions import ThreatAnalysisError

_DEFAULT_PROMPT_DIR = Path(__file__).parent / "prompts"


def load_prompt_template(path: Path | None = None) -> str:
    """Load the threat analysis prompt template from a file.

    Args:
        path: Path to the prompt template file.
              Defaults to the bundled threat_analysis_prompt.txt.

    Returns:
        The raw template string with a ``{filename}`` placeholder.

    Raises:
        ThreatAnalysisError: if the file cannot be read.
    """
    if path is None:
        path = _DEFAULT_PROMPT_DIR / "threat_analysis_prompt.txt"
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ThreatAnalysisError(f"Failed to load prompt template: {exc}") from exc
