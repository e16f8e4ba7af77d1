from pathlib import Path

from gradeguard.equation_recovery.exceptions import EquationRecoveryError

_DEFAULT_PROMPT_DIR = Path(__file__).parent / "prompts"


def load_prompt_template(path: Path | None = None) -> str:
    """Load the equation recovery prompt template.

    Defaults to the bundled equation_prompt.txt.

    Raises:
        EquationRecoveryError: if the file cannot be read.
    """
    if path is None:
        path = _DEFAULT_PROMPT_DIR / "equation_prompt.txt"
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise EquationRecoveryError(f"Failed to load prompt template: {exc}") from exc


def load_json_schema(path: Path | None = None) -> str:
    """Load the response JSON schema, by default the bundled equation_schema.json.

    Raises:
        EquationRecoveryError: if the file cannot be read.
    """
    if path is None:
        path = _DEFAULT_PROMPT_DIR / "equation_schema.json"
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise EquationRecoveryError(f"Failed to load JSON schema: {exc}") from exc
