from dataclasses import dataclass, field

from gradeguard.extraction.models import Equation


@dataclass(frozen=True)
class RecoveredEquation:
    """LaTeX returned by the recogniser for one equation id."""

    id: str
    latex: str
    confidence: float


@dataclass(frozen=True)
class RecoveryResult:
    equations: list[Equation]
    attempted_ids: list[str] = field(default_factory=list)
    recovered_ids: list[str] = field(default_factory=list)
    ignored_ids: list[str] = field(default_factory=list)
