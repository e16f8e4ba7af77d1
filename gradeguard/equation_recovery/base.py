from abc import ABC, abstractmethod
from collections.abc import Sequence

from gradeguard.equation_recovery.models import RecoveryResult
from gradeguard.extraction.models import Equation


class BaseEquationRecoverer(ABC):
    """Contract for equation recovery implementations."""

    @abstractmethod
    def recover(self, equations: Sequence[Equation], page_texts: Sequence[str]) -> RecoveryResult:
        """Re-recognise weak equations.

        Args:
            equations: Every equation found in the document.
            page_texts: Normalized text per page, used as context.

        Returns:
            RecoveryResult with the full (merged) equation list.

        Raises:
            EquationRecoveryError: on any failure.
        """
