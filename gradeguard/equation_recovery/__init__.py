from gradeguard.equation_recovery.base import BaseEquationRecoverer
from gradeguard.equation_recovery.factory import EquationRecovererFactory
from gradeguard.equation_recovery.recoverer import EquationRecoverer

__all__ = ["BaseEquationRecoverer", "EquationRecoverer", "EquationRecovererFactory"]
