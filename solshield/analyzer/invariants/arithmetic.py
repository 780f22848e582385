"""Arithmetic invariants."""

from __future__ import annotations

from solshield.analyzer.base_detector import InvariantDetector
from solshield.core.model import ContractModel
from solshield.core.types import Invariant, Severity

_SUBTRACTION_OPERATORS = ("-=", "-")


class UnderflowReviewDetector(InvariantDetector):
    """One underflow-review claim for the first function that subtracts from state."""

    DETECTOR_ID = "INV-ARITH-001"
    NAME = "Underflow Review"
    DESCRIPTION = "State mutated by subtraction should be reviewed for underflow."
    SEVERITY = Severity.MEDIUM
    CATEGORY = "arithmetic"

    def detect(self, model: ContractModel) -> list[Invariant]:
        for fn in model.functions:
            if any(sc.operator in _SUBTRACTION_OPERATORS for sc in fn.state_changes):
                return [self._make_invariant(
                    id=f"underflow_{fn.name}",
                    title=f"Underflow Protection in {fn.name}()",
                    description=(
                        f"{fn.name}() performs subtraction - verify no underflow is possible"
                    ),
                    pattern="Arithmetic safety",
                )]
        return []
