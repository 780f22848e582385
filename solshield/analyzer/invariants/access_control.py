"""Access-control and pausable invariants."""

from __future__ import annotations

from solshield.analyzer.base_detector import InvariantDetector
from solshield.core.model import ContractModel
from solshield.core.types import Invariant, Severity

OWNER_VAR_NAMES = ("owner", "_owner", "admin")
OWNER_MODIFIERS = frozenset({"onlyOwner", "onlyAdmin", "onlyRole"})
PAUSE_VAR_NAMES = ("paused", "_paused")
PAUSE_MODIFIERS = frozenset({"whenNotPaused", "whenPaused"})


class AccessControlInvariantDetector(InvariantDetector):
    DETECTOR_ID = "INV-ACL-001"
    NAME = "Access Control Invariants"
    DESCRIPTION = "Owner immutability and enforcement of owner-style modifiers."
    SEVERITY = Severity.HIGH
    CATEGORY = "access_control"

    def detect(self, model: ContractModel) -> list[Invariant]:
        owner_var = model.find_state_var(OWNER_VAR_NAMES)
        if owner_var is None:
            return []

        invariants = [
            self._make_invariant(
                id="owner_immutable",
                title="Owner Cannot Be Accidentally Changed",
                description=f"{owner_var.name} should only change through authorized functions",
                pattern="Access control",
            )
        ]

        protected = [f.name for f in model.functions if f.has_modifier(OWNER_MODIFIERS)]
        if protected:
            invariants.append(self._make_invariant(
                id="access_control_enforced",
                title="Access Control Enforcement",
                description=(
                    f"Protected functions [{', '.join(protected)}] "
                    "must revert when called by non-owner"
                ),
                pattern="Access control",
            ))

        return invariants


class PausableInvariantDetector(InvariantDetector):
    DETECTOR_ID = "INV-ACL-002"
    NAME = "Pausable Enforcement"
    DESCRIPTION = "Pause-guarded functions must revert while paused."
    SEVERITY = Severity.HIGH
    CATEGORY = "access_control"

    def detect(self, model: ContractModel) -> list[Invariant]:
        if model.find_state_var(PAUSE_VAR_NAMES) is None:
            return []

        guarded = [f.name for f in model.functions if f.has_modifier(PAUSE_MODIFIERS)]
        if not guarded:
            return []

        return [
            self._make_invariant(
                id="pausable_enforcement",
                title="Pause Mechanism Enforcement",
                description=f"When paused, functions [{', '.join(guarded)}] must revert",
                pattern="Pausable",
            )
        ]
