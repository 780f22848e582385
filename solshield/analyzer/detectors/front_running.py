"""Front-running detector — SWC-114."""

from __future__ import annotations

from solshield.analyzer.base_detector import VulnerabilityDetector
from solshield.core.model import ContractModel
from solshield.core.types import Severity, Vulnerability, VulnerabilityKind


class ApproveFrontRunDetector(VulnerabilityDetector):
    """Flag approve() by name and arity.

    The minimum parameter count comes from settings
    (``frontrun_approve_min_params``).
    """

    DETECTOR_ID = "VULN-MEV-001"
    NAME = "approve() Front-Running"
    DESCRIPTION = (
        "Changing an allowance with approve() lets the spender front-run "
        "the update and spend both the old and the new allowance."
    )
    SEVERITY = Severity.MEDIUM
    CATEGORY = "front_running"
    KIND = VulnerabilityKind.FRONT_RUNNING
    PATTERN = "Front-Running (SWC-114)"
    REMEDIATION = "Add increaseAllowance() and decreaseAllowance() functions as safer alternatives"

    def detect(self, model: ContractModel) -> list[Vulnerability]:
        min_params = self.settings.frontrun_approve_min_params
        return [
            self._make_finding(
                id="frontrun_approve",
                title="Front-Running Risk on approve()",
                description=(
                    "approve() is vulnerable to front-running. Consider implementing "
                    "increaseAllowance/decreaseAllowance pattern."
                ),
                function=fn.name,
                line=fn.line,
            )
            for fn in model.functions
            if fn.name == "approve" and len(fn.parameters) >= min_params
        ]
