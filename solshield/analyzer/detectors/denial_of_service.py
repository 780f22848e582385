"""Denial of service detector — SWC-113.

Counts external call sites per function. Loops are not inspected.
"""

from __future__ import annotations

from solshield.analyzer.base_detector import VulnerabilityDetector
from solshield.core.model import ContractModel
from solshield.core.types import Severity, Vulnerability, VulnerabilityKind


class MultipleExternalCallsDetector(VulnerabilityDetector):
    DETECTOR_ID = "VULN-DOS-001"
    NAME = "Multiple External Calls"
    DESCRIPTION = (
        "A function making several external calls reverts entirely when "
        "any one of them fails."
    )
    SEVERITY = Severity.MEDIUM
    CATEGORY = "denial_of_service"
    KIND = VulnerabilityKind.DENIAL_OF_SERVICE
    PATTERN = "DoS with Failed Call (SWC-113)"
    REMEDIATION = (
        "Consider using a pull-over-push pattern or handling each call's "
        "failure independently"
    )

    def detect(self, model: ContractModel) -> list[Vulnerability]:
        threshold = self.settings.dos_external_call_threshold
        findings: list[Vulnerability] = []
        for fn in model.functions:
            count = len(fn.external_calls)
            if count <= threshold:
                continue
            findings.append(self._make_finding(
                id=f"dos_multiple_calls_{fn.name}",
                title=f"Multiple External Calls in {fn.name}()",
                description=(
                    f"{fn.name}() makes {count} external calls. "
                    "If any fails, the entire transaction reverts."
                ),
                function=fn.name,
                line=fn.line,
                related_lines=[c.line for c in fn.external_calls],
            ))
        return findings
