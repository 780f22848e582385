"""Reentrancy detector — SWC-107.

A function is flagged when one of its external calls is followed, later
in source order, by a write to state. The Checks-Effects-Interactions
ordering is the only signal: there is no data or taint flow behind it.
"""

from __future__ import annotations

from solshield.analyzer.base_detector import VulnerabilityDetector
from solshield.core.model import ContractModel
from solshield.core.types import Severity, Vulnerability, VulnerabilityKind


class ReentrancyDetector(VulnerabilityDetector):
    """Detect external calls made before state updates."""

    DETECTOR_ID = "VULN-REENT-001"
    NAME = "Reentrancy"
    DESCRIPTION = (
        "Detects functions that make an external call (call, send, transfer, "
        "delegatecall, staticcall) before updating state. An attacker can "
        "re-enter the function from a fallback/receive hook before the state "
        "is updated."
    )
    SEVERITY = Severity.CRITICAL
    CATEGORY = "reentrancy"
    KIND = VulnerabilityKind.REENTRANCY
    PATTERN = "Reentrancy (SWC-107)"
    REMEDIATION = (
        "Move state changes before the external call "
        "(Checks-Effects-Interactions pattern), or use a reentrancy guard"
    )

    def detect(self, model: ContractModel) -> list[Vulnerability]:
        findings: list[Vulnerability] = []

        for fn in model.functions:
            for call in fn.external_calls:
                later = [sc.line for sc in fn.state_changes if sc.line > call.line]
                if not later:
                    continue

                lines = ", ".join(str(line) for line in later)
                findings.append(self._make_finding(
                    id=f"reentrancy_{fn.name}",
                    title=f"Reentrancy in {fn.name}()",
                    description=(
                        f"External call ({call.kind}) at line {call.line} occurs BEFORE "
                        f"state updates at line(s) {lines}. An attacker can re-enter "
                        "this function before state is updated."
                    ),
                    function=fn.name,
                    line=call.line,
                    call_kind=call.kind,
                    related_lines=later,
                ))
                # One finding per function, citing the earliest offending call
                break

        return findings
