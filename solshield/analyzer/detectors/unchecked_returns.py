"""Unchecked return value detector — SWC-104."""

from __future__ import annotations

from solshield.analyzer.base_detector import VulnerabilityDetector
from solshield.core.model import ContractModel
from solshield.core.types import Severity, Vulnerability, VulnerabilityKind


class UncheckedSendDetector(VulnerabilityDetector):
    """Detect send() calls whose boolean result is discarded."""

    DETECTOR_ID = "VULN-RET-001"
    NAME = "Unchecked send()"
    DESCRIPTION = (
        "send() returns false on failure instead of reverting. When the "
        "result is dropped, a failed payment goes unnoticed."
    )
    SEVERITY = Severity.HIGH
    CATEGORY = "unchecked_return"
    KIND = VulnerabilityKind.UNCHECKED_RETURN
    PATTERN = "Unchecked Return (SWC-104)"
    REMEDIATION = "Replace send() with call() and check the return value, or use transfer()"

    def detect(self, model: ContractModel) -> list[Vulnerability]:
        findings: list[Vulnerability] = []
        for fn in model.functions:
            call = next(
                (c for c in fn.external_calls if c.kind == "send" and not c.captured),
                None,
            )
            if call is None:
                continue
            findings.append(self._make_finding(
                id=f"unchecked_send_{fn.name}",
                title=f"Unchecked send() in {fn.name}()",
                description=(
                    "send() returns bool but failure may not be handled. "
                    "Use call() with return value check instead."
                ),
                function=fn.name,
                line=call.line,
                call_kind=call.kind,
            ))
        return findings
