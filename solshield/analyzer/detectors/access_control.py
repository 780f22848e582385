"""Missing access control detector — SWC-105."""

from __future__ import annotations

from solshield.analyzer.base_detector import VulnerabilityDetector
from solshield.core.model import ContractModel, FunctionModel
from solshield.core.types import Severity, Vulnerability, VulnerabilityKind

SENSITIVE_NAME_PARTS = (
    "mint", "burn", "pause", "unpause", "withdraw",
    "setowner", "transferownership", "upgrade", "selfdestruct", "destroy",
)
OWNER_MODIFIERS = frozenset({"onlyOwner", "onlyAdmin", "onlyRole", "auth", "authorized"})
_IDENTITY_MARKERS = ("owner", "admin", "msg.sender")


def _has_identity_require(fn: FunctionModel) -> bool:
    return any(
        marker in arg.lower()
        for req in fn.requires
        for arg in req.args
        for marker in _IDENTITY_MARKERS
    )


class MissingAccessControlDetector(VulnerabilityDetector):
    """Detect sensitive public/external functions with no caller restriction."""

    DETECTOR_ID = "VULN-ACL-001"
    NAME = "Missing Access Control"
    DESCRIPTION = (
        "Detects exposed functions with privileged-sounding names (mint, "
        "withdraw, upgrade...) that neither carry an owner-style modifier nor "
        "check the caller in a require."
    )
    SEVERITY = Severity.CRITICAL
    CATEGORY = "access_control"
    KIND = VulnerabilityKind.MISSING_ACCESS_CONTROL
    PATTERN = "Missing Access Control (SWC-105)"

    def detect(self, model: ContractModel) -> list[Vulnerability]:
        findings: list[Vulnerability] = []

        for fn in model.functions:
            if fn.is_constructor or not fn.is_exposed:
                continue
            lowered = fn.name.lower()
            if not any(part in lowered for part in SENSITIVE_NAME_PARTS):
                continue
            if fn.has_modifier(OWNER_MODIFIERS) or _has_identity_require(fn):
                continue

            findings.append(self._make_finding(
                id=f"missing_access_{fn.name}",
                title=f"Missing Access Control on {fn.name}()",
                description=(
                    f"{fn.name}() is a sensitive function but has no access "
                    "control modifier or require check"
                ),
                function=fn.name,
                line=fn.line,
                remediation=f"Add an access control modifier (e.g., onlyOwner) to {fn.name}()",
            ))

        return findings
