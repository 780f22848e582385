"""Vulnerability detection rules.

All 5 detectors in run order:
  - Reentrancy (1):       VULN-REENT-001
  - Unchecked Return (1): VULN-RET-001
  - Access Ctrl (1):      VULN-ACL-001
  - Front-Running (1):    VULN-MEV-001
  - Denial of Service (1): VULN-DOS-001
"""

from solshield.analyzer.detectors.reentrancy import ReentrancyDetector
from solshield.analyzer.detectors.unchecked_returns import UncheckedSendDetector
from solshield.analyzer.detectors.access_control import MissingAccessControlDetector
from solshield.analyzer.detectors.front_running import ApproveFrontRunDetector
from solshield.analyzer.detectors.denial_of_service import MultipleExternalCallsDetector

VULNERABILITY_DETECTORS: list[type] = [
    ReentrancyDetector,
    UncheckedSendDetector,
    MissingAccessControlDetector,
    ApproveFrontRunDetector,
    MultipleExternalCallsDetector,
]

__all__ = ["VULNERABILITY_DETECTORS"]
