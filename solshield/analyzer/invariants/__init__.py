"""Invariant discovery rules.

Run order (ids are deduplicated first-wins across rules):
  - Token (2):       INV-TOKEN-001..002
  - Accounting (2):  INV-ACCT-001..002
  - Access Ctrl (2): INV-ACL-001..002
  - Arithmetic (1):  INV-ARITH-001
  - Consistency (1): INV-ACCT-003
"""

from solshield.analyzer.invariants.token import (
    ERC20InvariantDetector,
    ERC721InvariantDetector,
)
from solshield.analyzer.invariants.accounting import (
    VaultAccountingDetector,
    UncheckedBalanceModificationDetector,
    MappingTotalConsistencyDetector,
)
from solshield.analyzer.invariants.access_control import (
    AccessControlInvariantDetector,
    PausableInvariantDetector,
)
from solshield.analyzer.invariants.arithmetic import UnderflowReviewDetector

INVARIANT_DETECTORS: list[type] = [
    # Token
    ERC20InvariantDetector,
    ERC721InvariantDetector,
    # Accounting
    VaultAccountingDetector,
    UncheckedBalanceModificationDetector,
    # Access Control
    AccessControlInvariantDetector,
    PausableInvariantDetector,
    # Arithmetic
    UnderflowReviewDetector,
    # Consistency
    MappingTotalConsistencyDetector,
]

__all__ = ["INVARIANT_DETECTORS"]
