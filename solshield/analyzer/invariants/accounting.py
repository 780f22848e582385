"""Accounting invariants — vault totals, balance mutation guards, mapping/total pairs."""

from __future__ import annotations

from solshield.analyzer.base_detector import InvariantDetector
from solshield.analyzer.invariants.token import is_erc20_like
from solshield.core.model import ContractModel
from solshield.core.types import GhostVariableSpec, Invariant, Severity

VAULT_TOTAL_NAMES = ("totalDeposited", "totalAssets", "totalStaked")
VAULT_BALANCE_NAMES = ("balances", "deposits", "stakes")

_VAULT_TRACKED = ("deposit", "withdraw", "stake", "unstake")
_BALANCE_MARKERS = ("balance", "Balance", "deposit")
_TOTAL_MARKERS = ("total", "count", "supply")


def is_vault_like(model: ContractModel) -> bool:
    return (
        model.find_state_var(VAULT_TOTAL_NAMES) is not None
        and model.find_state_var(VAULT_BALANCE_NAMES) is not None
    )


class VaultAccountingDetector(InvariantDetector):
    """Total-vs-sum accounting and native-balance solvency for vault/staking contracts."""

    DETECTOR_ID = "INV-ACCT-001"
    NAME = "Vault Accounting"
    DESCRIPTION = "A total-like scalar must match the sum of a balance-like mapping."
    SEVERITY = Severity.CRITICAL
    CATEGORY = "accounting"

    def detect(self, model: ContractModel) -> list[Invariant]:
        total_var = model.find_state_var(VAULT_TOTAL_NAMES)
        balance_var = model.find_state_var(VAULT_BALANCE_NAMES)
        if total_var is None or balance_var is None or not is_vault_like(model):
            return []

        self_ref = model.self_reference
        total = total_var.name

        invariants = [
            self._make_invariant(
                id="vault_accounting",
                title="Vault Accounting Integrity",
                description=f"{total} must equal sum of all {balance_var.name}",
                pattern="Vault accounting",
                assertion=f"assertEq({self_ref}.{total}(), handler.ghost_balanceSum())",
                ghost_vars=[GhostVariableSpec(
                    name="ghost_balanceSum",
                    track_in=_VAULT_TRACKED,
                    seed_from=total,
                )],
            )
        ]

        if model.has_payable_function:
            invariants.append(self._make_invariant(
                id="vault_solvency",
                title="Contract Solvency",
                description=(
                    f"Contract ETH balance must be >= {total} "
                    "(contract can always pay out)"
                ),
                pattern="Vault solvency",
                assertion=f"assertGe(address({self_ref}).balance, {self_ref}.{total}())",
            ))

        return invariants


class UncheckedBalanceModificationDetector(InvariantDetector):
    """Functions writing balance-like state without a single require/revert."""

    DETECTOR_ID = "INV-ACCT-002"
    NAME = "Unchecked Balance Modification"
    DESCRIPTION = "Balance-like state mutated by a function with no require checks."
    SEVERITY = Severity.HIGH
    CATEGORY = "accounting"

    def detect(self, model: ContractModel) -> list[Invariant]:
        invariants: list[Invariant] = []
        for fn in model.functions:
            if fn.is_constructor or fn.requires:
                continue
            modifies_balance = any(
                marker in sc.target
                for sc in fn.state_changes
                for marker in _BALANCE_MARKERS
            )
            if modifies_balance:
                invariants.append(self._make_invariant(
                    id=f"unchecked_balance_mod_{fn.name}",
                    title=f"Unchecked Balance Modification in {fn.name}()",
                    description=(
                        f"{fn.name}() modifies balance-related state without require checks"
                    ),
                    pattern="Missing validation",
                ))
        return invariants


class MappingTotalConsistencyDetector(InvariantDetector):
    """Mapping paired with a total/count/supply scalar, unless already covered."""

    DETECTOR_ID = "INV-ACCT-003"
    NAME = "Mapping-Total Consistency"
    DESCRIPTION = "Sum of a mapping should stay consistent with a related total."
    SEVERITY = Severity.MEDIUM
    CATEGORY = "accounting"

    def detect(self, model: ContractModel) -> list[Invariant]:
        # Supply conservation and vault accounting already cover the pair
        if is_erc20_like(model) or is_vault_like(model):
            return []

        related_total = next(
            (
                v for v in model.state_vars
                if not v.is_mapping
                and any(marker in v.name.lower() for marker in _TOTAL_MARKERS)
            ),
            None,
        )
        if related_total is None:
            return []

        return [
            self._make_invariant(
                id=f"mapping_total_consistency_{m.name}_{related_total.name}",
                title=f"Mapping-Total Consistency: {m.name} vs {related_total.name}",
                description=(
                    f"Sum of all values in {m.name} should be consistent "
                    f"with {related_total.name}"
                ),
                pattern="Data consistency",
            )
            for m in model.mappings
        ]
