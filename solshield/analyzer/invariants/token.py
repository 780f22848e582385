"""Token-standard invariants — fungible (ERC20-like) and non-fungible (ERC721-like).

Both rules key off naming conventions only: a contract is "ERC20-like"
when it has a ``transfer`` function, a balance mapping and a total-supply
scalar under their customary names.
"""

from __future__ import annotations

from solshield.analyzer.base_detector import InvariantDetector
from solshield.core.model import ContractModel
from solshield.core.types import GhostVariableSpec, Invariant, Severity

ERC20_BALANCE_NAMES = ("balanceOf", "balances", "_balances")
ERC20_SUPPLY_NAMES = ("totalSupply", "_totalSupply")
ERC721_OWNER_NAMES = ("_owners", "owners")

_SUPPLY_TRACKED = ("transfer", "transferFrom", "mint", "_mint", "burn", "_burn")
_MINT_TRACKED = ("mint", "_mint")
_TRANSFER_TRACKED = ("transfer", "transferFrom")


def is_erc20_like(model: ContractModel) -> bool:
    return (
        model.has_function("transfer")
        and model.find_state_var(ERC20_BALANCE_NAMES) is not None
        and model.find_state_var(ERC20_SUPPLY_NAMES) is not None
    )


def is_erc721_like(model: ContractModel) -> bool:
    return model.has_function("ownerOf") or (
        model.has_function("safeTransferFrom")
        and model.find_state_var(ERC721_OWNER_NAMES) is not None
    )


class ERC20InvariantDetector(InvariantDetector):
    """Supply conservation, mint ceiling, transfer symmetry, allowance and zero-address guards."""

    DETECTOR_ID = "INV-TOKEN-001"
    NAME = "ERC20 Invariants"
    DESCRIPTION = "Supply and transfer properties of fungible-token-like contracts."
    SEVERITY = Severity.CRITICAL
    CATEGORY = "token"

    def detect(self, model: ContractModel) -> list[Invariant]:
        balance_var = model.find_state_var(ERC20_BALANCE_NAMES)
        supply_var = model.find_state_var(ERC20_SUPPLY_NAMES)
        if balance_var is None or supply_var is None or not is_erc20_like(model):
            return []

        self_ref = model.self_reference
        supply = supply_var.name

        invariants = [
            self._make_invariant(
                id="erc20_supply_conservation",
                title="Total Supply Conservation",
                description=f"{supply} must always equal the sum of all {balance_var.name}",
                pattern="ERC20 supply integrity",
                assertion=f"assertEq({self_ref}.{supply}(), handler.ghost_balanceSum())",
                ghost_vars=[GhostVariableSpec(
                    name="ghost_balanceSum",
                    track_in=_SUPPLY_TRACKED,
                    seed_from=supply,
                )],
            ),
            self._make_invariant(
                id="erc20_no_free_tokens",
                title="No Token Creation From Thin Air",
                description=f"{supply} can only increase through authorized mint functions",
                pattern="ERC20 mint control",
                assertion=f"assertLe({self_ref}.{supply}(), handler.ghost_totalMinted())",
                ghost_vars=[GhostVariableSpec(
                    name="ghost_totalMinted",
                    track_in=_MINT_TRACKED,
                    seed_from=supply,
                )],
            ),
            self._make_invariant(
                id="erc20_transfer_symmetry",
                severity=Severity.HIGH,
                title="Transfer Symmetry",
                description="For every transfer, sender decrease must equal receiver increase",
                pattern="ERC20 transfer integrity",
                assertion="assertEq(handler.ghost_senderDecrease(), handler.ghost_receiverIncrease())",
                ghost_vars=[
                    GhostVariableSpec(name="ghost_senderDecrease", track_in=_TRANSFER_TRACKED),
                    GhostVariableSpec(name="ghost_receiverIncrease", track_in=_TRANSFER_TRACKED),
                ],
            ),
        ]

        if model.has_function("approve") and model.has_function("transferFrom"):
            invariants.append(self._make_invariant(
                id="erc20_allowance_decrease",
                severity=Severity.HIGH,
                title="Allowance Decreases on TransferFrom",
                description="transferFrom must decrease allowance by the transferred amount",
                pattern="ERC20 allowance integrity",
            ))

        transfer_fn = model.get_function("transfer")
        if transfer_fn is not None:
            has_zero_check = any(
                "address(0)" in arg or "zero" in arg
                for req in transfer_fn.requires
                for arg in req.args
            )
            invariants.append(self._make_invariant(
                id="erc20_zero_address",
                severity=Severity.LOW if has_zero_check else Severity.MEDIUM,
                title="Zero Address Guard",
                description="transfer/transferFrom to address(0) should revert",
                pattern="Input validation",
            ))

        return invariants


class ERC721InvariantDetector(InvariantDetector):
    """Structural ownership claims for NFT-like contracts. No assertion template."""

    DETECTOR_ID = "INV-TOKEN-002"
    NAME = "ERC721 Invariants"
    DESCRIPTION = "Ownership consistency and uniqueness of non-fungible-token-like contracts."
    SEVERITY = Severity.CRITICAL
    CATEGORY = "token"

    def detect(self, model: ContractModel) -> list[Invariant]:
        if not is_erc721_like(model):
            return []

        return [
            self._make_invariant(
                id="erc721_owner_consistency",
                title="NFT Ownership Consistency",
                description="Every token with an owner must be counted in that owner's balance",
                pattern="ERC721 ownership integrity",
            ),
            self._make_invariant(
                id="erc721_no_duplicate_owner",
                title="No Duplicate Ownership",
                description="Each tokenId can only have one owner at a time",
                pattern="ERC721 uniqueness",
            ),
        ]
