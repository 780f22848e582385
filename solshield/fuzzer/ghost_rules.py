"""Ghost-variable bookkeeping for synthesized handlers.

The update table maps (ghost variable, function-name pattern) to the
statement a handler runs after a successful call. For a given ghost the
first matching row decides. A tracked function with no matching row, or
whose row needs an amount parameter the function does not have, gets no
update; ``ghost_gaps`` reports those pairs.
"""

from __future__ import annotations

from dataclasses import dataclass

from solshield.core.model import FunctionModel
from solshield.core.types import GhostVariableSpec, Invariant

AMOUNT_PARAM_NAMES = ("amount", "_amount", "value")
SENT_VALUE_LOCAL = "sentValue"


@dataclass(frozen=True)
class GhostUpdateRule:
    ghost: str
    template: str
    name_contains: tuple[str, ...] = ()
    payable: bool = False

    @property
    def needs_amount(self) -> bool:
        return "{amount}" in self.template

    def matches(self, fn: FunctionModel) -> bool:
        if self.payable:
            return fn.is_payable
        lowered = fn.name.lower()
        return any(part in lowered for part in self.name_contains)


GHOST_UPDATE_RULES: tuple[GhostUpdateRule, ...] = (
    # Payable deposit/stake: add the value sent with the call
    GhostUpdateRule("ghost_balanceSum", f"ghost_balanceSum += {SENT_VALUE_LOCAL};", payable=True),
    GhostUpdateRule("ghost_balanceSum", "ghost_balanceSum -= {amount};",
                    name_contains=("withdraw", "unstake", "burn")),
    GhostUpdateRule("ghost_balanceSum", "ghost_balanceSum += {amount};", name_contains=("mint",)),
    GhostUpdateRule("ghost_totalMinted", "ghost_totalMinted += {amount};", name_contains=("mint",)),
    GhostUpdateRule("ghost_senderDecrease", "ghost_senderDecrease += {amount};",
                    name_contains=("transfer",)),
    GhostUpdateRule("ghost_receiverIncrease", "ghost_receiverIncrease += {amount};",
                    name_contains=("transfer",)),
)


def amount_parameter(fn: FunctionModel) -> str | None:
    """First uint256 parameter named like an amount."""
    for param in fn.parameters:
        if str(param.type) == "uint256" and param.name in AMOUNT_PARAM_NAMES:
            return param.name
    return None


def ghost_update(ghost: str, fn: FunctionModel) -> str | None:
    """Statement updating ``ghost`` after ``fn`` succeeds, or None for a gap."""
    rule = next((r for r in GHOST_UPDATE_RULES if r.ghost == ghost and r.matches(fn)), None)
    if rule is None:
        return None
    if rule.needs_amount:
        amount = amount_parameter(fn)
        if amount is None:
            return None
        return rule.template.format(amount=amount)
    return rule.template


def ghost_gaps(
    ghosts: list[GhostVariableSpec], functions: list[FunctionModel]
) -> list[tuple[str, str]]:
    """(ghost, function) pairs that are tracked but never updated."""
    gaps: list[tuple[str, str]] = []
    for ghost in ghosts:
        for fn in functions:
            if fn.name in ghost.track_in and ghost_update(ghost.name, fn) is None:
                gaps.append((ghost.name, fn.name))
    return gaps


def collect_ghost_vars(invariants: list[Invariant]) -> list[GhostVariableSpec]:
    """Merge ghost specs across invariants by name.

    The first GhostVariableSpec seen for a name fixes its type and seed; tracking sets
    of later specs are appended in order.
    """
    merged: dict[str, GhostVariableSpec] = {}
    for inv in invariants:
        for ghost in inv.ghost_vars:
            existing = merged.get(ghost.name)
            if existing is None:
                merged[ghost.name] = ghost
                continue
            extra = tuple(f for f in ghost.track_in if f not in existing.track_in)
            if extra:
                merged[ghost.name] = existing.model_copy(
                    update={"track_in": existing.track_in + extra}
                )
    return list(merged.values())


def seed_function_name(ghost: str) -> str:
    """``ghost_balanceSum`` -> ``initGhostBalanceSum``."""
    stem = ghost[len("ghost_"):] if ghost.startswith("ghost_") else ghost
    return f"initGhost{stem[:1].upper()}{stem[1:]}"
