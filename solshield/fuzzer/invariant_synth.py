"""Invariant test synthesis — Foundry handler + invariant assertions.

For one contract this produces ``<Name>.invariant.t.sol`` containing:

  - ``<Name>Handler``: one bounded, actor-pranked wrapper per callable
    function, each calling the target inside ``try/catch`` and updating
    ghost variables on success
  - ``<Name>InvariantTest``: deploys the target and the handler, seeds
    ghost variables from post-constructor state and emits one
    ``invariant_<id>()`` per discovered invariant

Invariants without an assertion template become commented stubs.
"""

from __future__ import annotations

import logging
import re

from solshield.core.config import Settings, get_settings
from solshield.core.model import ContractModel, FunctionModel, TypeDescriptor, TypeKind, Visibility
from solshield.core.types import GhostVariableSpec, Invariant
from solshield.fuzzer.ghost_rules import (
    SENT_VALUE_LOCAL,
    collect_ghost_vars,
    ghost_gaps,
    ghost_update,
    seed_function_name,
)
from solshield.fuzzer.source_builder import (
    Blank,
    Comment,
    ContractUnit,
    FunctionUnit,
    Line,
    Param,
    SolidityFile,
    TryCatch,
)

logger = logging.getLogger(__name__)

IMPORT_NOTE = "TODO: Update this import path to match your project structure"

_UINT_RE = re.compile(r"^uint(\d*)$")
_INT_RE = re.compile(r"^int(\d*)$")
_CEILING_BITS_RE = re.compile(r"type\(uint(\d+)\)\.max")

# Handler members a wrapper must not shadow
_HANDLER_RESERVED = frozenset({
    "target", "actors", "currentActor", "callCount", "useActor",
    "setUp", "actorSeed", SENT_VALUE_LOCAL,
})


# ── Type helpers ─────────────────────────────────────────────────────────────


def solidity_param_type(t: TypeDescriptor) -> str:
    """Declared type of a parameter, with a data location where one is required."""
    if t.is_array or t.is_dynamic_bytes:
        return f"{t} memory"
    return str(t)


def default_argument(t: TypeDescriptor) -> str:
    """Fixed literal used when a value of type ``t`` has to be invented."""
    name = t.name if t.kind == TypeKind.ELEMENTARY else ""

    if name == "string":
        return '"Test"'
    if name == "address":
        return "address(this)"
    if name == "bool":
        return "true"
    if name == "uint8":
        return "18"
    if name.startswith("bytes") and name != "bytes":
        return f"{name}(0)"
    if _UINT_RE.match(name):
        return "1000" if name == "uint16" else "1000000"
    if _INT_RE.match(name):
        return f"{name}(0)"
    if name == "bytes":
        return '""'
    if t.is_array:
        return f"new {t.base}[](0)"
    return "0"


def constructor_arguments(model: ContractModel) -> str:
    ctor = model.constructor
    if ctor is None:
        return ""
    return ", ".join(default_argument(p.type) for p in ctor.parameters)


def callable_functions(model: ContractModel) -> list[FunctionModel]:
    """Functions a handler or attacker can call from outside."""
    return [
        fn for fn in model.functions
        if not fn.is_special
        and fn.visibility not in (Visibility.INTERNAL, Visibility.PRIVATE)
    ]


def _unique_name(name: str, taken: set[str]) -> str:
    if name not in taken:
        return name
    n = 1
    while f"{name}_{n}" in taken:
        n += 1
    return f"{name}_{n}"


# ── Synthesizer ──────────────────────────────────────────────────────────────


class InvariantTestSynthesizer:
    """Generate a Foundry invariant test file for one contract."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()

    def synthesize(
        self,
        model: ContractModel,
        invariants: list[Invariant],
        source_file: str | None = None,
    ) -> str:
        ghosts = collect_ghost_vars(invariants)

        for ghost, fn_name in ghost_gaps(ghosts, callable_functions(model)):
            logger.debug(
                "No update rule for %s in %s()", ghost, fn_name,
                extra={"contract": model.name},
            )

        source = SolidityFile(
            pragma=self.settings.test_pragma,
            imports=[
                "forge-std/Test.sol",
                f"{self.settings.source_import_prefix}/{source_file or model.name + '.sol'}",
            ],
            import_note=IMPORT_NOTE,
            units=[
                self._handler(model, ghosts),
                self._test_contract(model, invariants, ghosts),
            ],
        )
        return source.render()

    # ── Handler ──────────────────────────────────────────────────────

    def _handler(self, model: ContractModel, ghosts: list[GhostVariableSpec]) -> ContractUnit:
        name = model.name
        unit = ContractUnit(f"{name}Handler", bases=["Test"])
        unit.add(Line(f"{name} public target;"), Blank())

        unit.add(Comment("Ghost variables for invariant tracking"))
        for ghost in ghosts:
            unit.add(Line(f"{ghost.type} public {ghost.name};"))
        unit.add(Line("uint256 public callCount;"), Blank())

        unit.add(
            Comment("Actor management"),
            Line("address[] public actors;"),
            Line("address internal currentActor;"),
        )
        unit.add_function(FunctionUnit(
            name="useActor",
            kind="modifier",
            params=[Param("uint256", "actorSeed")],
            body=[
                Line("currentActor = actors[actorSeed % actors.length];"),
                Line("vm.startPrank(currentActor);"),
                Line("_;"),
                Line("vm.stopPrank();"),
            ],
        ))

        ctor_body: list = [Line("target = _target;")]
        for i in range(self.settings.handler_actor_count):
            ctor_body.append(Line(f'actors.push(makeAddr("actor{i}"));'))
        unit.add_function(FunctionUnit(
            name="constructor",
            kind="constructor",
            params=[Param(name, "_target")],
            body=ctor_body,
        ))

        taken = set(_HANDLER_RESERVED) | {g.name for g in ghosts}
        for ghost in ghosts:
            if ghost.seed_from is None:
                continue
            init_name = seed_function_name(ghost.name)
            taken.add(init_name)
            unit.add_function(FunctionUnit(
                name=init_name,
                params=[Param(ghost.type, "_val")],
                qualifiers=["external"],
                body=[Line(f"{ghost.name} = _val;")],
            ))

        for fn in callable_functions(model):
            wrapper_name = _unique_name(fn.name, taken)
            taken.add(wrapper_name)
            unit.add_function(self._handler_function(fn, wrapper_name, ghosts))

        return unit

    def _handler_function(
        self,
        fn: FunctionModel,
        wrapper_name: str,
        ghosts: list[GhostVariableSpec],
    ) -> FunctionUnit:
        params = [Param("uint256", "actorSeed")]
        bounds: list = []
        args: list[str] = []

        for i, p in enumerate(fn.parameters):
            arg = p.name or f"arg{i}"
            if arg in _HANDLER_RESERVED:
                arg = f"{arg}_"
            params.append(Param(solidity_param_type(p.type), arg))
            args.append(arg)
            bound = self._bound_statement(p.type, arg)
            if bound:
                bounds.append(Line(bound))

        body: list = [Line("callCount++;"), *bounds]

        value = ""
        if fn.is_payable:
            ceiling = self.settings.handler_payable_ceiling
            body.append(Line(f"uint256 {SENT_VALUE_LOCAL} = bound(actorSeed, 0, {ceiling});"))
            body.append(Line(f"deal(currentActor, {SENT_VALUE_LOCAL});"))
            value = f"{{value: {SENT_VALUE_LOCAL}}}"

        updates: list = []
        for ghost in ghosts:
            if fn.name not in ghost.track_in:
                continue
            update = ghost_update(ghost.name, fn)
            if update:
                updates.append(Line(update))
        body.append(TryCatch(f"target.{fn.name}{value}({', '.join(args)})", updates))

        return FunctionUnit(
            name=wrapper_name,
            params=params,
            qualifiers=["public", "useActor(actorSeed)"],
            body=body,
        )

    def _bound_statement(self, t: TypeDescriptor, arg: str) -> str | None:
        if t.kind != TypeKind.ELEMENTARY:
            return None
        if t.name == "address":
            return (
                f"{arg} = address(uint160(bound(uint256(uint160({arg})), "
                "1, type(uint160).max)));"
            )
        match = _UINT_RE.match(t.name)
        if not match:
            return None

        bits = int(match.group(1) or 256)
        ceiling = self.settings.handler_uint_ceiling
        ceiling_match = _CEILING_BITS_RE.search(ceiling)
        if ceiling_match and bits < int(ceiling_match.group(1)):
            ceiling = f"type({t.name}).max"
        if bits == 256:
            return f"{arg} = bound({arg}, 0, {ceiling});"
        return f"{arg} = {t.name}(bound({arg}, 0, {ceiling}));"

    # ── Test contract ────────────────────────────────────────────────

    def _test_contract(
        self,
        model: ContractModel,
        invariants: list[Invariant],
        ghosts: list[GhostVariableSpec],
    ) -> ContractUnit:
        name = model.name
        unit = ContractUnit(f"{name}InvariantTest", bases=["Test"])
        unit.add(
            Line(f"{name} public target;"),
            Line(f"{name}Handler public handler;"),
        )

        setup: list = [
            Line(f"target = new {name}({constructor_arguments(model)});"),
            Line(f"handler = new {name}Handler(target);"),
        ]
        seeds = self._seed_statements(model, ghosts)
        if seeds:
            setup.append(Comment("Initialize ghosts to match state set by the constructor"))
            setup.extend(seeds)
        setup.append(Line("targetContract(address(handler));"))
        unit.add_function(FunctionUnit(name="setUp", qualifiers=["public"], body=setup))

        for inv in invariants:
            unit.add_function(self._invariant_function(model, inv))

        return unit

    def _seed_statements(self, model: ContractModel, ghosts: list[GhostVariableSpec]) -> list:
        statements: list = []
        for ghost in ghosts:
            if ghost.seed_from is None:
                continue
            accessor = self._accessor(model, ghost.seed_from)
            init_name = seed_function_name(ghost.name)
            if accessor is None:
                statements.append(Comment(
                    f"TODO: {ghost.seed_from} is not publicly readable; "
                    f"call handler.{init_name}(...) with its initial value"
                ))
            else:
                statements.append(Line(f"handler.{init_name}(target.{accessor}());"))
        return statements

    @staticmethod
    def _accessor(model: ContractModel, var_name: str) -> str | None:
        """Public getter for a state variable, if one exists."""
        var = model.find_state_var((var_name,))
        if var is not None and var.visibility == Visibility.PUBLIC:
            return var_name
        stripped = var_name.lstrip("_")
        if stripped and model.has_function(stripped):
            return stripped
        return None

    def _invariant_function(self, model: ContractModel, inv: Invariant) -> FunctionUnit:
        body: list = []
        if inv.assertion:
            body.append(Line(f"{rewrite_self_reference(inv.assertion, model.name)};"))
        else:
            body.append(Comment("TODO: Implement this invariant check"))
            body.append(Comment(inv.description))
            body.extend(Comment(hint) for hint in _stub_hints(inv.id))

        return FunctionUnit(
            name=f"invariant_{inv.id}",
            qualifiers=["public", "view"],
            doc=[f"{inv.severity.value}: {inv.title}", inv.description],
            body=body,
        )


def rewrite_self_reference(assertion: str, contract_name: str) -> str:
    """Point contract self references in an assertion template at ``target``.

    Ghost reads (``handler.ghost_*``) belong to the handler and are left alone,
    even for a contract named Handler.
    """
    code = assertion
    for name in (contract_name.lower(), contract_name):
        escaped = re.escape(name)
        code = re.sub(rf"\baddress\({escaped}\)", "address(target)", code)
        code = re.sub(rf"\b{escaped}\.(?!ghost_)", "target.", code)
    return code


def _stub_hints(invariant_id: str) -> list[str]:
    if "zero_address" in invariant_id:
        return [
            "Verify: transfer to address(0) should always revert",
            "This is tested via the handler's bounded address inputs",
        ]
    if "access_control" in invariant_id:
        return ["Verify: protected functions revert for non-owners"]
    if "pausable" in invariant_id:
        return ["Verify: paused state blocks protected functions"]
    return []
