"""Contract model builder — solc AST to ContractModel.

Walks the Solidity AST produced by solc (via solcx) and extracts:
  - Contract kind and inheritance list
  - State variables with semantic type descriptors
  - Functions with visibility, mutability, parameters and modifiers
  - Events and modifier definitions
  - Per-function body facts in source order:
      require/revert call sites, low-level external calls
      (call, send, transfer, delegatecall, staticcall — including
      ``x.call{value: v}(...)``) and assignments

Statement and expression shapes are dispatched through explicit tables.
Shapes outside those tables produce no fact; the builder never raises on
a tree the parser accepted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from solshield.core.model import (
    EXTERNAL_CALL_MEMBERS,
    ContractKind,
    ContractModel,
    EventModel,
    ExternalCall,
    FunctionKind,
    FunctionModel,
    ModifierModel,
    Parameter,
    RequireCall,
    StateChange,
    StateMutability,
    StateVariable,
    TypeDescriptor,
    TypeKind,
    Visibility,
)

logger = logging.getLogger(__name__)

_REQUIRE_NAMES = ("require", "revert")


# ── Source locations ─────────────────────────────────────────────────────────


@dataclass
class SourceLocation:
    """Source location from an AST src field (offset:length:fileIndex)."""
    offset: int = 0
    length: int = 0
    file_index: int = 0
    line: int = 0
    end_line: int = 0

    @classmethod
    def from_src(cls, src: str, source_bytes: bytes = b"") -> "SourceLocation":
        """Parse AST 'src' field like '120:45:0'. Offsets are byte offsets."""
        parts = src.split(":") if isinstance(src, str) else []
        if len(parts) < 3:
            return cls()
        try:
            offset, length, file_index = int(parts[0]), int(parts[1]), int(parts[2])
        except ValueError:
            return cls()
        line = source_bytes[:offset].count(b"\n") + 1 if source_bytes else 0
        end_line = source_bytes[:offset + length].count(b"\n") + 1 if source_bytes else 0
        return cls(offset=offset, length=length, file_index=file_index,
                   line=line, end_line=end_line)


@dataclass
class _BodyFacts:
    """Mutable accumulator for one function body walk."""
    requires: list[RequireCall] = field(default_factory=list)
    external_calls: list[ExternalCall] = field(default_factory=list)
    state_changes: list[StateChange] = field(default_factory=list)


# ── Builder ──────────────────────────────────────────────────────────────────


class ContractModelBuilder:
    """Build ContractModel instances from solc ContractDefinition nodes."""

    def __init__(self, source_code: str = "", file_structs: tuple[str, ...] = ()) -> None:
        self._source = source_code.encode("utf-8")
        # Structs declared at file level are visible to every contract in the file
        self._file_structs = tuple(file_structs)

        self._statement_visitors: dict[str, Callable[[dict, _BodyFacts], None]] = {
            "Block": self._visit_block,
            "UncheckedBlock": self._visit_block,
            "IfStatement": self._visit_if,
            "ForStatement": self._visit_for,
            "WhileStatement": self._visit_loop,
            "DoWhileStatement": self._visit_loop,
            "ExpressionStatement": self._visit_expression_statement,
            "VariableDeclarationStatement": self._visit_variable_declaration,
            "Return": self._visit_return,
            "EmitStatement": self._visit_emit,
            "RevertStatement": self._visit_revert,
            "TryStatement": self._visit_try,
        }
        self._expression_visitors: dict[str, Callable[[dict, _BodyFacts, bool], None]] = {
            "FunctionCall": self._visit_function_call,
            "FunctionCallOptions": self._visit_call_options,
            "Assignment": self._visit_assignment,
            "BinaryOperation": self._visit_binary,
            "UnaryOperation": self._visit_unary,
            "Conditional": self._visit_conditional,
            "TupleExpression": self._visit_tuple,
            "IndexAccess": self._visit_index_access,
            "MemberAccess": self._visit_member_access,
        }

    # ── Contract visitor ─────────────────────────────────────────────

    def build(self, node: dict[str, Any]) -> ContractModel:
        """Visit a ContractDefinition node."""
        bases: list[str] = []
        for base in node.get("baseContracts", []) or []:
            base_name = base.get("baseName", {}) or {}
            name = base_name.get("name", "") or base_name.get("namePath", "")
            if name:
                bases.append(name)

        state_vars: list[StateVariable] = []
        functions: list[FunctionModel] = []
        events: list[EventModel] = []
        modifiers: list[ModifierModel] = []
        structs: list[str] = list(self._file_structs)

        for child in node.get("nodes", []) or []:
            if not isinstance(child, dict):
                continue
            nt = child.get("nodeType", "")

            if nt == "VariableDeclaration":
                state_vars.append(self._visit_state_variable(child))
            elif nt == "FunctionDefinition":
                functions.append(self._visit_function(child))
            elif nt == "EventDefinition":
                events.append(self._visit_event(child))
            elif nt == "ModifierDefinition":
                modifiers.append(ModifierModel(
                    name=child.get("name", ""),
                    parameters=self._parameters(child.get("parameters")),
                    line=self._line(child),
                ))
            elif nt == "StructDefinition":
                structs.append(child.get("name", ""))

        return ContractModel(
            name=node.get("name", ""),
            kind=_enum_or(ContractKind, node.get("contractKind"), ContractKind.CONTRACT),
            base_contracts=tuple(bases),
            state_vars=tuple(state_vars),
            functions=tuple(functions),
            events=tuple(events),
            modifiers=tuple(modifiers),
            structs=tuple(structs),
            line=self._line(node),
        )

    # ── Declarations ─────────────────────────────────────────────────

    def _visit_state_variable(self, node: dict) -> StateVariable:
        return StateVariable(
            name=node.get("name", ""),
            type=self.type_descriptor(node.get("typeName")),
            visibility=_enum_or(Visibility, node.get("visibility"), Visibility.INTERNAL),
            constant=bool(node.get("constant", False)),
            immutable=node.get("mutability") == "immutable",
            line=self._line(node),
        )

    def _visit_function(self, node: dict) -> FunctionModel:
        kind = _enum_or(FunctionKind, node.get("kind"), FunctionKind.FUNCTION)
        # Nameless special functions get their kind as synthetic name
        name = node.get("name", "") or kind.value

        modifiers: list[str] = []
        for mod in node.get("modifiers", []) or []:
            mod_name = (mod.get("modifierName", {}) or {}).get("name", "")
            if mod_name:
                modifiers.append(mod_name)

        facts = _BodyFacts()
        body = node.get("body")
        if isinstance(body, dict):
            self._visit_statement(body, facts)

        return FunctionModel(
            name=name,
            kind=kind,
            visibility=_enum_or(Visibility, node.get("visibility"), Visibility.PUBLIC),
            mutability=_enum_or(
                StateMutability, node.get("stateMutability"), StateMutability.NONPAYABLE
            ),
            parameters=self._parameters(node.get("parameters")),
            modifiers=tuple(modifiers),
            requires=tuple(facts.requires),
            external_calls=tuple(facts.external_calls),
            state_changes=tuple(facts.state_changes),
            line=self._line(node),
        )

    def _visit_event(self, node: dict) -> EventModel:
        return EventModel(
            name=node.get("name", ""),
            parameters=self._parameters(node.get("parameters")),
            anonymous=bool(node.get("anonymous", False)),
            line=self._line(node),
        )

    def _parameters(self, params_node: Any) -> tuple[Parameter, ...]:
        if not isinstance(params_node, dict):
            return ()
        return tuple(
            Parameter(
                name=p.get("name", ""),
                type=self.type_descriptor(p.get("typeName")),
                storage_location=p.get("storageLocation", "default"),
                indexed=bool(p.get("indexed", False)),
            )
            for p in params_node.get("parameters", []) or []
            if isinstance(p, dict)
        )

    # ── Statements ───────────────────────────────────────────────────

    def _visit_statement(self, node: Any, facts: _BodyFacts) -> None:
        if not isinstance(node, dict):
            return
        visitor = self._statement_visitors.get(node.get("nodeType", ""))
        if visitor is None:
            # Placeholder, Break, Continue, InlineAssembly, ...: no fact
            logger.debug("No facts for statement %s", node.get("nodeType"))
            return
        visitor(node, facts)

    def _visit_block(self, node: dict, facts: _BodyFacts) -> None:
        for stmt in node.get("statements", []) or []:
            self._visit_statement(stmt, facts)

    def _visit_if(self, node: dict, facts: _BodyFacts) -> None:
        self._visit_expression(node.get("condition"), facts, captured=True)
        self._visit_statement(node.get("trueBody"), facts)
        self._visit_statement(node.get("falseBody"), facts)

    def _visit_for(self, node: dict, facts: _BodyFacts) -> None:
        self._visit_statement(node.get("initializationExpression"), facts)
        self._visit_expression(node.get("condition"), facts, captured=True)
        self._visit_statement(node.get("body"), facts)
        self._visit_statement(node.get("loopExpression"), facts)

    def _visit_loop(self, node: dict, facts: _BodyFacts) -> None:
        if node.get("nodeType") == "DoWhileStatement":
            self._visit_statement(node.get("body"), facts)
            self._visit_expression(node.get("condition"), facts, captured=True)
        else:
            self._visit_expression(node.get("condition"), facts, captured=True)
            self._visit_statement(node.get("body"), facts)

    def _visit_expression_statement(self, node: dict, facts: _BodyFacts) -> None:
        # A bare call statement discards its result
        self._visit_expression(node.get("expression"), facts, captured=False)

    def _visit_variable_declaration(self, node: dict, facts: _BodyFacts) -> None:
        self._visit_expression(node.get("initialValue"), facts, captured=True)

    def _visit_return(self, node: dict, facts: _BodyFacts) -> None:
        self._visit_expression(node.get("expression"), facts, captured=True)

    def _visit_emit(self, node: dict, facts: _BodyFacts) -> None:
        call = node.get("eventCall") or {}
        for arg in call.get("arguments", []) or []:
            self._visit_expression(arg, facts, captured=True)

    def _visit_revert(self, node: dict, facts: _BodyFacts) -> None:
        call = node.get("errorCall") or {}
        args = call.get("arguments", []) or []
        facts.requires.append(RequireCall(
            kind="revert",
            args=tuple(self.render(a) for a in args),
            line=self._line(node),
        ))
        for arg in args:
            self._visit_expression(arg, facts, captured=True)

    def _visit_try(self, node: dict, facts: _BodyFacts) -> None:
        self._visit_expression(node.get("externalCall"), facts, captured=True)
        for clause in node.get("clauses", []) or []:
            if isinstance(clause, dict):
                self._visit_statement(clause.get("block"), facts)

    # ── Expressions ──────────────────────────────────────────────────

    def _visit_expression(self, node: Any, facts: _BodyFacts, captured: bool) -> None:
        if not isinstance(node, dict):
            return
        visitor = self._expression_visitors.get(node.get("nodeType", ""))
        if visitor is None:
            # Identifier, Literal, NewExpression, ...: no fact
            return
        visitor(node, facts, captured)

    def _visit_function_call(self, node: dict, facts: _BodyFacts, captured: bool) -> None:
        callee = node.get("expression") or {}
        args = node.get("arguments", []) or []

        if callee.get("nodeType") == "Identifier" and callee.get("name") in _REQUIRE_NAMES:
            facts.requires.append(RequireCall(
                kind=callee["name"],
                args=tuple(self.render(a) for a in args),
                line=self._line(node),
            ))

        # Receiver and call options are evaluated before the arguments
        self._visit_expression(callee, facts, captured=True)
        for arg in args:
            self._visit_expression(arg, facts, captured=True)

        member, value_attached = self._unwrap_callee(callee)
        if member is not None and member.get("memberName") in EXTERNAL_CALL_MEMBERS:
            facts.external_calls.append(ExternalCall(
                kind=member["memberName"],
                line=self._line(node),
                target=self.render(member.get("expression")),
                value_attached=value_attached,
                captured=captured,
            ))

    def _visit_call_options(self, node: dict, facts: _BodyFacts, captured: bool) -> None:
        self._visit_expression(node.get("expression"), facts, captured=True)
        for option in node.get("options", []) or []:
            self._visit_expression(option, facts, captured=True)

    def _visit_assignment(self, node: dict, facts: _BodyFacts, captured: bool) -> None:
        # Right-hand side executes before the write lands
        self._visit_expression(node.get("rightHandSide"), facts, captured=True)
        self._visit_expression(node.get("leftHandSide"), facts, captured=True)
        facts.state_changes.append(StateChange(
            target=self.render(node.get("leftHandSide")),
            operator=node.get("operator", "="),
            line=self._line(node),
        ))

    def _visit_binary(self, node: dict, facts: _BodyFacts, captured: bool) -> None:
        self._visit_expression(node.get("leftExpression"), facts, captured=True)
        self._visit_expression(node.get("rightExpression"), facts, captured=True)

    def _visit_unary(self, node: dict, facts: _BodyFacts, captured: bool) -> None:
        self._visit_expression(node.get("subExpression"), facts, captured=True)

    def _visit_conditional(self, node: dict, facts: _BodyFacts, captured: bool) -> None:
        self._visit_expression(node.get("condition"), facts, captured=True)
        self._visit_expression(node.get("trueExpression"), facts, captured)
        self._visit_expression(node.get("falseExpression"), facts, captured)

    def _visit_tuple(self, node: dict, facts: _BodyFacts, captured: bool) -> None:
        for component in node.get("components", []) or []:
            self._visit_expression(component, facts, captured)

    def _visit_index_access(self, node: dict, facts: _BodyFacts, captured: bool) -> None:
        self._visit_expression(node.get("baseExpression"), facts, captured=True)
        self._visit_expression(node.get("indexExpression"), facts, captured=True)

    def _visit_member_access(self, node: dict, facts: _BodyFacts, captured: bool) -> None:
        self._visit_expression(node.get("expression"), facts, captured=True)

    @staticmethod
    def _unwrap_callee(callee: dict) -> tuple[dict | None, bool]:
        """Return (MemberAccess node, value_attached) for a call target."""
        value_attached = False
        if callee.get("nodeType") == "FunctionCallOptions":
            value_attached = "value" in (callee.get("names") or [])
            callee = callee.get("expression") or {}
        if callee.get("nodeType") == "MemberAccess":
            return callee, value_attached
        return None, value_attached

    # ── Rendering ────────────────────────────────────────────────────

    def render(self, node: Any) -> str:
        """Render an expression node as comparable source-like text."""
        if not isinstance(node, dict):
            return ""

        nt = node.get("nodeType", "")

        if nt == "Identifier":
            return node.get("name", "")

        if nt == "Literal":
            kind = node.get("kind", "")
            value = node.get("value")
            if kind == "string":
                return f'"{value if value is not None else ""}"'
            if kind == "hexString":
                return f'hex"{node.get("hexValue", "")}"'
            text = str(value) if value is not None else ""
            if node.get("subdenomination"):
                text = f"{text} {node['subdenomination']}"
            return text

        if nt == "MemberAccess":
            return f"{self.render(node.get('expression'))}.{node.get('memberName', '')}"

        if nt == "IndexAccess":
            base = self.render(node.get("baseExpression"))
            idx = self.render(node.get("indexExpression"))
            return f"{base}[{idx}]"

        if nt == "BinaryOperation":
            left = self.render(node.get("leftExpression"))
            right = self.render(node.get("rightExpression"))
            return f"{left} {node.get('operator', '')} {right}"

        if nt == "UnaryOperation":
            operand = self.render(node.get("subExpression"))
            op = node.get("operator", "")
            if not node.get("prefix", True):
                return f"{operand}{op}"
            return f"{op} {operand}" if op == "delete" else f"{op}{operand}"

        if nt == "FunctionCall":
            callee = self.render(node.get("expression"))
            args = ", ".join(self.render(a) for a in node.get("arguments", []) or [])
            return f"{callee}({args})"

        if nt == "FunctionCallOptions":
            callee = self.render(node.get("expression"))
            names = node.get("names", []) or []
            options = node.get("options", []) or []
            pairs = ", ".join(
                f"{n}: {self.render(o)}" for n, o in zip(names, options)
            )
            return f"{callee}{{{pairs}}}"

        if nt == "ElementaryTypeNameExpression":
            type_name = node.get("typeName")
            if isinstance(type_name, dict):
                return type_name.get("name", "")
            return str(type_name or "")

        if nt == "TupleExpression":
            parts = ", ".join(self.render(c) for c in node.get("components", []) or [])
            return f"({parts})"

        if nt == "Conditional":
            cond = self.render(node.get("condition"))
            yes = self.render(node.get("trueExpression"))
            no = self.render(node.get("falseExpression"))
            return f"{cond} ? {yes} : {no}"

        if nt == "NewExpression":
            return f"new {self.type_descriptor(node.get('typeName'))}"

        return ""

    def type_descriptor(self, type_node: Any) -> TypeDescriptor:
        """Convert an AST TypeName node to a TypeDescriptor."""
        if not isinstance(type_node, dict):
            return TypeDescriptor.unknown()
        nt = type_node.get("nodeType", "")

        if nt == "ElementaryTypeName":
            return TypeDescriptor.elementary(type_node.get("name", ""))

        if nt == "UserDefinedTypeName":
            path = type_node.get("pathNode", type_node.get("name", ""))
            if isinstance(path, dict):
                path = path.get("name", "")
            return TypeDescriptor(kind=TypeKind.USER_DEFINED, name=str(path or ""))

        if nt == "Mapping":
            return TypeDescriptor(
                kind=TypeKind.MAPPING,
                key=self.type_descriptor(type_node.get("keyType")),
                value=self.type_descriptor(type_node.get("valueType")),
            )

        if nt == "ArrayTypeName":
            length = type_node.get("length")
            return TypeDescriptor(
                kind=TypeKind.ARRAY,
                base=self.type_descriptor(type_node.get("baseType")),
                length=self.render(length) or None if isinstance(length, dict) else None,
            )

        if nt == "FunctionTypeName":
            return TypeDescriptor(kind=TypeKind.FUNCTION)

        return TypeDescriptor.unknown()

    def _line(self, node: dict) -> int:
        return SourceLocation.from_src(node.get("src", ""), self._source).line


# ── Helpers ──────────────────────────────────────────────────────────────────


def _enum_or(enum_cls: Any, value: Any, default: Any) -> Any:
    try:
        return enum_cls(value)
    except ValueError:
        return default

