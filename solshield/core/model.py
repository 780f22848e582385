"""Normalized contract model produced by the model builder.

Everything here is immutable: a ContractModel is built once per analysis
run and then only read by the discovery engines and the synthesizers.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum


# ── Enums ────────────────────────────────────────────────────────────────────


class ContractKind(str, Enum):
    CONTRACT = "contract"
    INTERFACE = "interface"
    LIBRARY = "library"


class Visibility(str, Enum):
    PUBLIC = "public"
    EXTERNAL = "external"
    INTERNAL = "internal"
    PRIVATE = "private"


class StateMutability(str, Enum):
    PURE = "pure"
    VIEW = "view"
    NONPAYABLE = "nonpayable"
    PAYABLE = "payable"


class FunctionKind(str, Enum):
    FUNCTION = "function"
    CONSTRUCTOR = "constructor"
    FALLBACK = "fallback"
    RECEIVE = "receive"


class TypeKind(str, Enum):
    ELEMENTARY = "elementary"
    USER_DEFINED = "user_defined"
    MAPPING = "mapping"
    ARRAY = "array"
    FUNCTION = "function"
    UNKNOWN = "unknown"


# Call members that transfer control to another address.
EXTERNAL_CALL_MEMBERS = frozenset({"call", "transfer", "send", "delegatecall", "staticcall"})

_VALUE_TYPE_RE = re.compile(r"^(address|bool|u?int\d*|bytes([1-9]|[12]\d|3[0-2]))$")


# ── Types ────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class TypeDescriptor:
    """Semantic type of a variable or parameter."""

    kind: TypeKind
    name: str = ""
    key: TypeDescriptor | None = None
    value: TypeDescriptor | None = None
    base: TypeDescriptor | None = None
    length: str | None = None

    def __str__(self) -> str:
        if self.kind == TypeKind.MAPPING:
            return f"mapping({self.key} => {self.value})"
        if self.kind == TypeKind.ARRAY:
            return f"{self.base}[{self.length or ''}]"
        if self.kind == TypeKind.FUNCTION:
            return "function"
        return self.name or "unknown"

    @classmethod
    def elementary(cls, name: str) -> TypeDescriptor:
        return cls(kind=TypeKind.ELEMENTARY, name=name)

    @classmethod
    def unknown(cls) -> TypeDescriptor:
        return cls(kind=TypeKind.UNKNOWN)

    @property
    def is_mapping(self) -> bool:
        return self.kind == TypeKind.MAPPING

    @property
    def is_array(self) -> bool:
        return self.kind == TypeKind.ARRAY

    @property
    def is_dynamic_bytes(self) -> bool:
        """string or bytes — reference types without a fixed size."""
        return self.kind == TypeKind.ELEMENTARY and self.name in ("string", "bytes")

    @property
    def is_value_type(self) -> bool:
        """Primitive value type (address, bool, intN, uintN, bytesN)."""
        return self.kind == TypeKind.ELEMENTARY and bool(_VALUE_TYPE_RE.match(self.name))


@dataclass(frozen=True)
class Parameter:
    """Function or event parameter."""

    name: str
    type: TypeDescriptor
    storage_location: str = ""
    indexed: bool = False


# ── Body facts ───────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class RequireCall:
    """A require(...) or revert(...) call site."""

    kind: str  # "require" | "revert"
    args: tuple[str, ...] = ()
    line: int = 0


@dataclass(frozen=True)
class ExternalCall:
    """A low-level call site (call, send, transfer, delegatecall, staticcall)."""

    kind: str
    line: int
    target: str = ""
    value_attached: bool = False
    captured: bool = True  # result consumed by the enclosing statement


@dataclass(frozen=True)
class StateChange:
    """An assignment or compound assignment."""

    target: str
    operator: str
    line: int

    @property
    def root(self) -> str:
        """Variable the target path starts from (``balances[a].x`` -> ``balances``)."""
        return re.split(r"[.\[]", self.target, maxsplit=1)[0]


# ── Declarations ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class StateVariable:
    name: str
    type: TypeDescriptor
    visibility: Visibility = Visibility.INTERNAL
    constant: bool = False
    immutable: bool = False
    line: int = 0

    @property
    def is_mapping(self) -> bool:
        return self.type.is_mapping

    @property
    def key_type(self) -> TypeDescriptor | None:
        return self.type.key if self.type.is_mapping else None

    @property
    def value_type(self) -> TypeDescriptor | None:
        return self.type.value if self.type.is_mapping else None


@dataclass(frozen=True)
class FunctionModel:
    name: str
    kind: FunctionKind = FunctionKind.FUNCTION
    visibility: Visibility = Visibility.PUBLIC
    mutability: StateMutability = StateMutability.NONPAYABLE
    parameters: tuple[Parameter, ...] = ()
    modifiers: tuple[str, ...] = ()
    requires: tuple[RequireCall, ...] = ()
    external_calls: tuple[ExternalCall, ...] = ()
    state_changes: tuple[StateChange, ...] = ()
    line: int = 0

    @property
    def is_constructor(self) -> bool:
        return self.kind == FunctionKind.CONSTRUCTOR

    @property
    def is_special(self) -> bool:
        """Constructor, fallback or receive."""
        return self.kind != FunctionKind.FUNCTION

    @property
    def is_payable(self) -> bool:
        return self.mutability == StateMutability.PAYABLE

    @property
    def is_exposed(self) -> bool:
        return self.visibility in (Visibility.PUBLIC, Visibility.EXTERNAL)

    def has_modifier(self, names: frozenset[str] | set[str]) -> bool:
        return any(m in names for m in self.modifiers)


@dataclass(frozen=True)
class EventModel:
    name: str
    parameters: tuple[Parameter, ...] = ()
    anonymous: bool = False
    line: int = 0

    @property
    def indexed_count(self) -> int:
        return sum(1 for p in self.parameters if p.indexed)


@dataclass(frozen=True)
class ModifierModel:
    name: str
    parameters: tuple[Parameter, ...] = ()
    line: int = 0


@dataclass(frozen=True)
class ContractModel:
    """Flat, queryable view of one contract definition."""

    name: str
    kind: ContractKind = ContractKind.CONTRACT
    base_contracts: tuple[str, ...] = ()
    state_vars: tuple[StateVariable, ...] = ()
    functions: tuple[FunctionModel, ...] = ()
    events: tuple[EventModel, ...] = ()
    modifiers: tuple[ModifierModel, ...] = ()
    structs: tuple[str, ...] = ()
    line: int = 0
    mappings: tuple[StateVariable, ...] = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "mappings", tuple(v for v in self.state_vars if v.is_mapping)
        )

    @property
    def self_reference(self) -> str:
        """Lowercased contract name used as self reference in assertion templates."""
        return self.name.lower()

    @property
    def constructor(self) -> FunctionModel | None:
        return next((f for f in self.functions if f.is_constructor), None)

    @property
    def has_payable_function(self) -> bool:
        return any(f.is_payable for f in self.functions)

    def is_struct(self, type_: TypeDescriptor) -> bool:
        """User-defined type naming a struct declared in this contract."""
        if type_.kind != TypeKind.USER_DEFINED:
            return False
        return type_.name.rsplit(".", 1)[-1] in self.structs

    def get_function(self, name: str) -> FunctionModel | None:
        return next((f for f in self.functions if f.name == name), None)

    def has_function(self, name: str) -> bool:
        return self.get_function(name) is not None

    def find_state_var(self, names: tuple[str, ...] | list[str]) -> StateVariable | None:
        """First state variable (in declaration order) whose name is in ``names``."""
        return next((v for v in self.state_vars if v.name in names), None)
