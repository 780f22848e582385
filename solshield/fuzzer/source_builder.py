"""Structured Solidity source builder.

Generated test files are assembled from small node objects and turned
into text by a single ``render()`` pass:

  SolidityFile
    └── ContractUnit            contract X is Test { ... }
          ├── Line / Comment    state variable declarations, comments
          └── FunctionUnit      function / constructor / modifier / receive
                ├── Line        a single statement
                ├── IfBlock     if (cond) { ... }
                └── TryCatch    try call { ... } catch {}

Every brace is produced by the node that owns the block, and every name
used as a declaration is validated when the node is created.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

INDENT = "    "

_IDENT_RE = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")


class InvalidIdentifierError(ValueError):
    """Raised when a declaration name is not a valid Solidity identifier."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Invalid Solidity identifier: {name!r}")
        self.name = name


def identifier(name: str) -> str:
    """Return ``name`` unchanged if it is a valid identifier."""
    if not isinstance(name, str) or not _IDENT_RE.match(name):
        raise InvalidIdentifierError(str(name))
    return name


# ── Statements ───────────────────────────────────────────────────────────────


class Stmt:
    """Base statement node."""

    def render(self, depth: int) -> list[str]:
        raise NotImplementedError


@dataclass
class Line(Stmt):
    """One line of source emitted verbatim at the current depth."""
    text: str

    def render(self, depth: int) -> list[str]:
        return [f"{INDENT * depth}{self.text}"]


@dataclass
class Comment(Stmt):
    text: str
    doc: bool = False

    def render(self, depth: int) -> list[str]:
        marker = "///" if self.doc else "//"
        return [f"{INDENT * depth}{marker} {self.text}"]


@dataclass
class Blank(Stmt):
    def render(self, depth: int) -> list[str]:
        return [""]


@dataclass
class IfBlock(Stmt):
    condition: str
    body: list[Stmt] = field(default_factory=list)

    def render(self, depth: int) -> list[str]:
        pad = INDENT * depth
        lines = [f"{pad}if ({self.condition}) {{"]
        for stmt in self.body:
            lines.extend(stmt.render(depth + 1))
        lines.append(f"{pad}}}")
        return lines


@dataclass
class TryCatch(Stmt):
    """``try <call> { <on_success> } catch {}`` — swallows reverts of the call."""
    call: str
    on_success: list[Stmt] = field(default_factory=list)

    def render(self, depth: int) -> list[str]:
        pad = INDENT * depth
        if not self.on_success:
            return [f"{pad}try {self.call} {{}} catch {{}}"]
        lines = [f"{pad}try {self.call} {{"]
        for stmt in self.on_success:
            lines.extend(stmt.render(depth + 1))
        lines.append(f"{pad}}} catch {{}}")
        return lines


# ── Declarations ─────────────────────────────────────────────────────────────


@dataclass
class Param:
    type: str
    name: str

    def __post_init__(self) -> None:
        identifier(self.name)

    def __str__(self) -> str:
        return f"{self.type} {self.name}"


@dataclass
class FunctionUnit:
    """A function-like member: function, constructor, modifier, receive or fallback."""
    name: str
    params: list[Param] = field(default_factory=list)
    qualifiers: list[str] = field(default_factory=list)
    body: list[Stmt] = field(default_factory=list)
    doc: list[str] = field(default_factory=list)
    kind: str = "function"

    _HEADERLESS = ("constructor", "receive", "fallback")

    def __post_init__(self) -> None:
        if self.kind not in ("function", "modifier") + self._HEADERLESS:
            raise ValueError(f"Unknown function kind: {self.kind}")
        if self.kind in ("function", "modifier"):
            identifier(self.name)

    def header(self) -> str:
        params = ", ".join(str(p) for p in self.params)
        if self.kind in self._HEADERLESS:
            head = f"{self.kind}({params})"
        else:
            head = f"{self.kind} {self.name}({params})"
        if self.qualifiers:
            head = f"{head} {' '.join(self.qualifiers)}"
        return head

    def render(self, depth: int) -> list[str]:
        pad = INDENT * depth
        lines = [f"{pad}/// {text}" for text in self.doc]
        lines.append(f"{pad}{self.header()} {{")
        for stmt in self.body:
            lines.extend(stmt.render(depth + 1))
        lines.append(f"{pad}}}")
        return lines


@dataclass
class ContractUnit:
    name: str
    bases: list[str] = field(default_factory=list)
    members: list[Stmt | FunctionUnit] = field(default_factory=list)

    def __post_init__(self) -> None:
        identifier(self.name)
        for base in self.bases:
            identifier(base)

    def add(self, *members: Stmt | FunctionUnit) -> "ContractUnit":
        self.members.extend(members)
        return self

    def add_function(self, fn: FunctionUnit) -> "ContractUnit":
        """Append a function, separated from the previous member by a blank line."""
        if self.members and not isinstance(self.members[-1], Blank):
            self.members.append(Blank())
        self.members.append(fn)
        return self

    def render(self, depth: int = 0) -> list[str]:
        pad = INDENT * depth
        inherit = f" is {', '.join(self.bases)}" if self.bases else ""
        lines = [f"{pad}contract {self.name}{inherit} {{"]
        for member in self.members:
            lines.extend(member.render(depth + 1))
        lines.append(f"{pad}}}")
        return lines


@dataclass
class SolidityFile:
    pragma: str
    imports: list[str] = field(default_factory=list)
    units: list[ContractUnit] = field(default_factory=list)
    license: str = "MIT"
    import_note: str = ""

    def render(self) -> str:
        lines = [
            f"// SPDX-License-Identifier: {self.license}",
            f"pragma solidity {self.pragma};",
            "",
        ]
        for i, path in enumerate(self.imports):
            # The note belongs to the project-relative import, which comes last
            if self.import_note and i == len(self.imports) - 1:
                lines.append(f"// {self.import_note}")
            lines.append(f'import "{path}";')
        for unit in self.units:
            lines.append("")
            lines.extend(unit.render())
        lines.append("")
        return "\n".join(lines)
