"""Shared fixtures for the sol-shield test suite.

Model-building and detector tests run on hand-built solc AST fragments,
so no solc binary is needed. Line numbers are encoded through the ``src``
field against a source made only of newlines: offset ``n - 1`` sits on
line ``n``.
"""

from __future__ import annotations

from typing import Any

import pytest

from solshield.core.ast_analyzer import ContractModelBuilder
from solshield.core.config import Settings
from solshield.core.model import (
    ContractModel,
    FunctionKind,
    FunctionModel,
    Parameter,
    RequireCall,
    StateChange,
    StateVariable,
    TypeDescriptor,
    TypeKind,
    Visibility,
)

Node = dict[str, Any]


# ── AST factory ──────────────────────────────────────────────────────────────


class AstFactory:
    """Builds solc-shaped AST nodes."""

    source = "\n" * 500

    @staticmethod
    def src(line: int = 1) -> str:
        return f"{max(line, 1) - 1}:1:0"

    # Types

    def elementary(self, name: str) -> Node:
        return {"nodeType": "ElementaryTypeName", "name": name}

    def user_type(self, name: str) -> Node:
        return {"nodeType": "UserDefinedTypeName", "pathNode": {"name": name}}

    def mapping(self, key: Node, value: Node) -> Node:
        return {"nodeType": "Mapping", "keyType": key, "valueType": value}

    def array(self, base: Node, length: Node | None = None) -> Node:
        return {"nodeType": "ArrayTypeName", "baseType": base, "length": length}

    # Expressions

    def ident(self, name: str) -> Node:
        return {"nodeType": "Identifier", "name": name}

    def lit(self, value: str, kind: str = "number", subdenomination: str | None = None) -> Node:
        return {"nodeType": "Literal", "kind": kind, "value": value,
                "subdenomination": subdenomination}

    def member(self, expr: Node, name: str) -> Node:
        return {"nodeType": "MemberAccess", "expression": expr, "memberName": name}

    def msg_sender(self) -> Node:
        return self.member(self.ident("msg"), "sender")

    def msg_value(self) -> Node:
        return self.member(self.ident("msg"), "value")

    def index(self, base: Node, idx: Node) -> Node:
        return {"nodeType": "IndexAccess", "baseExpression": base, "indexExpression": idx}

    def binop(self, left: Node, op: str, right: Node) -> Node:
        return {"nodeType": "BinaryOperation", "leftExpression": left,
                "operator": op, "rightExpression": right}

    def unary(self, op: str, sub: Node, prefix: bool = True) -> Node:
        return {"nodeType": "UnaryOperation", "operator": op,
                "subExpression": sub, "prefix": prefix}

    def call(self, callee: Node, *args: Node, line: int = 1) -> Node:
        return {"nodeType": "FunctionCall", "expression": callee,
                "arguments": list(args), "src": self.src(line)}

    def call_options(self, callee: Node, **options: Node) -> Node:
        return {"nodeType": "FunctionCallOptions", "expression": callee,
                "names": list(options), "options": list(options.values())}

    def type_conversion(self, type_name: str, arg: Node, line: int = 1) -> Node:
        callee = {"nodeType": "ElementaryTypeNameExpression",
                  "typeName": {"nodeType": "ElementaryTypeName", "name": type_name}}
        return self.call(callee, arg, line=line)

    def assign(self, lhs: Node, op: str, rhs: Node, line: int = 1) -> Node:
        return {"nodeType": "Assignment", "leftHandSide": lhs, "operator": op,
                "rightHandSide": rhs, "src": self.src(line)}

    def tuple_(self, *components: Node | None) -> Node:
        return {"nodeType": "TupleExpression", "components": list(components)}

    # Statements

    def stmt(self, expr: Node, line: int = 1) -> Node:
        return {"nodeType": "ExpressionStatement", "expression": expr, "src": self.src(line)}

    def block(self, *statements: Node) -> Node:
        return {"nodeType": "Block", "statements": list(statements)}

    def unchecked(self, *statements: Node) -> Node:
        return {"nodeType": "UncheckedBlock", "statements": list(statements)}

    def if_(self, condition: Node, true_body: Node, false_body: Node | None = None) -> Node:
        return {"nodeType": "IfStatement", "condition": condition,
                "trueBody": true_body, "falseBody": false_body}

    def for_(self, body: Node, condition: Node | None = None) -> Node:
        return {"nodeType": "ForStatement", "initializationExpression": None,
                "condition": condition, "loopExpression": None, "body": body}

    def var_decl(self, initial: Node, line: int = 1) -> Node:
        return {"nodeType": "VariableDeclarationStatement", "initialValue": initial,
                "src": self.src(line)}

    def ret(self, expr: Node) -> Node:
        return {"nodeType": "Return", "expression": expr}

    def emit(self, event: str, *args: Node) -> Node:
        return {"nodeType": "EmitStatement", "eventCall": self.call(self.ident(event), *args)}

    def revert(self, error: str, *args: Node, line: int = 1) -> Node:
        return {"nodeType": "RevertStatement", "errorCall": self.call(self.ident(error), *args),
                "src": self.src(line)}

    def require(self, *args: Node, line: int = 1) -> Node:
        return self.stmt(self.call(self.ident("require"), *args, line=line), line=line)

    def try_(self, external_call: Node, *blocks: Node) -> Node:
        return {"nodeType": "TryStatement", "externalCall": external_call,
                "clauses": [{"nodeType": "TryCatchClause", "block": b} for b in blocks]}

    # Declarations

    def param(self, name: str, type_node: Node, location: str = "default",
              indexed: bool = False) -> Node:
        return {"nodeType": "VariableDeclaration", "name": name, "typeName": type_node,
                "storageLocation": location, "indexed": indexed}

    def state_var(self, name: str, type_node: Node, visibility: str = "internal",
                  constant: bool = False, mutability: str = "mutable", line: int = 1) -> Node:
        return {"nodeType": "VariableDeclaration", "name": name, "typeName": type_node,
                "visibility": visibility, "constant": constant, "mutability": mutability,
                "stateVariable": True, "src": self.src(line)}

    def function(self, name: str, params: list[Node] | None = None, body: Node | None = None,
                 visibility: str = "public", mutability: str = "nonpayable",
                 kind: str = "function", modifiers: list[str] | None = None,
                 line: int = 1) -> Node:
        return {
            "nodeType": "FunctionDefinition",
            "name": name,
            "kind": kind,
            "visibility": visibility,
            "stateMutability": mutability,
            "parameters": {"nodeType": "ParameterList", "parameters": params or []},
            "modifiers": [
                {"nodeType": "ModifierInvocation", "modifierName": {"name": m}}
                for m in modifiers or []
            ],
            "body": body,
            "src": self.src(line),
        }

    def event(self, name: str, params: list[Node], anonymous: bool = False,
              line: int = 1) -> Node:
        return {"nodeType": "EventDefinition", "name": name, "anonymous": anonymous,
                "parameters": {"nodeType": "ParameterList", "parameters": params},
                "src": self.src(line)}

    def modifier(self, name: str, line: int = 1) -> Node:
        return {"nodeType": "ModifierDefinition", "name": name,
                "parameters": {"nodeType": "ParameterList", "parameters": []},
                "src": self.src(line)}

    def contract(self, name: str, nodes: list[Node], kind: str = "contract",
                 bases: list[str] | None = None, line: int = 1) -> Node:
        return {
            "nodeType": "ContractDefinition",
            "name": name,
            "contractKind": kind,
            "baseContracts": [
                {"nodeType": "InheritanceSpecifier", "baseName": {"name": b}}
                for b in bases or []
            ],
            "nodes": nodes,
            "src": self.src(line),
        }

    def source_unit(self, *contracts: Node) -> Node:
        return {"nodeType": "SourceUnit", "nodes": [
            {"nodeType": "PragmaDirective", "literals": ["solidity", "^", "0.8", ".20"]},
            *contracts,
        ]}


@pytest.fixture
def ast() -> AstFactory:
    return AstFactory()


@pytest.fixture
def build_model(ast: AstFactory):
    """Build a ContractModel from a ContractDefinition node."""
    builder = ContractModelBuilder(ast.source)
    return builder.build


# ── Settings ─────────────────────────────────────────────────────────────────


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None)


# ── Contract fixtures ────────────────────────────────────────────────────────


@pytest.fixture
def vault_node(ast: AstFactory) -> Node:
    """A vault with a reentrant withdraw and an unchecked, unprotected send.

        3  mapping(address => uint256) public balances;
        4  uint256 public totalDeposited;
        5  address public owner;
        6  event Deposit(address user, uint256 amount);
        8  constructor() { owner = msg.sender; }
       11  function deposit() public payable { ... }
       16  function withdraw(uint256 amount) public { ... call at 18 ... }
       24  function emergencyWithdraw() public { send at 25 }
    """
    a = ast
    balances = a.ident("balances")
    sender_balance = a.index(balances, a.msg_sender())
    amount = a.ident("amount")
    uint256 = a.elementary("uint256")

    constructor = a.function(
        "", kind="constructor",
        body=a.block(a.stmt(a.assign(a.ident("owner"), "=", a.msg_sender(), line=9), line=9)),
        line=8,
    )
    deposit = a.function(
        "deposit", mutability="payable",
        body=a.block(
            a.stmt(a.assign(sender_balance, "+=", a.msg_value(), line=12), line=12),
            a.stmt(a.assign(a.ident("totalDeposited"), "+=", a.msg_value(), line=13), line=13),
            a.emit("Deposit", a.msg_sender(), a.msg_value()),
        ),
        line=11,
    )
    withdraw_call = a.call(
        a.call_options(a.member(a.msg_sender(), "call"), value=amount),
        a.lit("", kind="string"),
        line=18,
    )
    withdraw = a.function(
        "withdraw", params=[a.param("amount", uint256)],
        body=a.block(
            a.require(a.binop(sender_balance, ">=", amount), a.lit("Insufficient", kind="string"),
                      line=17),
            a.var_decl(withdraw_call, line=18),
            a.require(a.ident("ok"), line=19),
            a.stmt(a.assign(sender_balance, "-=", amount, line=20), line=20),
            a.stmt(a.assign(a.ident("totalDeposited"), "-=", amount, line=21), line=21),
        ),
        line=16,
    )
    this_balance = a.member(a.type_conversion("address", a.ident("this")), "balance")
    send = a.call(
        a.member(a.type_conversion("payable", a.msg_sender()), "send"),
        this_balance,
        line=25,
    )
    emergency = a.function(
        "emergencyWithdraw",
        body=a.block(a.stmt(send, line=25)),
        line=24,
    )

    return a.contract("Vault", [
        a.state_var("balances", a.mapping(a.elementary("address"), uint256), "public", line=3),
        a.state_var("totalDeposited", uint256, "public", line=4),
        a.state_var("owner", a.elementary("address"), "public", line=5),
        a.event("Deposit", [a.param("user", a.elementary("address")),
                            a.param("amount", uint256)], line=6),
        constructor, deposit, withdraw, emergency,
    ], line=2)


@pytest.fixture
def vault_model(vault_node: Node, build_model) -> ContractModel:
    return build_model(vault_node)


def _uint() -> TypeDescriptor:
    return TypeDescriptor.elementary("uint256")


def _address() -> TypeDescriptor:
    return TypeDescriptor.elementary("address")


def _mapping(value: TypeDescriptor) -> TypeDescriptor:
    return TypeDescriptor(kind=TypeKind.MAPPING, key=_address(), value=value)


@pytest.fixture
def token_model() -> ContractModel:
    """An owner-mintable ERC20-like token, built directly as a model."""
    return ContractModel(
        name="Token",
        state_vars=(
            StateVariable("balanceOf", _mapping(_uint()), Visibility.PUBLIC, line=3),
            StateVariable("totalSupply", _uint(), Visibility.PUBLIC, line=4),
            StateVariable("allowance", _mapping(_mapping(_uint())), Visibility.PUBLIC, line=5),
            StateVariable("owner", _address(), Visibility.PUBLIC, line=6),
        ),
        functions=(
            FunctionModel(
                name="constructor",
                kind=FunctionKind.CONSTRUCTOR,
                parameters=(Parameter("initialSupply", _uint()),),
                state_changes=(
                    StateChange("owner", "=", 9),
                    StateChange("totalSupply", "=", 10),
                    StateChange("balanceOf[msg.sender]", "=", 11),
                ),
                line=8,
            ),
            FunctionModel(
                name="transfer",
                parameters=(Parameter("to", _address()), Parameter("amount", _uint())),
                requires=(
                    RequireCall("require", ("to != address(0)", '"zero address"'), 15),
                    RequireCall("require", ("balanceOf[msg.sender] >= amount",), 16),
                ),
                state_changes=(
                    StateChange("balanceOf[msg.sender]", "-=", 17),
                    StateChange("balanceOf[to]", "+=", 18),
                ),
                line=14,
            ),
            FunctionModel(
                name="approve",
                parameters=(Parameter("spender", _address()), Parameter("amount", _uint())),
                state_changes=(StateChange("allowance[msg.sender][spender]", "=", 23),),
                line=22,
            ),
            FunctionModel(
                name="transferFrom",
                parameters=(
                    Parameter("from", _address()),
                    Parameter("to", _address()),
                    Parameter("amount", _uint()),
                ),
                requires=(RequireCall("require", ("allowance[from][msg.sender] >= amount",), 28),),
                state_changes=(
                    StateChange("allowance[from][msg.sender]", "-=", 29),
                    StateChange("balanceOf[from]", "-=", 30),
                    StateChange("balanceOf[to]", "+=", 31),
                ),
                line=27,
            ),
            FunctionModel(
                name="mint",
                parameters=(Parameter("to", _address()), Parameter("amount", _uint())),
                modifiers=("onlyOwner",),
                state_changes=(
                    StateChange("totalSupply", "+=", 35),
                    StateChange("balanceOf[to]", "+=", 36),
                ),
                line=34,
            ),
            FunctionModel(
                name="burn",
                parameters=(Parameter("amount", _uint()),),
                requires=(RequireCall("require", ("balanceOf[msg.sender] >= amount",), 40),),
                state_changes=(
                    StateChange("balanceOf[msg.sender]", "-=", 41),
                    StateChange("totalSupply", "-=", 42),
                ),
                line=39,
            ),
        ),
    )

