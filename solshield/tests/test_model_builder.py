"""Tests for solshield.core.ast_analyzer — solc AST to ContractModel."""

from __future__ import annotations

from solshield.core.ast_analyzer import (
    ContractModelBuilder,
    SourceLocation,
)
from solshield.core.model import (
    ContractKind,
    FunctionKind,
    StateMutability,
    TypeKind,
    Visibility,
)
from solshield.ingestion.solidity_compiler import ParseResult


# ── Source locations ─────────────────────────────────────────────────────────


class TestSourceLocation:
    def test_line_from_byte_offset(self):
        source = b"line1\nline2\nline3\n"
        loc = SourceLocation.from_src("6:5:0", source)
        assert loc.line == 2
        assert loc.end_line == 2

    def test_multibyte_characters_count_as_bytes(self):
        source = "// é\nx".encode("utf-8")
        # "é" is two bytes, so "x" starts at byte 6
        assert SourceLocation.from_src("6:1:0", source).line == 2

    def test_malformed_src(self):
        loc = SourceLocation.from_src("garbage", b"a\nb")
        assert loc.line == 0
        assert loc.offset == 0

    def test_no_source(self):
        assert SourceLocation.from_src("10:2:0").line == 0


# ── Declarations ─────────────────────────────────────────────────────────────


class TestDeclarations:
    def test_contract_header(self, ast, build_model):
        node = ast.contract("Pool", [], kind="contract", bases=["Ownable", "Pausable"], line=4)
        model = build_model(node)
        assert model.name == "Pool"
        assert model.kind == ContractKind.CONTRACT
        assert model.base_contracts == ("Ownable", "Pausable")
        assert model.line == 4

    def test_interface_kind(self, ast, build_model):
        assert build_model(ast.contract("IERC20", [], kind="interface")).kind == ContractKind.INTERFACE

    def test_state_variables(self, vault_model):
        names = [v.name for v in vault_model.state_vars]
        assert names == ["balances", "totalDeposited", "owner"]
        balances = vault_model.state_vars[0]
        assert balances.is_mapping
        assert str(balances.type) == "mapping(address => uint256)"
        assert str(balances.key_type) == "address"
        assert balances.visibility == Visibility.PUBLIC
        assert balances.line == 3

    def test_mappings_are_derived(self, vault_model):
        assert [m.name for m in vault_model.mappings] == ["balances"]

    def test_constant_and_immutable(self, ast, build_model):
        node = ast.contract("C", [
            ast.state_var("FEE", ast.elementary("uint256"), constant=True, mutability="constant"),
            ast.state_var("token", ast.elementary("address"), mutability="immutable"),
        ])
        fee, token = build_model(node).state_vars
        assert fee.constant and not fee.immutable
        assert token.immutable and not token.constant

    def test_type_descriptors(self, ast, build_model):
        node = ast.contract("C", [
            ast.state_var("ids", ast.array(ast.elementary("uint256"))),
            ast.state_var("slots", ast.array(ast.elementary("bytes32"), ast.lit("4"))),
            ast.state_var("pos", ast.user_type("Position")),
            ast.state_var("nested", ast.mapping(
                ast.elementary("address"),
                ast.mapping(ast.elementary("address"), ast.elementary("uint256")),
            )),
        ])
        ids, slots, pos, nested = build_model(node).state_vars
        assert ids.type.kind == TypeKind.ARRAY
        assert str(ids.type) == "uint256[]"
        assert str(slots.type) == "bytes32[4]"
        assert pos.type.kind == TypeKind.USER_DEFINED
        assert str(pos.type) == "Position"
        assert str(nested.type) == "mapping(address => mapping(address => uint256))"

    def test_unknown_type_node(self, ast, build_model):
        node = ast.contract("C", [ast.state_var("x", {"nodeType": "Weird"})])
        assert build_model(node).state_vars[0].type.kind == TypeKind.UNKNOWN

    def test_functions_keep_declaration_line(self, vault_model):
        assert [(f.name, f.line) for f in vault_model.functions] == [
            ("constructor", 8),
            ("deposit", 11),
            ("withdraw", 16),
            ("emergencyWithdraw", 24),
        ]

    def test_function_attributes(self, vault_model):
        ctor = vault_model.constructor
        assert ctor is not None and ctor.kind == FunctionKind.CONSTRUCTOR
        deposit = vault_model.get_function("deposit")
        assert deposit.mutability == StateMutability.PAYABLE
        assert deposit.is_payable
        assert vault_model.has_payable_function

    def test_parameters_and_modifiers_keep_order(self, ast, build_model):
        fn = ast.function(
            "setFee",
            params=[ast.param("fee", ast.elementary("uint16")), ast.param("", ast.elementary("bool"))],
            modifiers=["onlyOwner", "whenNotPaused"],
            visibility="external",
        )
        model = build_model(ast.contract("C", [fn]))
        set_fee = model.functions[0]
        assert [p.name for p in set_fee.parameters] == ["fee", ""]
        assert set_fee.modifiers == ("onlyOwner", "whenNotPaused")
        assert set_fee.visibility == Visibility.EXTERNAL

    def test_special_functions_named_by_kind(self, ast, build_model):
        model = build_model(ast.contract("C", [
            ast.function("", kind="receive", visibility="external", mutability="payable"),
            ast.function("", kind="fallback", visibility="external"),
        ]))
        assert [f.name for f in model.functions] == ["receive", "fallback"]
        assert all(f.is_special for f in model.functions)

    def test_events_and_modifiers(self, ast, build_model):
        model = build_model(ast.contract("C", [
            ast.event("Moved", [
                ast.param("from", ast.elementary("address"), indexed=True),
                ast.param("amount", ast.elementary("uint256")),
            ], anonymous=True, line=7),
            ast.modifier("onlyKeeper", line=9),
        ]))
        event = model.events[0]
        assert event.anonymous
        assert event.indexed_count == 1
        assert event.line == 7
        assert model.modifiers[0].name == "onlyKeeper"
        assert model.modifiers[0].line == 9


# ── Body facts ───────────────────────────────────────────────────────────────


class TestBodyFacts:
    def test_require_calls(self, vault_model):
        withdraw = vault_model.get_function("withdraw")
        assert [(r.kind, r.args, r.line) for r in withdraw.requires] == [
            ("require", ("balances[msg.sender] >= amount", '"Insufficient"'), 17),
            ("require", ("ok",), 19),
        ]

    def test_value_call_recorded(self, vault_model):
        (call,) = vault_model.get_function("withdraw").external_calls
        assert call.kind == "call"
        assert call.line == 18
        assert call.target == "msg.sender"
        assert call.value_attached
        assert call.captured

    def test_bare_send_is_not_captured(self, vault_model):
        (send,) = vault_model.get_function("emergencyWithdraw").external_calls
        assert send.kind == "send"
        assert send.target == "payable(msg.sender)"
        assert not send.captured
        assert not send.value_attached

    def test_state_changes_in_order(self, vault_model):
        withdraw = vault_model.get_function("withdraw")
        assert [(s.target, s.operator, s.line) for s in withdraw.state_changes] == [
            ("balances[msg.sender]", "-=", 20),
            ("totalDeposited", "-=", 21),
        ]
        assert withdraw.state_changes[0].root == "balances"

    def test_revert_statement_counts_as_require(self, ast, build_model):
        body = ast.block(
            ast.if_(
                ast.binop(ast.ident("amount"), "==", ast.lit("0")),
                ast.block(ast.revert("ZeroAmount", ast.ident("amount"), line=6)),
            )
        )
        model = build_model(ast.contract("C", [ast.function("f", body=body)]))
        (req,) = model.functions[0].requires
        assert req.kind == "revert"
        assert req.args == ("amount",)
        assert req.line == 6

    def test_revert_function_call(self, ast, build_model):
        body = ast.block(ast.stmt(ast.call(ast.ident("revert"), ast.lit("no", kind="string"), line=3)))
        model = build_model(ast.contract("C", [ast.function("f", body=body)]))
        assert model.functions[0].requires[0].kind == "revert"
        assert model.functions[0].requires[0].args == ('"no"',)

    def test_nested_blocks_are_walked(self, ast, build_model):
        transfer = ast.stmt(ast.call(
            ast.member(ast.ident("to"), "transfer"), ast.ident("amount"), line=8), line=8)
        body = ast.block(
            ast.for_(ast.block(ast.unchecked(
                ast.stmt(ast.assign(ast.ident("count"), "+=", ast.lit("1"), line=7), line=7),
                transfer,
            ))),
        )
        fn = build_model(ast.contract("C", [ast.function("f", body=body)])).functions[0]
        assert [s.target for s in fn.state_changes] == ["count"]
        assert [c.kind for c in fn.external_calls] == ["transfer"]

    def test_try_statement_external_call_and_clauses(self, ast, build_model):
        external = ast.call(ast.member(ast.ident("oracle"), "call"), line=4)
        body = ast.block(ast.try_(
            external,
            ast.block(ast.stmt(ast.assign(ast.ident("price"), "=", ast.ident("p"), line=5), line=5)),
        ))
        fn = build_model(ast.contract("C", [ast.function("f", body=body)])).functions[0]
        assert [(c.kind, c.line) for c in fn.external_calls] == [("call", 4)]
        assert [s.line for s in fn.state_changes] == [5]

    def test_call_inside_emit_and_return(self, ast, build_model):
        sent = ast.call(ast.member(ast.ident("a"), "send"), ast.lit("1"), line=3)
        body = ast.block(ast.emit("Sent", sent), ast.ret(ast.call(
            ast.member(ast.ident("b"), "staticcall"), line=4)))
        fn = build_model(ast.contract("C", [ast.function("f", body=body)])).functions[0]
        assert [c.kind for c in fn.external_calls] == ["send", "staticcall"]
        assert all(c.captured for c in fn.external_calls)

    def test_ordinary_member_calls_ignored(self, ast, build_model):
        body = ast.block(ast.stmt(ast.call(
            ast.member(ast.ident("token"), "transferFrom"), ast.ident("a"), line=3), line=3))
        fn = build_model(ast.contract("C", [ast.function("f", body=body)])).functions[0]
        assert fn.external_calls == ()

    def test_unhandled_statements_produce_no_fact(self, ast, build_model):
        body = ast.block({"nodeType": "InlineAssembly"}, {"nodeType": "PlaceholderStatement"})
        fn = build_model(ast.contract("C", [ast.function("f", body=body)])).functions[0]
        assert fn.requires == () and fn.external_calls == () and fn.state_changes == ()

    def test_function_without_body(self, ast, build_model):
        fn = build_model(ast.contract("I", [ast.function("f")], kind="interface")).functions[0]
        assert fn.state_changes == ()


# ── Rendering ────────────────────────────────────────────────────────────────


class TestRender:
    def setup_method(self):
        self.builder = ContractModelBuilder()

    def test_literal_with_subdenomination(self, ast):
        assert self.builder.render(ast.lit("1", subdenomination="ether")) == "1 ether"

    def test_unary_prefix_and_postfix(self, ast):
        assert self.builder.render(ast.unary("!", ast.ident("paused"))) == "!paused"
        assert self.builder.render(ast.unary("++", ast.ident("i"), prefix=False)) == "i++"
        assert self.builder.render(ast.unary("delete", ast.ident("x"))) == "delete x"

    def test_call_options(self, ast):
        node = ast.call(ast.call_options(ast.member(ast.ident("to"), "call"),
                                         value=ast.ident("v"), gas=ast.lit("5000")))
        assert self.builder.render(node) == "to.call{value: v, gas: 5000}()"

    def test_tuple_and_conditional(self, ast):
        cond = {"nodeType": "Conditional", "condition": ast.ident("a"),
                "trueExpression": ast.lit("1"), "falseExpression": ast.lit("2")}
        assert self.builder.render(cond) == "a ? 1 : 2"
        assert self.builder.render(ast.tuple_(ast.ident("x"), ast.ident("y"))) == "(x, y)"

    def test_unknown_shape_renders_empty(self):
        assert self.builder.render({"nodeType": "YulBlock"}) == ""
        assert self.builder.render(None) == ""


# ── Source units ─────────────────────────────────────────────────────────────


class TestSourceUnit:
    @staticmethod
    def _parsed(unit) -> ParseResult:
        return ParseResult(filename="A.sol", source_code="", solc_version="0.8.20", ast=unit)

    def test_contract_nodes_skip_pragmas(self, ast):
        unit = ast.source_unit(ast.contract("A", []), ast.contract("B", []))
        assert [c["name"] for c in self._parsed(unit).contract_nodes()] == ["A", "B"]

    def test_one_model_per_contract_node(self, ast):
        unit = ast.source_unit(ast.contract("IA", [], kind="interface"), ast.contract("A", []))
        builder = ContractModelBuilder(ast.source)
        models = [builder.build(node) for node in self._parsed(unit).contract_nodes()]
        assert [(m.name, m.kind) for m in models] == [
            ("IA", ContractKind.INTERFACE),
            ("A", ContractKind.CONTRACT),
        ]

    def test_empty_source_unit(self):
        assert self._parsed({}).contract_nodes() == []
