"""Tests for solshield.reports.generator — markdown security reports."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from solshield.analyzer.analyzer import ContractAnalysis, ContractAnalyzer
from solshield.core.model import ContractModel
from solshield.reports.generator import ReportGenerator

FIXED_TIME = datetime(2026, 3, 14, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def vault_analysis(vault_model, settings) -> ContractAnalysis:
    return ContractAnalyzer(settings).analyze(vault_model)


@pytest.fixture
def report(vault_analysis) -> str:
    return ReportGenerator().generate_markdown(vault_analysis, "Vault.sol", FIXED_TIME)


class TestMarkdownReport:
    def test_header(self, report):
        assert report.startswith("# Security Report: Vault\n")
        assert "| **Contract** | `Vault` |" in report
        assert "| **Source** | `Vault.sol` |" in report
        assert "| **Date** | 2026-03-14 09:30 UTC |" in report
        assert "| **Security Score** | 35/100 |" in report
        assert "| **Grade** | F |" in report

    def test_summary_counts(self, report):
        assert "| Vulnerabilities | 3 |" in report
        assert "| Invariants | 5 |" in report
        assert "| Gas Optimizations | 2 |" in report
        assert "| 🔴 CRITICAL | 2 |" in report
        assert "| 🟠 HIGH | 1 |" in report
        assert "MEDIUM |" not in report.split("## Vulnerabilities")[0]

    def test_vulnerability_table_and_details(self, report):
        assert "| 🔴 CRITICAL | Reentrancy in withdraw() | `withdraw` | 18 | Reentrancy (SWC-107) |" in report
        assert "### Reentrancy in withdraw()" in report
        assert "- **Id:** `reentrancy_withdraw`" in report
        assert "**Fix:** Move state changes before the external call" in report

    def test_invariant_table(self, report):
        assert (
            "| 🔴 CRITICAL | `vault_accounting` | Vault Accounting Integrity | "
            "`assertEq(vault.totalDeposited(), handler.ghost_balanceSum())` |"
        ) in report
        assert "| `owner_immutable` | Owner Cannot Be Accidentally Changed | _manual_ |" in report

    def test_gas_table(self, report):
        assert "| `owner` | Declare owner as `address immutable` | 5 |" in report

    def test_score_breakdown_in_order(self, report):
        breakdown = report.split("## Score Breakdown")[1]
        rows = [line for line in breakdown.splitlines() if line.startswith("| `")]
        assert rows == [
            "| `reentrancy_withdraw` | CRITICAL | -25 |",
            "| `unchecked_send_emergencyWithdraw` | HIGH | -15 |",
            "| `missing_access_emergencyWithdraw` | CRITICAL | -25 |",
        ]
        assert "| **Total** | | **35/100 (F)** |" in breakdown

    def test_empty_contract(self, settings):
        analysis = ContractAnalyzer(settings).analyze(ContractModel(name="Empty"))
        report = ReportGenerator().generate_markdown(analysis, generated_at=FIXED_TIME)
        assert "| **Source** | `Empty.sol` |" in report
        assert "No vulnerabilities detected." in report
        assert "No invariants discovered." in report
        assert "No gas optimizations suggested." in report
        assert "| **Total** | | **100/100 (A+)** |" in report

    def test_pipe_characters_escaped(self):
        assert ReportGenerator._md_cell("a | b\nc") == "a \\| b c"

    def test_deterministic_with_fixed_time(self, vault_analysis):
        generator = ReportGenerator()
        first = generator.generate_markdown(vault_analysis, "Vault.sol", FIXED_TIME)
        assert first == generator.generate_markdown(vault_analysis, "Vault.sol", FIXED_TIME)
