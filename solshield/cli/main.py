"""sol-shield CLI — smart contract security test advisor.

Usage:
    sol-shield analyze <file>       Discover invariants, vulnerabilities and gas issues
    sol-shield generate <file>      Generate Foundry invariant and PoC test files
    sol-shield full <file>          Both of the above

Examples:
    sol-shield analyze ./src/Vault.sol
    sol-shield analyze ./src/Vault.sol -f md -o reports/
    sol-shield full ./src/Token.sol -o test/
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from solshield.analyzer.analyzer import ContractAnalysis
from solshield.core.config import get_settings
from solshield.core.errors import ArtifactWriteError, InputError
from solshield.core.logging import setup_logging
from solshield.core.types import SecurityScore

__version__ = "0.1.0"


# ── Coloured output helpers ──────────────────────────────────────────────────

_RESET = "\033[0m"
_BOLD = "\033[1m"
_RED = "\033[91m"
_YELLOW = "\033[93m"
_GREEN = "\033[92m"
_BLUE = "\033[94m"
_CYAN = "\033[96m"
_MAGENTA = "\033[95m"
_DIM = "\033[2m"

_SEV_COLOR = {
    "CRITICAL": _RED,
    "HIGH": _YELLOW,
    "MEDIUM": _BLUE,
    "LOW": _DIM,
}

_RULE = "─" * 40


def _c(text: str, code: str) -> str:
    return f"{code}{text}{_RESET}"


def _badge(severity: str) -> str:
    return _c(f"[{severity}]", _SEV_COLOR.get(severity, "") + _BOLD)


# ── Banner ───────────────────────────────────────────────────────────────────

BANNER = rf"""
{_BOLD}{_CYAN}           _           _     _      _     _
 ___  ___ | |    ___ | |__ (_) ___| | __| |
/ __|/ _ \| |___/ __|| '_ \| |/ _ \ |/ _` |
\__ \ (_) | |___\__ \| | | | |  __/ | (_| |
|___/\___/|_|   |___/|_| |_|_|\___|_|\__,_|{_RESET}
  {_DIM}Smart Contract Security Test Advisor — v{__version__}{_RESET}
"""


# ── CLI argument parser ─────────────────────────────────────────────────────


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sol-shield",
        description=(
            "Smart contract security test advisor - discover invariants, "
            "detect vulnerabilities, generate Foundry tests"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="store_true", help="Print version and exit")
    parser.add_argument("--no-banner", action="store_true", help="Suppress the startup banner")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level for stderr diagnostics (default: from settings)",
    )

    sub = parser.add_subparsers(dest="command")

    commands = {
        "analyze": ("Analyze a Solidity file: discover invariants and detect vulnerabilities",
                    "Output directory for reports (default: .)"),
        "generate": ("Generate Foundry invariant and vulnerability test files",
                     "Output directory for test files (default: ./test)"),
        "full": ("Full analysis: discover invariants, detect vulnerabilities, and generate tests",
                 "Output directory for test files (default: ./test)"),
    }
    for name, (help_text, output_help) in commands.items():
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("file", help="Path to Solidity file")
        cmd.add_argument("--output", "-o", help=output_help)
        cmd.add_argument(
            "--format",
            "-f",
            default=None,
            choices=["terminal", "md"],
            help="Output format: terminal (default) or md",
        )

    return parser


# ── Terminal rendering ──────────────────────────────────────────────────────


def _print_invariants(analysis: ContractAnalysis) -> None:
    print(_c(f"\n  Invariant Properties for {analysis.name}", _BOLD + _CYAN))
    print(_c(f"  Found {len(analysis.invariants)} properties to verify\n", _DIM))

    for inv in analysis.invariants:
        print(f"  {_badge(inv.severity.value)} {_c(inv.title, _BOLD)}")
        print(f"    {_c('>', _DIM)} {inv.description}")
        print(f"    {_c('Pattern:', _DIM)} {inv.pattern}")
        if inv.assertion:
            print(f"    {_c('Assert:', _DIM)} {_c(inv.assertion, _GREEN)}")
        print()


def _print_vulnerabilities(analysis: ContractAnalysis) -> None:
    print(_c(f"\n  Vulnerability Scan for {analysis.name}", _BOLD + _RED))
    print(_c(f"  Found {len(analysis.vulnerabilities)} potential issues\n", _DIM))

    for v in analysis.vulnerabilities:
        print(f"  {_badge(v.severity.value)} {_c(v.title, _BOLD)}")
        if v.line:
            print(f"    {_c('Line:', _DIM)} {v.line}")
        print(f"    {_c('>', _DIM)} {v.description}")
        print(f"    {_c('Pattern:', _DIM)} {v.pattern}")
        print(f"    {_c('Fix:', _GREEN)} {v.remediation}")
        print()


def _print_gas(analysis: ContractAnalysis) -> None:
    print(_c(f"\n  Gas Optimizations for {analysis.name}", _BOLD + _MAGENTA))
    print(_c(f"  Found {len(analysis.gas_findings)} suggestions\n", _DIM))

    for g in analysis.gas_findings:
        loc = _c(f"  line {g.line}", _DIM) if g.line else ""
        print(f"  {_c('[GAS]', _MAGENTA + _BOLD)} {_c(g.title, _BOLD)}{loc}")
        print(f"    {_c('>', _DIM)} {g.description}")
        print(f"    {_c('Suggestion:', _GREEN)} {g.suggestion}")
        print()


def _print_score(score: SecurityScore) -> None:
    if score.score >= 80:
        color = _GREEN
    elif score.score >= 60:
        color = _YELLOW
    else:
        color = _RED

    print(_c("\n  Security Score", _BOLD))
    print(_c(f"  {_RULE}", _DIM))
    print(f"  Score: {_c(f'{score.score}/100', color + _BOLD)}  Grade: {_c(score.grade, color + _BOLD)}")
    for d in score.deductions:
        print(f"    {_c(f'-{d.points:>2}', _RED)}  {d.finding.severity.value:<8} {d.finding.title}")


def _print_summary(result) -> None:
    totals = result.totals
    vuln_color = _RED if totals["vulnerabilities"] else _GREEN

    print(_c(f"\n  {'═' * 40}", _BOLD))
    print(_c("  Summary", _BOLD))
    print(_c(f"  {_RULE}", _DIM))
    print(f"  Contracts analyzed: {_c(str(result.contract_count), _CYAN)}")
    print(f"  Invariant properties: {_c(str(totals['invariants']), _CYAN)}")
    print(f"  Vulnerabilities found: {_c(str(totals['vulnerabilities']), vuln_color)}")
    print(f"  Gas optimizations: {_c(str(totals['gas']), _MAGENTA)}")

    if result.test_files:
        print(f"\n  {_c('Generated test files:', _GREEN)}")
        for path in result.test_files:
            print(f"    {_c('>', _DIM)} {path}")

    for path in result.report_files:
        print(f"\n  {_c('Generated report:', _GREEN)} {path}")


# ── Run command ──────────────────────────────────────────────────────────────


def _run(args: argparse.Namespace) -> int:
    """Analyze one file and print or write the results for the chosen mode."""
    from solshield.pipeline.orchestrator import AnalysisPipeline, Mode

    settings = get_settings()
    mode = Mode(args.command)
    output_format = args.format or settings.output_format
    path = Path(args.file).resolve()

    print(_c(f"\n  sol-shield v{__version__}", _BOLD))
    print(_c(f"  Analyzing: {path}\n", _DIM))

    pipeline = AnalysisPipeline(settings)
    try:
        result = pipeline.run(path, mode, args.output, output_format)
    except (InputError, ArtifactWriteError) as exc:
        print(_c(f"  Error: {exc.message}", _RED), file=sys.stderr)
        return 1

    if not result.analyses and not result.skipped:
        print(_c("  No contracts found in file.", _YELLOW))
        return 0

    for analysis in result.analyses:
        print(_c(f"  Contract: {analysis.name}", _BOLD))
        print(_c(f"  {_RULE}", _DIM))
        if mode.shows_findings:
            _print_invariants(analysis)
            _print_vulnerabilities(analysis)
            _print_gas(analysis)

    _print_score(result.overall_score)
    _print_summary(result)
    print()
    return 0


# ── Entrypoint ───────────────────────────────────────────────────────────────


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"sol-shield {__version__}")
        return 0

    settings = get_settings()
    setup_logging(settings.app_env, args.log_level or settings.log_level)

    if not args.no_banner:
        print(BANNER, file=sys.stderr)

    if not args.command:
        parser.print_help()
        return 0

    return _run(args)


if __name__ == "__main__":
    sys.exit(main())
