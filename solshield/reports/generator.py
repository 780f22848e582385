"""Markdown report generator using Jinja2."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from solshield.analyzer.analyzer import ContractAnalysis
from solshield.core.types import Severity


TEMPLATE_DIR = Path(__file__).parent / "templates"


class ReportGenerator:
    """Generate per-contract markdown security reports.

    Sections:
    - Header with contract, source, date, score and grade
    - Summary counts by category and severity
    - Vulnerabilities table plus per-finding details and fixes
    - Invariants table with assertion templates
    - Gas optimization table
    - Score breakdown in the order deductions were applied
    """

    def __init__(self) -> None:
        self._jinja_env = Environment(
            loader=FileSystemLoader(str(TEMPLATE_DIR)),
            autoescape=False,
            undefined=StrictUndefined,
            keep_trailing_newline=True,
        )
        self._jinja_env.filters["severity_badge"] = self._severity_badge
        self._jinja_env.filters["md_cell"] = self._md_cell

    def generate_markdown(
        self,
        analysis: ContractAnalysis,
        source_file: str = "",
        generated_at: datetime | None = None,
    ) -> str:
        """Render the report for one analyzed contract.

        ``generated_at`` defaults to now (UTC); pass a fixed value for
        reproducible output.
        """
        template = self._jinja_env.get_template("report.md.j2")

        # Severity counts, most severe first, zero rows omitted
        severity_counts: dict[str, int] = {}
        for sev in Severity:
            count = sum(1 for v in analysis.vulnerabilities if v.severity == sev)
            if count:
                severity_counts[sev.value] = count

        when = generated_at or datetime.now(timezone.utc)
        context = {
            "contract_name": analysis.name,
            "source_file": source_file or f"{analysis.name}.sol",
            "generated_at": when.strftime("%Y-%m-%d %H:%M UTC"),
            "score": analysis.score,
            "severity_counts": severity_counts,
            "vulnerabilities": analysis.vulnerabilities,
            "invariants": analysis.invariants,
            "gas_findings": analysis.gas_findings,
        }

        return template.render(**context)

    @staticmethod
    def _severity_badge(severity: str) -> str:
        return {
            "CRITICAL": "🔴 CRITICAL",
            "HIGH": "🟠 HIGH",
            "MEDIUM": "🟡 MEDIUM",
            "LOW": "🔵 LOW",
        }.get(str(severity).upper(), str(severity))

    @staticmethod
    def _md_cell(text: str) -> str:
        """Make text safe inside a markdown table cell."""
        return str(text).replace("|", "\\|").replace("\n", " ")
