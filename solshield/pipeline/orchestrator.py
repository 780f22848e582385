"""Analysis orchestrator — coordinates parsing, analysis and artifact output."""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path

from solshield.analyzer.analyzer import ContractAnalysis, ContractAnalyzer
from solshield.core.ast_analyzer import ContractModelBuilder
from solshield.core.config import Settings, get_settings
from solshield.core.errors import ArtifactWriteError, SourceNotFoundError
from solshield.core.logging import contract_context
from solshield.core.model import ContractKind
from solshield.core.types import SecurityScore
from solshield.fuzzer.invariant_synth import InvariantTestSynthesizer
from solshield.ingestion.solidity_compiler import SolidityCompiler
from solshield.reports.generator import ReportGenerator
from solshield.verifier.poc_generator import PoCGenerator

logger = logging.getLogger(__name__)


class Mode(str, Enum):
    ANALYZE = "analyze"     # discovery + report
    GENERATE = "generate"   # discovery + test synthesis
    FULL = "full"           # both

    @property
    def shows_findings(self) -> bool:
        return self in (Mode.ANALYZE, Mode.FULL)

    @property
    def writes_tests(self) -> bool:
        return self in (Mode.GENERATE, Mode.FULL)


@dataclass
class PipelineResult:
    """Outcome of one pipeline run over one source file."""

    source_path: Path
    analyses: list[ContractAnalysis] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    test_files: list[Path] = field(default_factory=list)
    report_files: list[Path] = field(default_factory=list)

    @property
    def contract_count(self) -> int:
        return len(self.analyses)

    @property
    def overall_score(self) -> SecurityScore:
        """Score over every analyzed contract's vulnerabilities."""
        return SecurityScore.calculate(
            [v for a in self.analyses for v in a.vulnerabilities]
        )

    @property
    def totals(self) -> dict[str, int]:
        return {
            "invariants": sum(len(a.invariants) for a in self.analyses),
            "vulnerabilities": sum(len(a.vulnerabilities) for a in self.analyses),
            "gas": sum(len(a.gas_findings) for a in self.analyses),
        }


def write_artifact(path: Path, content: str) -> Path:
    """Write ``content`` to ``path`` atomically (temp file + replace).

    Raises:
        ArtifactWriteError: the directory or file could not be written
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(content)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
    except OSError as e:
        raise ArtifactWriteError(path, e) from e

    logger.info("Wrote %s", path, extra={"artifact": str(path)})
    return path


class AnalysisPipeline:
    """Parse a Solidity file, analyze each contract and write artifacts."""

    def __init__(
        self,
        settings: Settings | None = None,
        compiler: SolidityCompiler | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.compiler = compiler or SolidityCompiler()
        self.analyzer = ContractAnalyzer(self.settings)
        self.invariant_synth = InvariantTestSynthesizer(self.settings)
        self.poc_generator = PoCGenerator(self.settings)
        self.reports = ReportGenerator()

    def load(self, path: Path | str) -> str:
        """Read a source file.

        Raises:
            SourceNotFoundError: the path does not exist or is not a file
        """
        source_path = Path(path)
        if not source_path.is_file():
            raise SourceNotFoundError(source_path.resolve())
        return source_path.read_text(encoding="utf-8")

    def analyze_file(self, path: Path | str) -> PipelineResult:
        """Parse and analyze every concrete contract in a file.

        Raises:
            SourceNotFoundError, ParseError
        """
        source_path = Path(path)
        source_code = self.load(source_path)
        parsed = self.compiler.parse(source_code, source_path.name)

        result = PipelineResult(source_path=source_path)
        builder = ContractModelBuilder(source_code, parsed.struct_names())

        for node in parsed.contract_nodes():
            model = builder.build(node)
            if model.kind in (ContractKind.INTERFACE, ContractKind.LIBRARY):
                logger.debug("Skipping %s %s", model.kind.value, model.name)
                result.skipped.append(model.name)
                continue

            with contract_context(model.name):
                result.analyses.append(self.analyzer.analyze(model))

        return result

    def run(
        self,
        path: Path | str,
        mode: Mode = Mode.FULL,
        output_dir: Path | str | None = None,
        output_format: str = "terminal",
        generated_at: datetime | None = None,
    ) -> PipelineResult:
        """Analyze a file and write the artifacts the mode asks for.

        Test files go to ``<output>/<Name>.invariant.t.sol`` and
        ``<Name>.vuln.t.sol`` when the matching finding set is non-empty;
        with ``output_format="md"`` a ``<Name>.report.md`` is written for
        every analyzed contract.
        """
        result = self.analyze_file(path)
        out = Path(output_dir) if output_dir is not None else Path(self._default_output(mode))
        source_file = result.source_path.name

        for analysis in result.analyses:
            name = analysis.name
            if mode.writes_tests:
                if analysis.invariants:
                    content = self.invariant_synth.synthesize(
                        analysis.model, analysis.invariants, source_file
                    )
                    result.test_files.append(
                        write_artifact(out / f"{name}.invariant.t.sol", content)
                    )
                if analysis.vulnerabilities:
                    content = self.poc_generator.generate(
                        analysis.model, analysis.vulnerabilities, source_file
                    )
                    result.test_files.append(
                        write_artifact(out / f"{name}.vuln.t.sol", content)
                    )

            if output_format == "md":
                content = self.reports.generate_markdown(analysis, source_file, generated_at)
                result.report_files.append(write_artifact(out / f"{name}.report.md", content))

        return result

    def _default_output(self, mode: Mode) -> str:
        if mode == Mode.ANALYZE:
            return self.settings.analyze_output_dir
        return self.settings.generate_output_dir
