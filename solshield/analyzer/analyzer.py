"""Contract analyzer — runs the three discovery engines and the scorer.

Pipeline for one ContractModel:
  1. Invariant discovery
  2. Vulnerability detection
  3. Gas optimization advice
  4. Security score from the vulnerabilities

The engines share nothing but the immutable model, so their order does
not matter; each one is deterministic for a given model.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from solshield.analyzer.detectors import VULNERABILITY_DETECTORS
from solshield.analyzer.gas import GAS_DETECTORS
from solshield.analyzer.invariants import INVARIANT_DETECTORS
from solshield.analyzer.registry import DetectorRegistry
from solshield.core.config import Settings, get_settings
from solshield.core.model import ContractModel
from solshield.core.types import GasFinding, Invariant, SecurityScore, Vulnerability

logger = logging.getLogger(__name__)

invariant_registry = DetectorRegistry("invariants", INVARIANT_DETECTORS)
vulnerability_registry = DetectorRegistry("vulnerabilities", VULNERABILITY_DETECTORS)
gas_registry = DetectorRegistry("gas", GAS_DETECTORS)


def discover_invariants(model: ContractModel, settings: Settings | None = None) -> list[Invariant]:
    return invariant_registry.run(model, settings)


def detect_vulnerabilities(
    model: ContractModel, settings: Settings | None = None
) -> list[Vulnerability]:
    return vulnerability_registry.run(model, settings)


def detect_gas_issues(model: ContractModel, settings: Settings | None = None) -> list[GasFinding]:
    return gas_registry.run(model, settings)


@dataclass
class ContractAnalysis:
    """Findings for one contract."""

    model: ContractModel
    invariants: list[Invariant] = field(default_factory=list)
    vulnerabilities: list[Vulnerability] = field(default_factory=list)
    gas_findings: list[GasFinding] = field(default_factory=list)
    score: SecurityScore = field(default_factory=SecurityScore)

    @property
    def name(self) -> str:
        return self.model.name


class ContractAnalyzer:
    """Run all discovery engines against contract models."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()

    def analyze(self, model: ContractModel) -> ContractAnalysis:
        invariants = discover_invariants(model, self.settings)
        vulnerabilities = detect_vulnerabilities(model, self.settings)
        gas_findings = detect_gas_issues(model, self.settings)
        score = SecurityScore.calculate(vulnerabilities)

        logger.info(
            "%s: %d invariant(s), %d vulnerabilit(ies), %d gas finding(s), score %d (%s)",
            model.name, len(invariants), len(vulnerabilities), len(gas_findings),
            score.score, score.grade,
            extra={"contract": model.name},
        )

        return ContractAnalysis(
            model=model,
            invariants=invariants,
            vulnerabilities=vulnerabilities,
            gas_findings=gas_findings,
            score=score,
        )
