"""Base detector classes — every discovery rule inherits from one of these."""

from __future__ import annotations

import abc
from typing import Any

from solshield.core.config import Settings, get_settings
from solshield.core.model import ContractModel
from solshield.core.types import (
    GasCategory,
    GasFinding,
    GhostVariableSpec,
    Invariant,
    Severity,
    Vulnerability,
    VulnerabilityKind,
)


class BaseDetector(abc.ABC):
    """Abstract base class for all contract-model detectors.

    Each detector implements the `detect()` method which receives an
    immutable ContractModel and returns zero or more findings. Detectors
    hold no state between calls.

    Detector metadata:
        - DETECTOR_ID: Unique identifier (e.g., "INV-TOKEN-001")
        - NAME: Human-readable detector name
        - DESCRIPTION: What this detector looks for
        - SEVERITY: Default severity level (invariants and vulnerabilities)
        - CATEGORY: High-level category for grouping
    """

    DETECTOR_ID: str = ""
    NAME: str = ""
    DESCRIPTION: str = ""
    SEVERITY: Severity = Severity.MEDIUM
    CATEGORY: str = ""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()

    @abc.abstractmethod
    def detect(self, model: ContractModel) -> list[Any]:
        """Run the detector against one contract model.

        Returns:
            List of findings detected. Empty if the rule does not apply.
        """
        ...


class InvariantDetector(BaseDetector):
    """Detector emitting Invariant records."""

    @abc.abstractmethod
    def detect(self, model: ContractModel) -> list[Invariant]:
        ...

    def _make_invariant(
        self,
        id: str,
        title: str,
        description: str,
        pattern: str,
        assertion: str | None = None,
        ghost_vars: list[GhostVariableSpec] | None = None,
        severity: Severity | None = None,
    ) -> Invariant:
        return Invariant(
            id=id,
            severity=severity or self.SEVERITY,
            title=title,
            description=description,
            pattern=pattern,
            assertion=assertion,
            ghost_vars=tuple(ghost_vars or ()),
        )


class VulnerabilityDetector(BaseDetector):
    """Detector emitting Vulnerability records."""

    KIND: VulnerabilityKind = VulnerabilityKind.REENTRANCY
    PATTERN: str = ""
    REMEDIATION: str = ""

    @abc.abstractmethod
    def detect(self, model: ContractModel) -> list[Vulnerability]:
        ...

    def _make_finding(
        self,
        id: str,
        title: str,
        description: str,
        function: str,
        line: int = 0,
        call_kind: str | None = None,
        related_lines: list[int] | None = None,
        severity: Severity | None = None,
        remediation: str = "",
    ) -> Vulnerability:
        """Helper to create a Vulnerability with this detector's metadata."""
        return Vulnerability(
            id=id,
            kind=self.KIND,
            severity=severity or self.SEVERITY,
            title=title,
            description=description,
            pattern=self.PATTERN,
            function=function,
            line=line,
            remediation=remediation or self.REMEDIATION,
            call_kind=call_kind,
            related_lines=tuple(related_lines or ()),
        )


class GasDetector(BaseDetector):
    """Detector emitting advisory GasFinding records."""

    GAS_CATEGORY: GasCategory = GasCategory.EVENT_INDEXING

    @abc.abstractmethod
    def detect(self, model: ContractModel) -> list[GasFinding]:
        ...

    def _make_gas(
        self,
        id: str,
        title: str,
        description: str,
        target: str,
        suggestion: str,
        line: int = 0,
    ) -> GasFinding:
        return GasFinding(
            id=id,
            category=self.GAS_CATEGORY,
            title=title,
            description=description,
            target=target,
            suggestion=suggestion,
            line=line,
        )
