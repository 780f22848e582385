"""Detector registry — holds one finding family's rules in run order."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Type

from solshield.analyzer.base_detector import BaseDetector
from solshield.core.config import Settings
from solshield.core.model import ContractModel

logger = logging.getLogger(__name__)


class DetectorRegistry:
    """Ordered registry of detector classes.

    Rules run in registration order; ``run`` concatenates their output and
    drops findings whose id was already emitted, keeping the first.
    """

    def __init__(self, name: str, detectors: Iterable[Type[BaseDetector]] = ()) -> None:
        self.name = name
        self._detectors: dict[str, Type[BaseDetector]] = {}
        for detector in detectors:
            self.register(detector)

    def register(self, detector: Type[BaseDetector]) -> None:
        """Append a detector class. IDs must be unique within the registry."""
        if not detector.DETECTOR_ID:
            raise ValueError(f"{detector.__name__} has no DETECTOR_ID")
        if detector.DETECTOR_ID in self._detectors:
            raise ValueError(f"Duplicate detector id {detector.DETECTOR_ID}")
        self._detectors[detector.DETECTOR_ID] = detector

    def get_all(self) -> list[Type[BaseDetector]]:
        """Return all registered detector classes in run order."""
        return list(self._detectors.values())

    def get_by_id(self, detector_id: str) -> Type[BaseDetector] | None:
        return self._detectors.get(detector_id)

    def get_by_category(self, category: str) -> list[Type[BaseDetector]]:
        return [d for d in self._detectors.values() if d.CATEGORY == category]

    def count(self) -> int:
        return len(self._detectors)

    def categories(self) -> list[str]:
        """Return all unique detector categories."""
        return sorted(set(d.CATEGORY for d in self._detectors.values() if d.CATEGORY))

    def run(self, model: ContractModel, settings: Settings | None = None) -> list[Any]:
        """Run every detector over the model and dedupe by finding id."""
        results: list[Any] = []
        seen: set[str] = set()

        for detector_cls in self._detectors.values():
            findings = detector_cls(settings).detect(model)
            logger.debug(
                "%s produced %d finding(s)", detector_cls.DETECTOR_ID, len(findings),
                extra={"contract": model.name, "rule_id": detector_cls.DETECTOR_ID},
            )
            for finding in findings:
                if finding.id in seen:
                    continue
                seen.add(finding.id)
                results.append(finding)

        return results
