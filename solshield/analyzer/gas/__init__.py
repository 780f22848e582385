"""Gas optimization advisor rules."""

from solshield.analyzer.gas.gas_optimization import (
    EventIndexingDetector,
    ImmutableCandidateDetector,
    CalldataParameterDetector,
)

GAS_DETECTORS: list[type] = [
    EventIndexingDetector,
    ImmutableCandidateDetector,
    CalldataParameterDetector,
]

__all__ = ["GAS_DETECTORS"]
