"""Shared enums, finding records and scoring."""

from __future__ import annotations

import enum

from pydantic import BaseModel, ConfigDict, Field


# ── Enums ────────────────────────────────────────────────────────────────────


class Severity(str, enum.Enum):
    """Severity of an invariant or vulnerability."""

    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class VulnerabilityKind(str, enum.Enum):
    """Detector family a vulnerability came from."""

    REENTRANCY = "reentrancy"
    UNCHECKED_RETURN = "unchecked_return"
    MISSING_ACCESS_CONTROL = "missing_access_control"
    FRONT_RUNNING = "front_running"
    DENIAL_OF_SERVICE = "denial_of_service"


class GasCategory(str, enum.Enum):
    """Kind of gas optimization suggested."""

    EVENT_INDEXING = "event_indexing"
    IMMUTABLE = "immutable"
    CALLDATA = "calldata"


# ── Finding records ──────────────────────────────────────────────────────────


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True)


class GhostVariableSpec(_Record):
    """Handler-side variable tracking an aggregate the contract cannot expose.

    ``track_in`` lists the functions whose successful execution should
    update it; ``seed_from`` names a state variable whose post-deployment
    value the ghost starts from.
    """

    name: str
    type: str = "uint256"
    track_in: tuple[str, ...] = ()
    seed_from: str | None = None


class Invariant(_Record):
    """A property the contract is expected to preserve."""

    id: str
    severity: Severity
    title: str
    description: str
    pattern: str
    assertion: str | None = None
    ghost_vars: tuple[GhostVariableSpec, ...] = ()


class Vulnerability(_Record):
    """A heuristic vulnerability finding."""

    id: str
    kind: VulnerabilityKind
    severity: Severity
    title: str
    description: str
    pattern: str
    function: str
    line: int = 0
    remediation: str = ""
    call_kind: str | None = None
    related_lines: tuple[int, ...] = ()


class GasFinding(_Record):
    """An advisory gas optimization. Never affects the score."""

    id: str
    category: GasCategory
    title: str
    description: str
    target: str
    suggestion: str
    line: int = 0


# ── Scoring ──────────────────────────────────────────────────────────────────

SEVERITY_WEIGHTS: dict[Severity, int] = {
    Severity.CRITICAL: 25,
    Severity.HIGH: 15,
    Severity.MEDIUM: 8,
    Severity.LOW: 3,
}

# Checked top-down; the first threshold the score reaches wins.
GRADE_THRESHOLDS: tuple[tuple[int, str], ...] = (
    (95, "A+"),
    (90, "A"),
    (80, "B"),
    (70, "C"),
    (60, "D"),
)


class ScoreDeduction(_Record):
    """Points removed for one vulnerability."""

    points: int
    finding: Vulnerability


class SecurityScore(_Record):
    """Deduction-based security score."""

    score: int = 100
    grade: str = "A+"
    deductions: tuple[ScoreDeduction, ...] = Field(default_factory=tuple)

    @property
    def total_deducted(self) -> int:
        return sum(d.points for d in self.deductions)

    @staticmethod
    def grade_for(score: int) -> str:
        for threshold, grade in GRADE_THRESHOLDS:
            if score >= threshold:
                return grade
        return "F"

    @staticmethod
    def calculate(vulnerabilities: list[Vulnerability]) -> "SecurityScore":
        """Calculate the security score from vulnerabilities.

        Deductions are recorded in the order the findings were supplied.
        """
        deductions = tuple(
            ScoreDeduction(points=SEVERITY_WEIGHTS[v.severity], finding=v)
            for v in vulnerabilities
        )
        penalty = sum(d.points for d in deductions)
        score = max(0, min(100, 100 - penalty))

        return SecurityScore(
            score=score,
            grade=SecurityScore.grade_for(score),
            deductions=deductions,
        )
