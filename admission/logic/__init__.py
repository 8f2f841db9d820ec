"""
Admission Logic Module

Provides the deterministic admission simulation engine, the passing score
calculator and the per-date result gate.
"""

from .contracts import (
    ProgramSeats,
    RankedApplicant,
    PriorityChoice,
    EnrollmentAssignment,
    SimulationOutcome,
    PassingScoreRecord,
    GateResult,
    ApplicantRow,
    IngestionSummary,
)
from .engine import SimulationEngine, allocate_seats
from .passing_scores import compute_passing_scores, classify_passing_score
from .runner import ResultGate, get_or_compute
from .constants import PassingStatus
from .errors import (
    AdmissionError,
    NoProgramsError,
    TransactionFailure,
    MalformedRecordError,
)

__all__ = [
    # Main engine
    "SimulationEngine",
    "allocate_seats",
    "compute_passing_scores",
    "classify_passing_score",
    "ResultGate",
    "get_or_compute",

    # Contracts
    "ProgramSeats",
    "RankedApplicant",
    "PriorityChoice",
    "EnrollmentAssignment",
    "SimulationOutcome",
    "PassingScoreRecord",
    "GateResult",
    "ApplicantRow",
    "IngestionSummary",

    # Enums
    "PassingStatus",

    # Errors
    "AdmissionError",
    "NoProgramsError",
    "TransactionFailure",
    "MalformedRecordError",
]
