"""
Data Contracts for the Admission Simulation Engine

Pydantic models exchanged between the data access layer, the engine, the
result gate and the API. ORM rows never leave the adapter/ledger modules.
"""

from datetime import date, datetime
from typing import List, Optional, Dict
from pydantic import BaseModel, Field

from .constants import PassingStatus, MIN_PRIORITY_RANK, MAX_PRIORITY_RANK


# =============================================================================
# ENGINE INPUTS
# =============================================================================

class ProgramSeats(BaseModel):
    """A catalog entry as seen by one simulation run."""
    code: str
    name: str
    capacity: int = Field(ge=0)

    class Config:
        from_attributes = True


class RankedApplicant(BaseModel):
    """A consenting applicant in allocation order."""
    applicant_id: int
    total_score: int


class PriorityChoice(BaseModel):
    """One ranked preference of an applicant (1 = most preferred)."""
    program_code: str
    priority_rank: int = Field(ge=MIN_PRIORITY_RANK, le=MAX_PRIORITY_RANK)


# =============================================================================
# ENGINE OUTPUTS
# =============================================================================

class EnrollmentAssignment(BaseModel):
    applicant_id: int
    program_code: str
    priority_rank_honored: int
    total_score: int
    cycle_date: date


class SimulationOutcome(BaseModel):
    """
    Result of one allocation pass.

    Every consenting applicant lands in exactly one of assigned/unassigned.
    """
    cycle_date: date
    assignments: List[EnrollmentAssignment] = Field(default_factory=list)
    total_applicants: int = 0
    assigned_count: int = 0
    unassigned_count: int = 0
    seats_remaining: Dict[str, int] = Field(default_factory=dict)


class PassingScoreRecord(BaseModel):
    program_code: str
    passing_score: Optional[int] = None
    status: PassingStatus
    cycle_date: date

    # Catalog join, filled when read back for callers
    program_name: Optional[str] = None
    capacity: Optional[int] = None


class GateResult(BaseModel):
    """What GetOrCompute hands back to callers."""
    cycle_date: date
    table: List[PassingScoreRecord] = Field(default_factory=list)
    from_cache: bool
    # Only known when the engine actually ran
    assigned_count: Optional[int] = None
    unassigned_count: Optional[int] = None


# =============================================================================
# INGESTION
# =============================================================================

class ApplicantRow(BaseModel):
    """
    One validated row of a program list, as handed over by the importer.

    The total score is never supplied; it is derived from the components.
    """
    applicant_id: int = Field(gt=0)
    priority_rank: int = Field(ge=MIN_PRIORITY_RANK, le=MAX_PRIORITY_RANK)
    consent: bool = False
    physics_ict: int = Field(default=0, ge=0)
    russian: int = Field(default=0, ge=0)
    math: int = Field(default=0, ge=0)
    achievements: int = Field(default=0, ge=0)

    @property
    def total_score(self) -> int:
        return self.physics_ict + self.russian + self.math + self.achievements


class IngestionSummary(BaseModel):
    program_code: str
    cycle_date: date
    inserted: int = 0
    updated: int = 0
    errors: int = 0
    error_details: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

    @property
    def message(self) -> str:
        return f"Upload complete. Inserted: {self.inserted}, Updated: {self.updated}, Errors: {self.errors}"


# =============================================================================
# QUERY RESULTS
# =============================================================================

class PriorityListRow(BaseModel):
    applicant_id: int
    program_code: str
    priority_rank: int
    physics_ict: Optional[int] = None
    russian: Optional[int] = None
    math: Optional[int] = None
    achievements: Optional[int] = None
    total_score: Optional[int] = None
    consent: Optional[bool] = None
    cycle_date: date


class ApplicantSummary(BaseModel):
    applicant_id: int
    total_score: int
    cycle_date: date


class ApplicantPriority(BaseModel):
    program_code: str
    program_name: Optional[str] = None
    priority_rank: int
    cycle_date: date


class ApplicantDetails(BaseModel):
    applicant_id: int
    cycle_date: date
    physics_ict: int
    russian: int
    math: int
    achievements: int
    total_score: int
    consent: bool
    priorities: List[ApplicantPriority] = Field(default_factory=list)


class ProgramEnrollmentReport(BaseModel):
    program_code: str
    program_name: str
    capacity: int
    enrolled: List[EnrollmentAssignment] = Field(default_factory=list)


class EnrollmentReport(BaseModel):
    """Structured report data for one date; rendering is left to consumers."""
    cycle_date: date
    generated_at: datetime
    programs: List[ProgramEnrollmentReport] = Field(default_factory=list)
    passing_scores: List[PassingScoreRecord] = Field(default_factory=list)
