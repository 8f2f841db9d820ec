"""
Ledger Writes

All inserts, upserts and deletes against the admission tables live here:
catalog upserts, list ingestion, persisting a simulation's assignments and
passing scores, and the administrative resets.

Callers own the transaction (see db.session_scope); nothing here commits.
"""

import logging
from datetime import date
from typing import Iterable, Optional, Dict, Any, Union

from pydantic import ValidationError
from sqlalchemy.orm import Session

from ..models import Program, Applicant, Priority, Enrollment, PassingScore, utc_now
from .adapter import has_passing_scores
from .contracts import (
    ProgramSeats,
    EnrollmentAssignment,
    PassingScoreRecord,
    ApplicantRow,
    IngestionSummary,
)
from .errors import MalformedRecordError, UnknownProgramError
from .locks import acquire_advisory_lock

logger = logging.getLogger(__name__)


# =============================================================================
# CATALOG
# =============================================================================

def upsert_program(db: Session, code: str, name: str, capacity: int) -> ProgramSeats:
    program = db.get(Program, code)
    if program is None:
        program = Program(code=code, name=name, capacity=capacity)
        db.add(program)
    else:
        program.name = name
        program.capacity = capacity
    db.flush()
    return ProgramSeats.model_validate(program)


# =============================================================================
# SIMULATION OUTPUT
# =============================================================================

def save_assignments(db: Session, assignments: Iterable[EnrollmentAssignment]) -> int:
    count = 0
    for a in assignments:
        db.add(Enrollment(
            applicant_id=a.applicant_id,
            program_code=a.program_code,
            priority=a.priority_rank_honored,
            total_score=a.total_score,
            simulation_date=a.cycle_date,
        ))
        count += 1
    db.flush()
    return count


def upsert_passing_score(db: Session, record: PassingScoreRecord) -> None:
    """Insert or overwrite the passing score of one program and date."""
    row = (
        db.query(PassingScore)
        .filter(
            PassingScore.program_code == record.program_code,
            PassingScore.calculation_date == record.cycle_date,
        )
        .first()
    )
    if row is None:
        row = PassingScore(program_code=record.program_code, calculation_date=record.cycle_date)
        db.add(row)
    row.passing_score = record.passing_score
    row.status = record.status.value
    row.created_at = utc_now()


# =============================================================================
# RESETS
# =============================================================================

def delete_enrollment(db: Session, cycle_date: Optional[date] = None) -> int:
    """Delete enrollment rows for one date, or for every date when none is given."""
    query = db.query(Enrollment)
    if cycle_date is not None:
        query = query.filter(Enrollment.simulation_date == cycle_date)
    return query.delete()


def clear_results(db: Session, cycle_date: date) -> Dict[str, int]:
    """
    Drop enrollment and passing scores of one date.

    This is what invalidates the result cache for that date.
    """
    acquire_advisory_lock(db, cycle_date)
    enrollment = delete_enrollment(db, cycle_date)
    scores = (
        db.query(PassingScore)
        .filter(PassingScore.calculation_date == cycle_date)
        .delete()
    )
    logger.info(f"Cleared results for {cycle_date}: {enrollment} enrollment rows, {scores} passing scores")
    return {"enrollment": enrollment, "passing_scores": scores}


def clear_all(db: Session) -> Dict[str, int]:
    """Full reset of every ledger. The program catalog is kept."""
    counts = {}
    for name, model in (
        ("enrollment", Enrollment),
        ("priorities", Priority),
        ("applicants", Applicant),
        ("passing_scores", PassingScore),
    ):
        counts[name] = db.query(model).delete()
    logger.warning(f"All ledgers cleared: {counts}")
    return counts


# =============================================================================
# INGESTION
# =============================================================================

def _validate_row(row_number: int, raw: Union[ApplicantRow, Dict[str, Any]]) -> ApplicantRow:
    if isinstance(raw, ApplicantRow):
        return raw
    try:
        return ApplicantRow.model_validate(raw)
    except ValidationError as e:
        reasons = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise MalformedRecordError(row_number, reasons) from e


def _upsert_applicant(db: Session, row: ApplicantRow, cycle_date: date) -> str:
    """Returns 'inserted', 'updated' or 'unchanged'."""
    applicant = db.get(Applicant, (row.applicant_id, cycle_date))
    if applicant is None:
        applicant = Applicant(id=row.applicant_id, cycle_date=cycle_date, consent=row.consent)
        applicant.set_scores(row.physics_ict, row.russian, row.math, row.achievements)
        db.add(applicant)
        return "inserted"

    before = (applicant.physics_ict, applicant.russian, applicant.math, applicant.achievements, applicant.consent)
    applicant.set_scores(row.physics_ict, row.russian, row.math, row.achievements)
    applicant.consent = row.consent
    after = (row.physics_ict, row.russian, row.math, row.achievements, row.consent)
    return "updated" if before != after else "unchanged"


def ingest_program_batch(
    db: Session,
    program_code: str,
    cycle_date: date,
    rows: Iterable[Union[ApplicantRow, Dict[str, Any]]],
) -> IngestionSummary:
    """
    Load one program list for one date.

    The program's previous priorities for that date are replaced wholesale;
    applicant records are upserted with their total recomputed. Bad rows are
    counted and skipped, the rest of the batch still loads.

    Enrollment and passing scores are left alone: if the date was already
    simulated, the cached results stay in place until clear_results() is
    called, and a warning says so.

    Takes the date's advisory lock first, so a list never changes under a
    running simulation of the same date.

    Raises:
        UnknownProgramError: program_code is not in the catalog
    """
    acquire_advisory_lock(db, cycle_date)

    if db.get(Program, program_code) is None:
        raise UnknownProgramError(program_code)

    summary = IngestionSummary(program_code=program_code, cycle_date=cycle_date)

    removed = (
        db.query(Priority)
        .filter(Priority.program_code == program_code, Priority.cycle_date == cycle_date)
        .delete()
    )
    logger.info(f"Replacing list {program_code} @ {cycle_date}: {removed} old priorities removed")

    seen: set = set()
    for row_number, raw in enumerate(rows, start=1):
        try:
            row = _validate_row(row_number, raw)
            if row.applicant_id in seen:
                raise MalformedRecordError(row_number, f"duplicate applicant {row.applicant_id} in list")

            taken = (
                db.query(Priority.program_code)
                .filter(
                    Priority.applicant_id == row.applicant_id,
                    Priority.cycle_date == cycle_date,
                    Priority.priority == row.priority_rank,
                )
                .first()
            )
            if taken is not None:
                raise MalformedRecordError(
                    row_number,
                    f"applicant {row.applicant_id} already uses priority {row.priority_rank} for {taken.program_code}",
                )
        except MalformedRecordError as e:
            summary.errors += 1
            summary.error_details.append(str(e))
            logger.debug(f"Skipping row: {e}")
            continue

        seen.add(row.applicant_id)
        outcome = _upsert_applicant(db, row, cycle_date)
        if outcome == "inserted":
            summary.inserted += 1
        elif outcome == "updated":
            summary.updated += 1

        db.add(Priority(
            applicant_id=row.applicant_id,
            program_code=program_code,
            cycle_date=cycle_date,
            priority=row.priority_rank,
        ))

    db.flush()

    if has_passing_scores(db, cycle_date):
        warning = (
            f"Results for {cycle_date.isoformat()} were already calculated and will keep being "
            f"served from cache; clear them to re-run the simulation"
        )
        logger.warning(warning)
        summary.warnings.append(warning)

    logger.info(f"{summary.message} ({program_code} @ {cycle_date})")
    return summary
