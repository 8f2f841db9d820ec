"""
Data Adapter for the Admission Engine

Reads from the admission tables (programs, applicants, priorities, enrollment,
passing_scores) and transforms rows into the engine's contracts.

This is a pure READ + TRANSFORM layer:
- NO allocation logic
- NO DB writes (see ledger.py)
"""

from collections import defaultdict
from datetime import date, datetime
from typing import List, Dict, Optional, Tuple, Any

from sqlalchemy import and_, func
from sqlalchemy.orm import Session

from ..models import Program, Applicant, Priority, Enrollment, PassingScore, utc_now
from .constants import PassingStatus, CYCLE_DATE_FORMATS
from .contracts import (
    ProgramSeats,
    RankedApplicant,
    PriorityChoice,
    EnrollmentAssignment,
    PassingScoreRecord,
    PriorityListRow,
    ApplicantSummary,
    ApplicantPriority,
    ApplicantDetails,
    ProgramEnrollmentReport,
    EnrollmentReport,
)
from .errors import InvalidCycleDateError, ApplicantNotFoundError, NoEnrollmentDataError


def parse_cycle_date(raw: Any) -> date:
    """
    Normalize a cycle date coming from a query string or an importer.

    Accepts date/datetime objects, ISO strings and day-first dotted strings
    ("01.08.2025").

    Raises:
        InvalidCycleDateError: for empty or unparseable input
    """
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    text = str(raw or "").strip()
    for fmt in CYCLE_DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise InvalidCycleDateError(text)


# =============================================================================
# ENGINE READS
# =============================================================================

def load_programs(db: Session) -> List[ProgramSeats]:
    """Whole catalog, ordered by code."""
    rows = db.query(Program).order_by(Program.code.asc()).all()
    return [ProgramSeats.model_validate(row) for row in rows]


def load_ranked_applicants(db: Session, cycle_date: date) -> List[RankedApplicant]:
    """
    Consenting applicants for the date in allocation order.

    Order is total score descending, ties broken by ascending applicant id.
    The tie-break decides who gets the last seat of a program, so it must
    not change.
    """
    rows = (
        db.query(Applicant.id, Applicant.total)
        .filter(Applicant.cycle_date == cycle_date, Applicant.consent.is_(True))
        .order_by(Applicant.total.desc(), Applicant.id.asc())
        .all()
    )
    return [RankedApplicant(applicant_id=row.id, total_score=row.total) for row in rows]


def load_priorities_by_applicant(db: Session, cycle_date: date) -> Dict[int, List[PriorityChoice]]:
    """All priorities for the date, grouped per applicant, rank ascending."""
    rows = (
        db.query(Priority.applicant_id, Priority.program_code, Priority.priority)
        .filter(Priority.cycle_date == cycle_date)
        .order_by(Priority.applicant_id.asc(), Priority.priority.asc())
        .all()
    )
    grouped: Dict[int, List[PriorityChoice]] = defaultdict(list)
    for row in rows:
        grouped[row.applicant_id].append(
            PriorityChoice(program_code=row.program_code, priority_rank=row.priority)
        )
    return dict(grouped)


def enrollment_stats(db: Session, cycle_date: date) -> Dict[str, Tuple[int, Optional[int]]]:
    """
    Enrolled count and minimum total score per program for the date.

    Programs with no enrollment are absent from the result.
    """
    rows = (
        db.query(
            Enrollment.program_code,
            func.count(Enrollment.id),
            func.min(Enrollment.total_score),
        )
        .filter(Enrollment.simulation_date == cycle_date)
        .group_by(Enrollment.program_code)
        .all()
    )
    return {code: (count, min_score) for code, count, min_score in rows}


# =============================================================================
# RESULT CACHE READS
# =============================================================================

def has_passing_scores(db: Session, cycle_date: date) -> bool:
    count = (
        db.query(func.count(PassingScore.id))
        .filter(PassingScore.calculation_date == cycle_date)
        .scalar()
    )
    return bool(count)


def load_passing_table(db: Session, cycle_date: date) -> List[PassingScoreRecord]:
    """Stored passing scores for the date joined with the catalog, by program code."""
    rows = (
        db.query(PassingScore, Program.name, Program.capacity)
        .outerjoin(Program, PassingScore.program_code == Program.code)
        .filter(PassingScore.calculation_date == cycle_date)
        .order_by(PassingScore.program_code.asc())
        .all()
    )
    return [
        PassingScoreRecord(
            program_code=ps.program_code,
            passing_score=ps.passing_score,
            status=PassingStatus(ps.status),
            cycle_date=ps.calculation_date,
            program_name=name or ps.program_code,
            capacity=capacity,
        )
        for ps, name, capacity in rows
    ]


# =============================================================================
# REPORTING READS
# =============================================================================

def _to_assignment(row: Enrollment) -> EnrollmentAssignment:
    return EnrollmentAssignment(
        applicant_id=row.applicant_id,
        program_code=row.program_code,
        priority_rank_honored=row.priority,
        total_score=row.total_score,
        cycle_date=row.simulation_date,
    )


def count_enrollment(db: Session, cycle_date: date) -> int:
    return (
        db.query(func.count(Enrollment.id))
        .filter(Enrollment.simulation_date == cycle_date)
        .scalar()
    ) or 0


def list_enrollment(db: Session, program_code: str, cycle_date: date) -> List[EnrollmentAssignment]:
    """
    Admitted applicants of one program in a stable order:
    total score DESC, priority rank ASC, applicant id ASC.
    """
    rows = (
        db.query(Enrollment)
        .filter(Enrollment.program_code == program_code, Enrollment.simulation_date == cycle_date)
        .order_by(
            Enrollment.total_score.desc(),
            Enrollment.priority.asc(),
            Enrollment.applicant_id.asc(),
        )
        .all()
    )
    return [_to_assignment(row) for row in rows]


def build_enrollment_report(db: Session, cycle_date: date) -> EnrollmentReport:
    """
    Everything a report renderer needs for one date.

    Only programs with at least one enrolled applicant get a section; programs
    missing from the catalog fall back to their code and zero capacity.

    Raises:
        NoEnrollmentDataError: when the date has no enrollment rows
    """
    if count_enrollment(db, cycle_date) == 0:
        raise NoEnrollmentDataError(cycle_date)

    codes = [
        code for (code,) in
        db.query(Enrollment.program_code)
        .filter(Enrollment.simulation_date == cycle_date)
        .distinct()
        .order_by(Enrollment.program_code.asc())
        .all()
    ]
    catalog = {p.code: p for p in db.query(Program).filter(Program.code.in_(codes)).all()}

    sections = []
    for code in codes:
        program = catalog.get(code)
        sections.append(ProgramEnrollmentReport(
            program_code=code,
            program_name=program.name if program else code,
            capacity=program.capacity if program else 0,
            enrolled=list_enrollment(db, code, cycle_date),
        ))

    return EnrollmentReport(
        cycle_date=cycle_date,
        generated_at=utc_now(),
        programs=sections,
        passing_scores=load_passing_table(db, cycle_date),
    )


# =============================================================================
# LEDGER QUERIES
# =============================================================================

def list_priority_rows(
    db: Session,
    program_code: Optional[str] = None,
    cycle_date: Optional[date] = None,
    applicant_id: Optional[int] = None,
    consent: Optional[bool] = None,
) -> List[PriorityListRow]:
    """
    Program lists: priority rows joined with the applicant record of the
    same date, best total first.
    """
    query = (
        db.query(Priority, Applicant)
        .outerjoin(
            Applicant,
            and_(Priority.applicant_id == Applicant.id, Priority.cycle_date == Applicant.cycle_date),
        )
    )
    if program_code:
        query = query.filter(Priority.program_code == program_code)
    if cycle_date:
        query = query.filter(Priority.cycle_date == cycle_date)
    if applicant_id is not None:
        query = query.filter(Priority.applicant_id == applicant_id)
    if consent is not None:
        query = query.filter(Applicant.consent.is_(consent))

    rows = query.order_by(Applicant.total.desc().nullslast(), Priority.applicant_id.asc()).all()

    result = []
    for priority, applicant in rows:
        result.append(PriorityListRow(
            applicant_id=priority.applicant_id,
            program_code=priority.program_code,
            priority_rank=priority.priority,
            physics_ict=applicant.physics_ict if applicant else None,
            russian=applicant.russian if applicant else None,
            math=applicant.math if applicant else None,
            achievements=applicant.achievements if applicant else None,
            total_score=applicant.total if applicant else None,
            consent=applicant.consent if applicant else None,
            cycle_date=priority.cycle_date,
        ))
    return result


def list_applicants(
    db: Session,
    applicant_id: Optional[int] = None,
    min_score: Optional[int] = None,
    cycle_date: Optional[date] = None,
) -> List[ApplicantSummary]:
    """Applicants that have at least one priority on the same date."""
    query = (
        db.query(Applicant.id, Applicant.total, Applicant.cycle_date)
        .join(
            Priority,
            and_(Applicant.id == Priority.applicant_id, Applicant.cycle_date == Priority.cycle_date),
        )
        .distinct()
    )
    if applicant_id is not None:
        query = query.filter(Applicant.id == applicant_id)
    if min_score is not None:
        query = query.filter(Applicant.total >= min_score)
    if cycle_date:
        query = query.filter(Applicant.cycle_date == cycle_date)

    rows = query.order_by(Applicant.total.desc(), Applicant.id.asc()).all()
    return [
        ApplicantSummary(applicant_id=row.id, total_score=row.total or 0, cycle_date=row.cycle_date)
        for row in rows
    ]


def get_applicant_details(db: Session, applicant_id: int) -> ApplicantDetails:
    """
    Latest-dated record of an applicant together with all of their priorities.

    Raises:
        ApplicantNotFoundError: no record with at least one priority on its date
    """
    applicant = (
        db.query(Applicant)
        .join(
            Priority,
            and_(Applicant.id == Priority.applicant_id, Applicant.cycle_date == Priority.cycle_date),
        )
        .filter(Applicant.id == applicant_id)
        .order_by(Applicant.cycle_date.desc())
        .first()
    )
    if applicant is None:
        raise ApplicantNotFoundError(applicant_id)

    rows = (
        db.query(Priority, Program.name)
        .outerjoin(Program, Priority.program_code == Program.code)
        .filter(Priority.applicant_id == applicant_id)
        .order_by(Priority.priority.asc(), Priority.cycle_date.desc())
        .all()
    )

    return ApplicantDetails(
        applicant_id=applicant.id,
        cycle_date=applicant.cycle_date,
        physics_ict=applicant.physics_ict,
        russian=applicant.russian,
        math=applicant.math,
        achievements=applicant.achievements,
        total_score=applicant.total,
        consent=bool(applicant.consent),
        priorities=[
            ApplicantPriority(
                program_code=p.program_code,
                program_name=name,
                priority_rank=p.priority,
                cycle_date=p.cycle_date,
            )
            for p, name in rows
        ],
    )
