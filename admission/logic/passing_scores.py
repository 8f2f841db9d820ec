"""
Passing Score Calculator

Derives the per-program cutoff from a finished allocation and upserts one
passing_scores row for every program in the catalog, including programs
nobody was admitted to.
"""

import logging
from datetime import date
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from .adapter import load_programs, enrollment_stats
from .constants import PassingStatus
from .contracts import ProgramSeats, PassingScoreRecord
from .ledger import upsert_passing_score

logger = logging.getLogger(__name__)


def classify_passing_score(
    enrolled_count: int,
    capacity: int,
    min_score: Optional[int],
) -> Tuple[PassingStatus, Optional[int]]:
    """
    Map enrollment statistics of one program to (status, passing score).

    An undersubscribed program still reports its lowest admitted score.
    """
    if enrolled_count == 0:
        return PassingStatus.NO_DATA, None
    if enrolled_count < capacity:
        return PassingStatus.UNDERSUBSCRIBED, min_score
    return PassingStatus.COMPUTED, min_score


def compute_passing_scores(
    db: Session,
    cycle_date: date,
    programs: Optional[List[ProgramSeats]] = None,
) -> List[PassingScoreRecord]:
    """
    Compute and persist the passing score table for a date.

    Must run after the date's assignments are flushed, inside the same
    transaction that produced them.

    Args:
        db: Session holding the simulation transaction
        cycle_date: Date to compute for
        programs: Catalog snapshot used by the run; reloaded when omitted

    Returns:
        One PassingScoreRecord per program, ordered by program code
    """
    if programs is None:
        programs = load_programs(db)

    stats = enrollment_stats(db, cycle_date)
    records: List[PassingScoreRecord] = []

    for program in sorted(programs, key=lambda p: p.code):
        enrolled_count, min_score = stats.get(program.code, (0, None))
        status, passing_score = classify_passing_score(enrolled_count, program.capacity, min_score)

        record = PassingScoreRecord(
            program_code=program.code,
            passing_score=passing_score,
            status=status,
            cycle_date=cycle_date,
            program_name=program.name,
            capacity=program.capacity,
        )
        upsert_passing_score(db, record)
        records.append(record)

    db.flush()
    logger.debug(f"Passing scores for {cycle_date}: " + ", ".join(
        f"{r.program_code}={r.passing_score}({r.status.value})" for r in records
    ))
    return records
