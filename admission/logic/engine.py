"""
Admission Simulation Engine

Serial greedy allocation of seats by applicant rank and declared priorities.

Pipeline flow for one cycle date:
1. Load the program catalog and open a seat counter per program
2. Load consenting applicants, best total first (ties: lower id first)
3. Walk each applicant's priorities in rank order and take the first
   program that still has a seat
4. Persist the assignments and derive the passing score table

This is a single pass of sequential offers, not a stable matching: an
admitted applicant is never displaced, and seats only ever go down.
"""

import logging
import time
from datetime import date
from typing import Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from .adapter import load_programs, load_ranked_applicants, load_priorities_by_applicant
from .contracts import (
    ProgramSeats,
    RankedApplicant,
    PriorityChoice,
    EnrollmentAssignment,
    SimulationOutcome,
    PassingScoreRecord,
)
from .errors import NoProgramsError
from .ledger import save_assignments, delete_enrollment
from .passing_scores import compute_passing_scores

logger = logging.getLogger(__name__)


def allocate_seats(
    cycle_date: date,
    programs: List[ProgramSeats],
    applicants: List[RankedApplicant],
    priorities: Dict[int, List[PriorityChoice]],
) -> SimulationOutcome:
    """
    Run the allocation over already loaded inputs.

    Args:
        cycle_date: Date stamped on every assignment
        programs: Catalog snapshot
        applicants: Consenting applicants, already in allocation order
        priorities: Per-applicant choices, rank ascending

    Returns:
        SimulationOutcome with assignments in allocation order

    Raises:
        NoProgramsError: when the catalog is empty
    """
    if not programs:
        raise NoProgramsError()

    # Owned by this call only
    seats_remaining: Dict[str, int] = {p.code: p.capacity for p in programs}

    assigned_ids = set()
    assignments: List[EnrollmentAssignment] = []
    unassigned = 0

    for applicant in applicants:
        if applicant.applicant_id in assigned_ids:
            continue

        choices = priorities.get(applicant.applicant_id, [])
        placed = False
        for choice in sorted(choices, key=lambda c: c.priority_rank):
            # Codes missing from the catalog have no seats
            if seats_remaining.get(choice.program_code, 0) > 0:
                seats_remaining[choice.program_code] -= 1
                assignments.append(EnrollmentAssignment(
                    applicant_id=applicant.applicant_id,
                    program_code=choice.program_code,
                    priority_rank_honored=choice.priority_rank,
                    total_score=applicant.total_score,
                    cycle_date=cycle_date,
                ))
                assigned_ids.add(applicant.applicant_id)
                placed = True
                break

        if not placed:
            unassigned += 1

    return SimulationOutcome(
        cycle_date=cycle_date,
        assignments=assignments,
        total_applicants=len(applicants),
        assigned_count=len(assignments),
        unassigned_count=unassigned,
        seats_remaining=seats_remaining,
    )


class SimulationEngine:
    """
    Runs the admission simulation against a database session.

    The engine never commits; the caller decides the transaction boundary
    (see runner.ResultGate).
    """

    def __init__(self, db: Session):
        self.db = db

    def simulate(self, cycle_date: date, programs: Optional[List[ProgramSeats]] = None) -> SimulationOutcome:
        """
        Compute assignments for a date without writing anything.

        Args:
            cycle_date: Date to simulate
            programs: Catalog snapshot to allocate against; loaded when omitted

        Raises:
            NoProgramsError: when the catalog is empty
        """
        if programs is None:
            programs = load_programs(self.db)
        if not programs:
            raise NoProgramsError()

        applicants = load_ranked_applicants(self.db, cycle_date)
        priorities = load_priorities_by_applicant(self.db, cycle_date)
        logger.info(
            f"Simulating {cycle_date}: {len(programs)} programs, "
            f"{len(applicants)} consenting applicants"
        )
        return allocate_seats(cycle_date, programs, applicants, priorities)

    def run(self, cycle_date: date) -> Tuple[SimulationOutcome, List[PassingScoreRecord]]:
        """
        Full compute-and-persist sequence for one date.

        Replaces the date's enrollment rows, then writes passing scores for
        every program. All of it happens in the caller's transaction, and
        allocation and passing scores share one catalog snapshot.
        """
        start_time = time.perf_counter()

        removed = delete_enrollment(self.db, cycle_date)
        if removed:
            logger.info(f"Removed {removed} stale enrollment rows for {cycle_date}")

        programs = load_programs(self.db)
        outcome = self.simulate(cycle_date, programs)
        save_assignments(self.db, outcome.assignments)
        table = compute_passing_scores(self.db, cycle_date, programs)

        elapsed = (time.perf_counter() - start_time) * 1000
        logger.info(
            f"Simulation for {cycle_date} done: {outcome.assigned_count} assigned, "
            f"{outcome.unassigned_count} unassigned ({elapsed:.2f}ms)"
        )
        return outcome, table
