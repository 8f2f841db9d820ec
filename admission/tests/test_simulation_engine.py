"""
Allocation tests for the simulation engine.
"""

import random
from collections import Counter

import pytest

from admission.logic import (
    SimulationEngine,
    allocate_seats,
    ProgramSeats,
    RankedApplicant,
    PriorityChoice,
    NoProgramsError,
    PassingStatus,
)
from .conftest import CYCLE_DATE


def _programs(**capacities):
    return [ProgramSeats(code=code, name=code, capacity=cap) for code, cap in capacities.items()]


def _choices(*codes):
    return [PriorityChoice(program_code=code, priority_rank=rank) for rank, code in enumerate(codes, start=1)]


def _placements(outcome):
    return {a.applicant_id: a.program_code for a in outcome.assignments}


def test_higher_score_takes_first_choice():
    outcome = allocate_seats(
        CYCLE_DATE,
        _programs(A=1, B=1),
        [RankedApplicant(applicant_id=1, total_score=90), RankedApplicant(applicant_id=2, total_score=80)],
        {1: _choices("A", "B"), 2: _choices("A", "B")},
    )

    assert _placements(outcome) == {1: "A", 2: "B"}
    assert outcome.assignments[1].priority_rank_honored == 2
    assert outcome.assigned_count == 2
    assert outcome.unassigned_count == 0
    assert outcome.seats_remaining == {"A": 0, "B": 0}


def test_priorities_are_walked_by_rank_not_by_list_order():
    shuffled = [
        PriorityChoice(program_code="B", priority_rank=2),
        PriorityChoice(program_code="A", priority_rank=1),
    ]
    outcome = allocate_seats(
        CYCLE_DATE,
        _programs(A=1, B=1),
        [RankedApplicant(applicant_id=7, total_score=50)],
        {7: shuffled},
    )
    assert _placements(outcome) == {7: "A"}


def test_applicant_without_priorities_is_counted_unassigned():
    outcome = allocate_seats(
        CYCLE_DATE,
        _programs(A=3),
        [RankedApplicant(applicant_id=1, total_score=99), RankedApplicant(applicant_id=2, total_score=10)],
        {2: _choices("A")},
    )
    assert _placements(outcome) == {2: "A"}
    assert outcome.unassigned_count == 1
    assert outcome.total_applicants == 2


def test_no_seat_left_in_any_choice_leaves_applicant_unassigned():
    outcome = allocate_seats(
        CYCLE_DATE,
        _programs(A=1, B=0),
        [RankedApplicant(applicant_id=1, total_score=90), RankedApplicant(applicant_id=2, total_score=80)],
        {1: _choices("A"), 2: _choices("A", "B")},
    )
    assert _placements(outcome) == {1: "A"}
    assert outcome.unassigned_count == 1


def test_unknown_program_code_has_no_seats():
    outcome = allocate_seats(
        CYCLE_DATE,
        _programs(A=1),
        [RankedApplicant(applicant_id=1, total_score=90)],
        {1: _choices("GONE", "A")},
    )
    assert _placements(outcome) == {1: "A"}
    assert "GONE" not in outcome.seats_remaining


def test_admitted_applicant_is_never_displaced():
    # Input order is the allocation order; a later, higher score does not bump anyone
    outcome = allocate_seats(
        CYCLE_DATE,
        _programs(A=1),
        [RankedApplicant(applicant_id=1, total_score=60), RankedApplicant(applicant_id=2, total_score=95)],
        {1: _choices("A"), 2: _choices("A")},
    )
    assert _placements(outcome) == {1: "A"}


def test_duplicate_applicant_is_assigned_once():
    outcome = allocate_seats(
        CYCLE_DATE,
        _programs(A=2),
        [RankedApplicant(applicant_id=1, total_score=60), RankedApplicant(applicant_id=1, total_score=60)],
        {1: _choices("A")},
    )
    assert len(outcome.assignments) == 1
    assert outcome.seats_remaining["A"] == 1


def test_empty_catalog_raises():
    with pytest.raises(NoProgramsError):
        allocate_seats(CYCLE_DATE, [], [RankedApplicant(applicant_id=1, total_score=1)], {})


def test_random_cohort_respects_capacity_and_single_assignment():
    rng = random.Random(20250801)
    codes = ["A", "B", "C", "D", "E"]
    programs = [ProgramSeats(code=c, name=c, capacity=rng.randint(0, 6)) for c in codes]
    applicants = sorted(
        (RankedApplicant(applicant_id=i, total_score=rng.randint(100, 310)) for i in range(1, 61)),
        key=lambda a: (-a.total_score, a.applicant_id),
    )
    priorities = {a.applicant_id: _choices(*rng.sample(codes, rng.randint(0, 4))) for a in applicants}

    outcome = allocate_seats(CYCLE_DATE, programs, applicants, priorities)

    per_program = Counter(a.program_code for a in outcome.assignments)
    for program in programs:
        assert per_program[program.code] <= program.capacity
    per_applicant = Counter(a.applicant_id for a in outcome.assignments)
    assert all(n == 1 for n in per_applicant.values())
    assert outcome.assigned_count + outcome.unassigned_count == len(applicants)

    again = allocate_seats(CYCLE_DATE, programs, applicants, priorities)
    assert again.model_dump() == outcome.model_dump()


# =============================================================================
# AGAINST THE DATABASE
# =============================================================================

def test_tie_at_boundary_goes_to_lower_id(seed, db):
    seed({"A": 1}, [(2, 70, True, ["A"]), (1, 70, True, ["A"])])

    outcome = SimulationEngine(db).simulate(CYCLE_DATE)

    assert _placements(outcome) == {1: "A"}
    assert outcome.unassigned_count == 1


def test_only_consenting_applicants_take_part(seed, db):
    seed({"A": 2}, [(1, 99, False, ["A"]), (2, 50, True, ["A"])])

    outcome = SimulationEngine(db).simulate(CYCLE_DATE)

    assert _placements(outcome) == {2: "A"}
    assert outcome.total_applicants == 1


def test_other_dates_are_ignored(seed, db):
    from datetime import date

    seed({"A": 1}, [(1, 99, True, ["A"])], cycle_date=date(2025, 7, 25))
    seed({"A": 1}, [(2, 10, True, ["A"])])

    outcome = SimulationEngine(db).simulate(CYCLE_DATE)

    assert _placements(outcome) == {2: "A"}


def test_simulate_is_deterministic_and_writes_nothing(seed, db):
    seed(
        {"A": 2, "B": 1},
        [(i, 200 - (i % 4) * 10, True, ["A", "B"] if i % 2 else ["B", "A"]) for i in range(1, 9)],
    )
    engine = SimulationEngine(db)

    first = engine.simulate(CYCLE_DATE)
    second = engine.simulate(CYCLE_DATE)

    assert first.model_dump() == second.model_dump()
    from admission.logic.adapter import count_enrollment
    assert count_enrollment(db, CYCLE_DATE) == 0


def test_simulate_with_empty_catalog_raises(db):
    with pytest.raises(NoProgramsError):
        SimulationEngine(db).simulate(CYCLE_DATE)


def test_run_replaces_previous_enrollment_for_the_date(seed, db):
    seed({"A": 1, "B": 1}, [(1, 90, True, ["A", "B"]), (2, 80, True, ["A", "B"])])
    engine = SimulationEngine(db)

    engine.run(CYCLE_DATE)
    outcome, table = engine.run(CYCLE_DATE)

    from admission.logic.adapter import count_enrollment
    assert count_enrollment(db, CYCLE_DATE) == 2
    assert outcome.assigned_count == 2
    assert [r.program_code for r in table] == ["A", "B"]


def test_run_scores_against_the_catalog_it_allocated_with(seed, db, monkeypatch):
    seed({"A": 1}, [(1, 90, True, ["A"]), (2, 80, True, ["A"])])

    # A capacity change committed mid-run must not reach the passing scores
    monkeypatch.setattr(
        "admission.logic.passing_scores.load_programs",
        lambda session: [ProgramSeats(code="A", name="Program A", capacity=5)],
    )

    outcome, table = SimulationEngine(db).run(CYCLE_DATE)

    assert outcome.seats_remaining == {"A": 0}
    assert [(r.program_code, r.passing_score, r.status, r.capacity) for r in table] == [
        ("A", 90, PassingStatus.COMPUTED, 1),
    ]
