"""
Loading program lists into the applicant and priority ledgers.
"""

import pytest

from db import session_scope
from admission.logic.errors import UnknownProgramError
from admission.logic.ledger import upsert_program, ingest_program_batch, clear_results
from admission.models import Applicant, Priority
from .conftest import CYCLE_DATE


def _row(applicant_id, rank=1, consent=True, **scores):
    row = {"applicant_id": applicant_id, "priority_rank": rank, "consent": consent}
    row.update(scores)
    return row


@pytest.fixture
def catalog(session_factory):
    with session_scope(session_factory) as db:
        upsert_program(db, "A", "Applied Math", 10)
        upsert_program(db, "B", "Biology", 10)


def test_total_is_sum_of_components(catalog, db):
    ingest_program_batch(db, "A", CYCLE_DATE, [
        _row(1, physics_ict=70, russian=80, math=90, achievements=7),
    ])

    applicant = db.get(Applicant, (1, CYCLE_DATE))
    assert applicant.total == 247
    assert applicant.consent is True


def test_counts_inserted_updated_and_unchanged(catalog, db):
    first = ingest_program_batch(db, "A", CYCLE_DATE, [_row(1, math=50), _row(2, math=60)])
    assert (first.inserted, first.updated, first.errors) == (2, 0, 0)

    second = ingest_program_batch(db, "B", CYCLE_DATE, [
        _row(1, rank=2, math=55),   # scores changed
        _row(2, rank=2, math=60),   # identical
        _row(3, rank=1, math=40),
    ])
    assert (second.inserted, second.updated, second.errors) == (1, 1, 0)
    assert db.get(Applicant, (1, CYCLE_DATE)).total == 55
    assert second.message == "Upload complete. Inserted: 1, Updated: 1, Errors: 0"


def test_malformed_rows_are_counted_and_skipped(catalog, db):
    summary = ingest_program_batch(db, "A", CYCLE_DATE, [
        _row(1, math=50),
        {"priority_rank": 1},              # no id
        _row(2, rank=9),                   # rank out of range
        _row(3, math=-5),                  # negative component
        _row("abc"),
        _row(4, math=60),
    ])

    assert summary.inserted == 2
    assert summary.errors == 4
    assert len(summary.error_details) == 4
    assert summary.error_details[0].startswith("Row 2:")
    ids = {p.applicant_id for p in db.query(Priority).all()}
    assert ids == {1, 4}


def test_duplicate_applicant_in_one_list_is_an_error(catalog, db):
    summary = ingest_program_batch(db, "A", CYCLE_DATE, [_row(1, math=50), _row(1, math=90)])

    assert summary.errors == 1
    assert db.get(Applicant, (1, CYCLE_DATE)).total == 50


def test_rank_already_used_on_another_program_is_an_error(catalog, db):
    ingest_program_batch(db, "A", CYCLE_DATE, [_row(1, rank=1)])

    summary = ingest_program_batch(db, "B", CYCLE_DATE, [_row(1, rank=1)])

    assert summary.errors == 1
    assert "already uses priority 1 for A" in summary.error_details[0]


def test_new_list_supersedes_program_priorities_for_that_date(catalog, db):
    from datetime import date

    other_day = date(2025, 7, 20)
    ingest_program_batch(db, "A", other_day, [_row(9)])
    ingest_program_batch(db, "A", CYCLE_DATE, [_row(1), _row(2)])
    ingest_program_batch(db, "B", CYCLE_DATE, [_row(1, rank=2)])

    ingest_program_batch(db, "A", CYCLE_DATE, [_row(3)])

    rows = db.query(Priority).order_by(Priority.cycle_date, Priority.program_code, Priority.applicant_id).all()
    assert [(p.cycle_date, p.program_code, p.applicant_id) for p in rows] == [
        (other_day, "A", 9),
        (CYCLE_DATE, "A", 3),
        (CYCLE_DATE, "B", 1),
    ]


def test_unknown_program_is_rejected(catalog, db):
    with pytest.raises(UnknownProgramError):
        ingest_program_batch(db, "ZZ", CYCLE_DATE, [_row(1)])


def test_no_warning_before_first_simulation(catalog, db):
    summary = ingest_program_batch(db, "A", CYCLE_DATE, [_row(1)])
    assert summary.warnings == []


def test_list_writes_take_the_date_lock(catalog, db, monkeypatch):
    locked = []
    monkeypatch.setattr(
        "admission.logic.ledger.acquire_advisory_lock",
        lambda session, cycle_date: locked.append(cycle_date),
    )

    ingest_program_batch(db, "A", CYCLE_DATE, [_row(1, physics_ict=50)])
    clear_results(db, CYCLE_DATE)

    assert locked == [CYCLE_DATE, CYCLE_DATE]
