"""
Shared fixtures: a throwaway SQLite database per test, a session factory
bound to it, a result gate with its own lock registry, and a seeding helper
that loads program lists through the regular ingestion path.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import date
from typing import Dict, Iterable, Tuple, Sequence

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from db import init_db, session_scope
from admission.logic.ledger import upsert_program, ingest_program_batch
from admission.logic.locks import DateLockRegistry
from admission.logic.runner import ResultGate

CYCLE_DATE = date(2025, 8, 1)

# (applicant_id, total score, consent, program codes in priority order)
ApplicantSeed = Tuple[int, int, bool, Sequence[str]]


@pytest.fixture
def engine(tmp_path):
    eng = create_engine(f"sqlite:///{tmp_path / 'admission.db'}", future=True)
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def gate(session_factory):
    return ResultGate(session_factory, locks=DateLockRegistry())


def load_cycle(
    session_factory,
    programs: Dict[str, int],
    applicants: Iterable[ApplicantSeed] = (),
    cycle_date: date = CYCLE_DATE,
):
    """Create the catalog and load one list per program, committing at the end."""
    applicants = list(applicants)
    with session_scope(session_factory) as db:
        for code, capacity in programs.items():
            upsert_program(db, code, f"Program {code}", capacity)

        lists: Dict[str, list] = {code: [] for code in programs}
        for applicant_id, score, consent, choices in applicants:
            for rank, code in enumerate(choices, start=1):
                lists.setdefault(code, []).append({
                    "applicant_id": applicant_id,
                    "priority_rank": rank,
                    "consent": consent,
                    "physics_ict": score,
                })

        for code, rows in lists.items():
            if code in programs:
                ingest_program_batch(db, code, cycle_date, rows)


@pytest.fixture
def seed(session_factory):
    def _seed(programs, applicants=(), cycle_date=CYCLE_DATE):
        load_cycle(session_factory, programs, applicants, cycle_date)
    return _seed
