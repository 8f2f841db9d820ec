"""
Admission API Routes

Exposes the ledgers, the simulation gate and the administrative resets.
"""

import logging
from typing import Optional, List, Dict, Any

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from db import get_db
from .logic.adapter import (
    parse_cycle_date,
    load_programs,
    list_enrollment,
    list_priority_rows,
    list_applicants,
    get_applicant_details,
    build_enrollment_report,
)
from .logic.errors import AdmissionError
from .logic.ledger import upsert_program, delete_enrollment, clear_all
from .logic.runner import ResultGate, legacy_passing_scores

logger = logging.getLogger(__name__)

router = APIRouter(tags=["admission"])


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class ProgramIn(BaseModel):
    code: str = Field(..., min_length=1, max_length=32)
    name: str = Field(..., min_length=1)
    capacity: int = Field(..., ge=0, description="Number of seats")


class UploadRequest(BaseModel):
    """One program list for one date, already parsed by the importer."""
    program: str = Field(..., description="Program code")
    date: str = Field(..., description="Cycle date, YYYY-MM-DD or DD.MM.YYYY")
    rows: List[Dict[str, Any]] = Field(
        default_factory=list,
        examples=[[
            {"applicant_id": 101, "priority_rank": 1, "consent": True,
             "physics_ict": 80, "russian": 75, "math": 90, "achievements": 5}
        ]],
    )


def get_result_gate() -> ResultGate:
    return ResultGate()


def _to_http(e: AdmissionError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=str(e))


def _server_error(where: str, e: Exception) -> JSONResponse:
    logger.exception(f"{where} failed: {e}")
    return JSONResponse(status_code=500, content={"error": str(e)})


# =============================================================================
# CATALOG
# =============================================================================

@router.get("/programs", summary="List programs")
def get_programs(db_session=Depends(get_db)):
    db: Session
    with db_session as db:
        return [p.model_dump() for p in load_programs(db)]


@router.post("/programs", summary="Create or update a program")
def save_program(payload: ProgramIn, db_session=Depends(get_db)):
    db: Session
    with db_session as db:
        program = upsert_program(db, payload.code, payload.name, payload.capacity)
        return program.model_dump()


# =============================================================================
# LEDGERS
# =============================================================================

@router.post("/upload", summary="Load a program list for a date")
def upload_list(request: UploadRequest, gate: ResultGate = Depends(get_result_gate)):
    """
    Replaces the program's priorities for the date and upserts applicant
    records. Rows that fail validation are counted in `errors` and skipped.
    An empty list is rejected instead of wiping the program's list.
    """
    if not request.rows:
        raise HTTPException(status_code=400, detail="No rows to upload")
    try:
        cycle_date = parse_cycle_date(request.date)
        summary = gate.ingest(request.program, cycle_date, request.rows)
        return {
            "success": True,
            "message": summary.message,
            **summary.model_dump(mode="json"),
        }
    except AdmissionError as e:
        raise _to_http(e)
    except Exception as e:
        return _server_error("Upload", e)


@router.get("/lists", summary="Program lists with applicant scores")
def get_lists(
    program: Optional[str] = Query(None),
    date: Optional[str] = Query(None),
    applicant_id: Optional[int] = Query(None, alias="id"),
    consent: Optional[bool] = Query(None),
    db_session=Depends(get_db),
):
    try:
        cycle_date = parse_cycle_date(date) if date else None
        db: Session
        with db_session as db:
            rows = list_priority_rows(db, program, cycle_date, applicant_id, consent)
            return [r.model_dump(mode="json") for r in rows]
    except AdmissionError as e:
        raise _to_http(e)
    except Exception as e:
        return _server_error("Lists", e)


@router.get("/all-applicants", summary="Applicants with at least one priority")
def get_all_applicants(
    applicant_id: Optional[int] = Query(None, alias="id"),
    score: Optional[int] = Query(None, description="Minimum total score"),
    date: Optional[str] = Query(None),
    db_session=Depends(get_db),
):
    try:
        cycle_date = parse_cycle_date(date) if date else None
        db: Session
        with db_session as db:
            rows = list_applicants(db, applicant_id, score, cycle_date)
            return [r.model_dump(mode="json") for r in rows]
    except AdmissionError as e:
        raise _to_http(e)
    except Exception as e:
        return _server_error("All applicants", e)


@router.get("/applicant-details", summary="Latest record and priorities of one applicant")
def applicant_details(
    applicant_id: int = Query(..., alias="id"),
    db_session=Depends(get_db),
):
    try:
        db: Session
        with db_session as db:
            return get_applicant_details(db, applicant_id).model_dump(mode="json")
    except AdmissionError as e:
        raise _to_http(e)
    except Exception as e:
        return _server_error("Applicant details", e)


# =============================================================================
# SIMULATION
# =============================================================================

@router.get("/calculate", summary="Passing scores for a date (simulated once, then cached)")
def calculate(date: str = Query(...), gate: ResultGate = Depends(get_result_gate)):
    try:
        cycle_date = parse_cycle_date(date)
        logger.info(f"Passing scores requested for {cycle_date}")
        result = gate.get_or_compute(cycle_date)
        return {
            "passing_scores": legacy_passing_scores(result.table),
            "passing_scores_table": [r.model_dump(mode="json") for r in result.table],
            "date": cycle_date.isoformat(),
            "total_programs": len(result.table),
            "from_cache": result.from_cache,
            "assigned_count": result.assigned_count,
            "unassigned_count": result.unassigned_count,
            "message": (
                "Results served from cache (already calculated)"
                if result.from_cache
                else "Full simulation and passing score calculation performed"
            ),
        }
    except AdmissionError as e:
        if e.retryable:
            logger.warning(f"Retryable failure for /calculate: {e}")
        raise _to_http(e)
    except Exception as e:
        return _server_error("Calculate", e)


@router.get("/enrollment", summary="Admitted applicants of one program")
def get_enrollment(
    program: str = Query(...),
    date: str = Query(...),
    db_session=Depends(get_db),
):
    try:
        cycle_date = parse_cycle_date(date)
        db: Session
        with db_session as db:
            return [a.model_dump(mode="json") for a in list_enrollment(db, program, cycle_date)]
    except AdmissionError as e:
        raise _to_http(e)
    except Exception as e:
        return _server_error("Enrollment", e)


@router.get("/report", summary="Enrollment report data for a date")
def get_report(date: str = Query(...), db_session=Depends(get_db)):
    try:
        cycle_date = parse_cycle_date(date)
        db: Session
        with db_session as db:
            return build_enrollment_report(db, cycle_date).model_dump(mode="json")
    except AdmissionError as e:
        raise _to_http(e)
    except Exception as e:
        return _server_error("Report", e)


# =============================================================================
# RESETS
# =============================================================================

@router.post("/clear-enrollment", summary="Delete enrollment rows")
def post_clear_enrollment(date: Optional[str] = Query(None), db_session=Depends(get_db)):
    """Passing scores are kept, so /calculate keeps serving the cached table."""
    try:
        cycle_date = parse_cycle_date(date) if date else None
        db: Session
        with db_session as db:
            deleted = delete_enrollment(db, cycle_date)
        return {"success": True, "deleted": deleted, "message": "Enrollment table cleared"}
    except AdmissionError as e:
        raise _to_http(e)
    except Exception as e:
        return _server_error("Clear enrollment", e)


@router.post("/clear-results", summary="Delete enrollment and passing scores of a date")
def post_clear_results(date: str = Query(...), gate: ResultGate = Depends(get_result_gate)):
    try:
        cycle_date = parse_cycle_date(date)
        counts = gate.clear_results(cycle_date)
        return {"success": True, "deleted": counts, "message": f"Results for {cycle_date.isoformat()} cleared"}
    except AdmissionError as e:
        raise _to_http(e)
    except Exception as e:
        return _server_error("Clear results", e)


@router.post("/clear", summary="Delete every ledger")
def post_clear(db_session=Depends(get_db)):
    try:
        db: Session
        with db_session as db:
            counts = clear_all(db)
        return {"success": True, "deleted": counts, "message": "Database fully cleared"}
    except Exception as e:
        return _server_error("Clear", e)
