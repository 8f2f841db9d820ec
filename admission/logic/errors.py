"""
Admission Errors

Every failure the core raises derives from AdmissionError so routes can map
them to status codes in one place.
"""

from datetime import date
from typing import Optional


class AdmissionError(Exception):
    """Base class for admission core failures."""
    status_code = 500
    retryable = False


class NoProgramsError(AdmissionError):
    """The program catalog is empty; a simulation cannot run."""
    status_code = 409

    def __init__(self, message: str = "No programs in the catalog"):
        super().__init__(message)


class TransactionFailure(AdmissionError):
    """
    The storage layer aborted the compute-and-persist transaction.

    The run was rolled back entirely and the date is left in its pre-run
    state, so the caller may retry.
    """
    status_code = 503
    retryable = True

    def __init__(self, cycle_date: date, cause: Optional[BaseException] = None):
        self.cycle_date = cycle_date
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"Simulation transaction for {cycle_date.isoformat()} failed{detail}")


class MalformedRecordError(AdmissionError):
    """A single ingestion row could not be accepted. Counted, never fatal to a batch."""
    status_code = 422

    def __init__(self, row_number: int, reason: str):
        self.row_number = row_number
        self.reason = reason
        super().__init__(f"Row {row_number}: {reason}")


class UnknownProgramError(AdmissionError):
    status_code = 404

    def __init__(self, program_code: str):
        self.program_code = program_code
        super().__init__(f"Unknown program: {program_code}")


class ApplicantNotFoundError(AdmissionError):
    status_code = 404

    def __init__(self, applicant_id: int):
        self.applicant_id = applicant_id
        super().__init__(f"Applicant {applicant_id} not found or has no priorities")


class NoEnrollmentDataError(AdmissionError):
    status_code = 404

    def __init__(self, cycle_date: date):
        self.cycle_date = cycle_date
        super().__init__(f"No enrollment data for {cycle_date.isoformat()}")


class InvalidCycleDateError(AdmissionError):
    status_code = 400

    def __init__(self, raw: str):
        self.raw = raw
        super().__init__(f"Invalid cycle date: {raw!r} (expected YYYY-MM-DD or DD.MM.YYYY)")
