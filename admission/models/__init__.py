# Export all admission models for easy imports
from .base import Base, utc_now
from .program import Program
from .applicant import Applicant
from .priority import Priority
from .enrollment import Enrollment
from .passing_score import PassingScore

__all__ = [
    "Base",
    "utc_now",
    "Program",
    "Applicant",
    "Priority",
    "Enrollment",
    "PassingScore",
]
