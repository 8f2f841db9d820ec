"""
Admission Engine Constants

Status values, rank bounds and the fixed ordering rules used by the engine.
"""

from enum import Enum


# =============================================================================
# PRIORITIES
# =============================================================================

MIN_PRIORITY_RANK = 1
MAX_PRIORITY_RANK = 4  # an applicant ranks at most four programs per date


# =============================================================================
# PASSING SCORE STATUS
# =============================================================================

class PassingStatus(str, Enum):
    """Outcome of the passing score computation for one program and date."""
    COMPUTED = "COMPUTED"              # all seats filled
    UNDERSUBSCRIBED = "UNDERSUBSCRIBED"  # some seats left, lowest admitted score reported
    NO_DATA = "NO_DATA"                # nobody enrolled


# Legacy flat map: these statuses are reported by label instead of a score
LABEL_ONLY_STATUSES = (PassingStatus.NO_DATA, PassingStatus.UNDERSUBSCRIBED)


# =============================================================================
# DATE FORMATS
# =============================================================================

# ISO first, then the day-first format used by admission office exports
CYCLE_DATE_FORMATS = ("%Y-%m-%d", "%d.%m.%Y")
