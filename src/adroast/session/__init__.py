"""Session bookkeeping for adroast.

Public API:
    SessionLedger -- Append-only history of finalized sessions
    SegmentationState -- The running segment and its boundary policy
    SessionTimeGovernor -- Cumulative analysis-time ceiling
"""

from adroast.session.governor import SessionTimeGovernor
from adroast.session.ledger import SessionLedger, build_record
from adroast.session.segmentation import (
    BoundarySignalPolicy,
    BrandChangePolicy,
    DisabledSegmentation,
    SegmentationPolicy,
    SegmentationState,
    make_policy,
)

__all__ = [
    "BoundarySignalPolicy",
    "BrandChangePolicy",
    "DisabledSegmentation",
    "SegmentationPolicy",
    "SegmentationState",
    "SessionLedger",
    "SessionTimeGovernor",
    "build_record",
    "make_policy",
]
