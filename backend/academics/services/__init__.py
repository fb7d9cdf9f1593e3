"""Service layer for the academics engine.

Re-export the services for convenient imports in routes and tests.
"""

from .analytics import AnalyticsService
from .integrity import IntegrityService, ReconcileReport
from .progress import ProgressService
from .submissions import SubmissionDetail, SubmissionsService, UpsertResult

__all__ = [
    "AnalyticsService",
    "IntegrityService",
    "ReconcileReport",
    "ProgressService",
    "SubmissionDetail",
    "SubmissionsService",
    "UpsertResult",
]
