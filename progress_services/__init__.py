"""
progress_services -- orchestration over the pure progress engines.

Usage:
    from progress_config import get_active_settings
    from progress_services import ProjectRecomputeService

    service = ProjectRecomputeService(get_active_settings())
    result = service.recompute(project, reports, attendances)
    result.summary.health
"""

from progress_services.recompute import (
    ProjectRecomputeService,
    RecomputeResult,
    RejectedAttendance,
    RejectedReport,
)

__all__ = [
    "ProjectRecomputeService",
    "RecomputeResult",
    "RejectedAttendance",
    "RejectedReport",
]
