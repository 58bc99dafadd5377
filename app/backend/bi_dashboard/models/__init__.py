"""ORM model package."""

from bi_dashboard.models.entities import (
    ActiveCompany,
    CapacityDatamart,
    LeaveRecord,
    ProjectProgress,
    TaskMetrics,
)

__all__ = [
    "ActiveCompany",
    "CapacityDatamart",
    "LeaveRecord",
    "ProjectProgress",
    "TaskMetrics",
]
