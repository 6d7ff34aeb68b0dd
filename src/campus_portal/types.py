from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

Role = Literal["student", "admin"]
Branch = Literal[
    "CSE",
    "ISE",
    "MC",
    "AIML",
    "Aerospace",
    "Automotive",
    "EEE",
    "ECE",
    "Civil",
    "Mechanical",
    "Robotics",
]
ApplicationStatus = Literal[
    "applied",
    "under_review",
    "shortlisted",
    "interviewed",
    "selected",
    "rejected",
]
StageEntryStatus = Literal["completed", "pending"]
StageState = Literal["completed", "current", "rejected", "pending"]
GrievanceType = Literal["application", "technical", "placement", "discrimination", "communication", "other"]
GrievancePriority = Literal["low", "medium", "high"]
GrievanceStatus = Literal["submitted", "in_progress", "resolved"]

APPLICATION_STATUSES: tuple[str, ...] = (
    "applied",
    "under_review",
    "shortlisted",
    "interviewed",
    "selected",
    "rejected",
)
CANONICAL_STAGES: tuple[str, ...] = ("applied", "under_review", "shortlisted", "interviewed", "selected")
TERMINAL_STATUSES: frozenset[str] = frozenset({"selected", "rejected"})


class JobCriteria(BaseModel):
    """The part of a job posting that decides who may apply."""

    model_config = ConfigDict(from_attributes=True)

    min_ug_percentage: float | None = None
    allow_backlogs: bool = False
    eligible_branches: list[str] | None = None


class StudentProfile(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    branch: str
    ug_percentage: float
    has_active_backlogs: bool = False

    @field_validator("ug_percentage")
    @classmethod
    def validate_percentage(cls, value: float) -> float:
        if value < 0 or value > 100:
            raise ValueError("ug_percentage must be between 0 and 100")
        return value


class EligibilityResult(BaseModel):
    eligible: bool
    reasons: list[str] = Field(default_factory=list)


class StageEntry(BaseModel):
    stage: str
    timestamp: str
    status: StageEntryStatus = "completed"


class TimelineStage(BaseModel):
    stage: str
    state: StageState
    timestamp: datetime | None = None


class CurrentUser(BaseModel):
    id: int
    role: Role
    email: str
    student_id: int | None = None
