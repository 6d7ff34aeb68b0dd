from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from campus_portal.types import (
    ApplicationStatus,
    Branch,
    EligibilityResult,
    GrievancePriority,
    GrievanceStatus,
    GrievanceType,
    Role,
    StageEntry,
    TimelineStage,
)


class RegisterRequest(BaseModel):
    first_name: str = Field(min_length=1)
    gender: str = ""
    college_reg_no: str = Field(min_length=1)
    date_of_birth: str = ""
    college_email: EmailStr
    personal_email: EmailStr | None = None
    mobile_number: str = ""
    is_pwd: bool = False
    branch: Branch
    ug_percentage: float = Field(ge=0, le=100)
    has_active_backlogs: bool = False
    # bcrypt only looks at the first 72 bytes
    password: str = Field(min_length=8, max_length=72)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class StudentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    first_name: str
    gender: str
    college_reg_no: str
    date_of_birth: str
    college_email: str
    personal_email: str
    mobile_number: str
    is_pwd: bool
    branch: str
    ug_percentage: float
    has_active_backlogs: bool
    resume_url: str | None = None


class UserResponse(BaseModel):
    id: int
    email: str
    role: Role
    student: StudentResponse | None = None


class StudentUpdateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    first_name: str | None = Field(default=None, min_length=1)
    gender: str | None = None
    date_of_birth: str | None = None
    personal_email: EmailStr | None = None
    mobile_number: str | None = None
    is_pwd: bool | None = None
    branch: Branch | None = None
    ug_percentage: float | None = Field(default=None, ge=0, le=100)
    has_active_backlogs: bool | None = None


class ResumeResponse(BaseModel):
    resume_url: str | None


class JobCreateRequest(BaseModel):
    title: str = Field(min_length=1)
    company: str = Field(min_length=1)
    description: str | None = None
    location: str | None = None
    package_range: str | None = None
    min_ug_percentage: float | None = Field(default=None, ge=0, le=100)
    allow_backlogs: bool = False
    eligible_branches: list[Branch] | None = None
    skills: list[str] | None = None
    deadline: datetime
    is_active: bool = True
    counts_as_offer: bool = True

    @field_validator("deadline")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class JobUpdateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(default=None, min_length=1)
    company: str | None = Field(default=None, min_length=1)
    description: str | None = None
    location: str | None = None
    package_range: str | None = None
    min_ug_percentage: float | None = Field(default=None, ge=0, le=100)
    allow_backlogs: bool | None = None
    eligible_branches: list[Branch] | None = None
    skills: list[str] | None = None
    deadline: datetime | None = None
    is_active: bool | None = None
    counts_as_offer: bool | None = None

    @field_validator("deadline")
    @classmethod
    def assume_utc(cls, value: datetime | None) -> datetime | None:
        if value is None or value.tzinfo:
            return value
        return value.replace(tzinfo=UTC)


class JobResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    company: str
    description: str | None = None
    location: str | None = None
    package_range: str | None = None
    min_ug_percentage: float | None = None
    allow_backlogs: bool
    eligible_branches: list[str] | None = None
    skills: list[str] | None = None
    deadline: datetime
    is_active: bool
    counts_as_offer: bool
    created_at: datetime | None = None
    deadline_passed: bool = False
    eligibility: EligibilityResult | None = None


class ApplicationCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    job_id: int = Field(alias="jobId")


class StatusUpdateRequest(BaseModel):
    status: ApplicationStatus
    stage: str | None = None


class ApplicationResponse(BaseModel):
    id: int
    student_id: int
    job_id: int
    status: str
    current_stage: str
    stage_history: list[StageEntry]
    version: int
    applied_at: str | None
    updated_at: str | None
    timeline: list[TimelineStage] | None = None
    job: JobResponse | None = None
    student: StudentResponse | None = None


class GrievanceCreateRequest(BaseModel):
    type: GrievanceType
    subject: str = Field(min_length=1)
    description: str = Field(min_length=10)
    contact_email: EmailStr
    priority: GrievancePriority = "medium"


class GrievanceUpdateRequest(BaseModel):
    status: GrievanceStatus
    response: str | None = None


class GrievanceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    student_id: int | None
    type: str
    subject: str
    description: str
    contact_email: str
    priority: str
    status: str
    response: str | None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class MessageResponse(BaseModel):
    message: str
