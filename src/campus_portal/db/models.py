from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from campus_portal.db.base import Base, TimestampMixin


class User(TimestampMixin, Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(128), nullable=False)
    role: Mapped[str] = mapped_column(String(20), default="student", nullable=False)


class Admin(TimestampMixin, Base):
    __tablename__ = "admins"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)


class UserSession(TimestampMixin, Base):
    __tablename__ = "user_sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    token_hash: Mapped[str] = mapped_column(String(64), unique=True, index=True, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class Student(TimestampMixin, Base):
    __tablename__ = "students"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), unique=True)
    first_name: Mapped[str] = mapped_column(String(120), nullable=False)
    gender: Mapped[str] = mapped_column(String(40), default="", nullable=False)
    college_reg_no: Mapped[str] = mapped_column(String(60), unique=True, index=True, nullable=False)
    date_of_birth: Mapped[str] = mapped_column(String(20), default="", nullable=False)
    college_email: Mapped[str] = mapped_column(String(255), nullable=False)
    personal_email: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    mobile_number: Mapped[str] = mapped_column(String(40), default="", nullable=False)
    is_pwd: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    branch: Mapped[str] = mapped_column(String(40), nullable=False)
    ug_percentage: Mapped[float] = mapped_column(Numeric(5, 2, asdecimal=False), nullable=False)
    has_active_backlogs: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    resume_url: Mapped[str | None] = mapped_column(String(600), nullable=True)


class Job(TimestampMixin, Base):
    __tablename__ = "jobs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    company: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    package_range: Mapped[str | None] = mapped_column(String(120), nullable=True)
    min_ug_percentage: Mapped[float | None] = mapped_column(Numeric(5, 2, asdecimal=False), nullable=True)
    allow_backlogs: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    eligible_branches: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    skills: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    deadline: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    counts_as_offer: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class Application(TimestampMixin, Base):
    __tablename__ = "applications"
    __table_args__ = (UniqueConstraint("student_id", "job_id", name="uq_application_student_job"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    student_id: Mapped[int] = mapped_column(ForeignKey("students.id", ondelete="RESTRICT"), index=True)
    job_id: Mapped[int] = mapped_column(ForeignKey("jobs.id", ondelete="RESTRICT"), index=True)
    status: Mapped[str] = mapped_column(String(40), default="applied", nullable=False)
    current_stage: Mapped[str] = mapped_column(String(40), default="applied", nullable=False)
    stage_history: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    student: Mapped[Student] = relationship(lazy="joined")
    job: Mapped[Job] = relationship(lazy="joined")

    __mapper_args__ = {"version_id_col": version}


class Grievance(TimestampMixin, Base):
    __tablename__ = "grievances"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    student_id: Mapped[int | None] = mapped_column(
        ForeignKey("students.id", ondelete="SET NULL"), index=True, nullable=True
    )
    type: Mapped[str] = mapped_column(String(40), nullable=False)
    subject: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    contact_email: Mapped[str] = mapped_column(String(255), nullable=False)
    priority: Mapped[str] = mapped_column(String(20), default="medium", nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="submitted", nullable=False)
    response: Mapped[str | None] = mapped_column(Text, nullable=True)
