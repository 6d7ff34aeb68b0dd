from __future__ import annotations

from datetime import timedelta
from typing import Any

from sqlalchemy import and_, delete, func, select
from sqlalchemy.orm import Session

from campus_portal.core.clock import as_utc, utcnow
from campus_portal.core.security import hash_password, hash_token, new_session_token
from campus_portal.db.models import Admin, Application, Grievance, Job, Student, User, UserSession
from campus_portal.errors import Conflict, NotFound

STUDENT_UPDATABLE_FIELDS = frozenset(
    {
        "first_name",
        "gender",
        "date_of_birth",
        "personal_email",
        "mobile_number",
        "is_pwd",
        "branch",
        "ug_percentage",
        "has_active_backlogs",
    }
)
JOB_UPDATABLE_FIELDS = frozenset(
    {
        "title",
        "company",
        "description",
        "location",
        "package_range",
        "min_ug_percentage",
        "allow_backlogs",
        "eligible_branches",
        "skills",
        "deadline",
        "is_active",
        "counts_as_offer",
    }
)


class Repository:
    def __init__(self, session: Session):
        self.session = session

    def create_user(self, *, email: str, password: str, role: str = "student", commit: bool = True) -> User:
        user = User(email=email.strip().lower(), password_hash=hash_password(password), role=role)
        self.session.add(user)
        if commit:
            self.session.commit()
            self.session.refresh(user)
        else:
            self.session.flush()
        return user

    def get_user(self, user_id: int) -> User | None:
        return self.session.get(User, user_id)

    def get_user_by_email(self, email: str) -> User | None:
        return self.session.scalar(select(User).where(User.email == email.strip().lower()))

    def create_admin(self, *, email: str, password: str, name: str) -> Admin:
        if self.get_user_by_email(email):
            raise Conflict(f"email {email} is already registered")

        user = self.create_user(email=email, password=password, role="admin", commit=False)
        admin = Admin(user_id=user.id, name=name, email=user.email)
        self.session.add(admin)
        self.session.commit()
        self.session.refresh(admin)
        return admin

    def get_admin_by_user_id(self, user_id: int) -> Admin | None:
        return self.session.scalar(select(Admin).where(Admin.user_id == user_id))

    def create_session(self, user_id: int, ttl_min: int) -> str:
        token = new_session_token()
        record = UserSession(
            user_id=user_id,
            token_hash=hash_token(token),
            expires_at=utcnow() + timedelta(minutes=ttl_min),
        )
        self.session.add(record)
        self.session.commit()
        return token

    def get_session_user(self, token: str) -> User | None:
        record = self.session.scalar(select(UserSession).where(UserSession.token_hash == hash_token(token)))
        if record is None:
            return None

        if as_utc(record.expires_at) <= utcnow():
            self.session.delete(record)
            self.session.commit()
            return None
        return self.session.get(User, record.user_id)

    def delete_session(self, token: str) -> None:
        self.session.execute(delete(UserSession).where(UserSession.token_hash == hash_token(token)))
        self.session.commit()

    def register_student(self, *, password: str, values: dict[str, Any]) -> Student:
        email = values["college_email"]
        if self.get_user_by_email(email):
            raise Conflict("Email already registered")
        if self.get_student_by_reg_no(values["college_reg_no"]):
            raise Conflict("Registration number already registered")

        user = self.create_user(email=email, password=password, role="student", commit=False)
        student = Student(user_id=user.id, **values)
        self.session.add(student)
        self.session.commit()
        self.session.refresh(student)
        return student

    def get_student(self, student_id: int) -> Student | None:
        return self.session.get(Student, student_id)

    def get_student_by_user_id(self, user_id: int) -> Student | None:
        return self.session.scalar(select(Student).where(Student.user_id == user_id))

    def get_student_by_reg_no(self, reg_no: str) -> Student | None:
        return self.session.scalar(select(Student).where(Student.college_reg_no == reg_no))

    def list_students(self) -> list[Student]:
        return list(self.session.scalars(select(Student).order_by(Student.id.desc())).all())

    def update_student(self, student_id: int, values: dict[str, Any]) -> Student:
        student = self.session.get(Student, student_id)
        if not student:
            raise NotFound(f"student {student_id} not found")

        for key, value in values.items():
            if key not in STUDENT_UPDATABLE_FIELDS:
                raise ValueError(f"student field '{key}' cannot be updated")
            setattr(student, key, value)

        self.session.commit()
        self.session.refresh(student)
        return student

    def set_student_resume(self, student_id: int, resume_url: str | None) -> Student:
        student = self.session.get(Student, student_id)
        if not student:
            raise NotFound(f"student {student_id} not found")
        student.resume_url = resume_url
        self.session.commit()
        self.session.refresh(student)
        return student

    def create_job(self, values: dict[str, Any]) -> Job:
        job = Job(**values)
        self.session.add(job)
        self.session.commit()
        self.session.refresh(job)
        return job

    def get_job(self, job_id: int) -> Job | None:
        return self.session.get(Job, job_id)

    def list_jobs(
        self,
        *,
        active_only: bool = False,
        company: str | None = None,
        branch: str | None = None,
        limit: int | None = None,
    ) -> list[Job]:
        statement = select(Job).order_by(Job.created_at.desc(), Job.id.desc())
        if active_only:
            statement = statement.where(Job.is_active.is_(True))
        if company:
            statement = statement.where(func.lower(Job.company).contains(company.strip().lower()))
        if limit is not None:
            statement = statement.limit(limit)

        jobs = list(self.session.scalars(statement).all())
        if branch:
            # JSON containment differs per backend, filter the list here
            jobs = [job for job in jobs if not job.eligible_branches or branch in job.eligible_branches]
        return jobs

    def update_job(self, job_id: int, values: dict[str, Any]) -> Job:
        job = self.session.get(Job, job_id)
        if not job:
            raise NotFound(f"job {job_id} not found")

        for key, value in values.items():
            if key not in JOB_UPDATABLE_FIELDS:
                raise ValueError(f"job field '{key}' cannot be updated")
            setattr(job, key, value)

        self.session.commit()
        self.session.refresh(job)
        return job

    def delete_job(self, job_id: int) -> None:
        job = self.session.get(Job, job_id)
        if not job:
            raise NotFound(f"job {job_id} not found")
        if self.count_applications_for_job(job_id):
            raise Conflict("Job has applications; deactivate it instead of deleting")

        self.session.delete(job)
        self.session.commit()

    def count_applications_for_job(self, job_id: int) -> int:
        statement = select(func.count(Application.id)).where(Application.job_id == job_id)
        return int(self.session.scalar(statement) or 0)

    def add_application(
        self,
        *,
        student_id: int,
        job_id: int,
        status: str,
        current_stage: str,
        stage_history: list[dict[str, Any]],
    ) -> Application:
        """Insert a new application; the unique constraint raises ``IntegrityError`` on a duplicate."""
        application = Application(
            student_id=student_id,
            job_id=job_id,
            status=status,
            current_stage=current_stage,
            stage_history=stage_history,
        )
        self.session.add(application)
        self.session.commit()
        self.session.refresh(application)
        return application

    def get_application(self, application_id: int) -> Application | None:
        return self.session.get(Application, application_id)

    def get_application_for(self, student_id: int, job_id: int) -> Application | None:
        statement = select(Application).where(
            and_(
                Application.student_id == student_id,
                Application.job_id == job_id,
            )
        )
        return self.session.scalar(statement)

    def list_applications_for_student(self, student_id: int) -> list[Application]:
        statement = (
            select(Application)
            .where(Application.student_id == student_id)
            .order_by(Application.created_at.desc(), Application.id.desc())
        )
        return list(self.session.scalars(statement).all())

    def list_applications_for_job(self, job_id: int) -> list[Application]:
        statement = (
            select(Application)
            .where(Application.job_id == job_id)
            .order_by(Application.created_at.desc(), Application.id.desc())
        )
        return list(self.session.scalars(statement).all())

    def list_applications(self) -> list[Application]:
        statement = select(Application).order_by(Application.created_at.desc(), Application.id.desc())
        return list(self.session.scalars(statement).all())

    def create_grievance(self, values: dict[str, Any]) -> Grievance:
        grievance = Grievance(**values)
        self.session.add(grievance)
        self.session.commit()
        self.session.refresh(grievance)
        return grievance

    def list_grievances(self, student_id: int | None = None) -> list[Grievance]:
        statement = select(Grievance).order_by(Grievance.created_at.desc(), Grievance.id.desc())
        if student_id is not None:
            statement = statement.where(Grievance.student_id == student_id)
        return list(self.session.scalars(statement).all())

    def update_grievance_status(self, grievance_id: int, status: str, response: str | None = None) -> Grievance:
        grievance = self.session.get(Grievance, grievance_id)
        if not grievance:
            raise NotFound(f"grievance {grievance_id} not found")

        grievance.status = status
        if response is not None:
            grievance.response = response
        self.session.commit()
        self.session.refresh(grievance)
        return grievance
