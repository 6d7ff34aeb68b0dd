from __future__ import annotations

from fastapi import APIRouter, Depends, File, Request, Response, UploadFile
from sqlalchemy.orm import Session

from campus_portal.api.deps import (
    get_current_user,
    get_db,
    get_session_token,
    require_admin,
    require_student,
)
from campus_portal.api.schemas import (
    ApplicationCreateRequest,
    ApplicationResponse,
    GrievanceCreateRequest,
    GrievanceResponse,
    GrievanceUpdateRequest,
    JobCreateRequest,
    JobResponse,
    JobUpdateRequest,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    ResumeResponse,
    StatusUpdateRequest,
    StudentResponse,
    StudentUpdateRequest,
    UserResponse,
)
from campus_portal.config import get_settings
from campus_portal.core.clock import as_utc
from campus_portal.core.eligibility import evaluate
from campus_portal.core.lifecycle import ApplicationLifecycle, deadline_passed
from campus_portal.core.resume_store import ResumeStore
from campus_portal.core.security import verify_password
from campus_portal.core.timeline import derive_timeline
from campus_portal.db.models import Application, Job, Student
from campus_portal.db.repositories import Repository
from campus_portal.errors import Forbidden, NotFound, Unauthorized
from campus_portal.types import CurrentUser, EligibilityResult, TimelineStage

router = APIRouter(prefix="/api", tags=["api"])

NULLABLE_JOB_FIELDS = frozenset(
    {"description", "location", "package_range", "min_ug_percentage", "eligible_branches", "skills"}
)


def _student_or_404(repo: Repository, user: CurrentUser) -> Student:
    student = repo.get_student(user.student_id) if user.student_id else None
    if student is None:
        raise NotFound("Student profile not found")
    return student


def _job_or_404(repo: Repository, job_id: int) -> Job:
    job = repo.get_job(job_id)
    if job is None:
        raise NotFound("Job not found")
    return job


def _job_response(job: Job, student: Student | None = None) -> JobResponse:
    response = JobResponse.model_validate(job)
    response.deadline = as_utc(job.deadline)
    response.deadline_passed = deadline_passed(job)
    if student is not None:
        response.eligibility = evaluate(job, student)
    return response


def _application_response(
    lifecycle: ApplicationLifecycle,
    application: Application,
    *,
    include_timeline: bool = False,
    with_job: bool = False,
    with_student: bool = False,
) -> ApplicationResponse:
    response = ApplicationResponse.model_validate(
        lifecycle.serialize(application, include_timeline=include_timeline)
    )
    if with_job and application.job is not None:
        response.job = _job_response(application.job)
    if with_student and application.student is not None:
        response.student = StudentResponse.model_validate(application.student)
    return response


def _visible_application(repo: Repository, user: CurrentUser, application_id: int) -> Application:
    application = repo.get_application(application_id)
    if application is None:
        raise NotFound("Application not found")
    if user.role != "admin" and application.student_id != user.student_id:
        raise Forbidden("Not allowed to view this application")
    return application


@router.post("/auth/register", response_model=UserResponse)
def register(payload: RegisterRequest, db: Session = Depends(get_db)) -> UserResponse:
    repo = Repository(db)
    values = payload.model_dump(exclude={"password"}, exclude_none=True)
    student = repo.register_student(password=payload.password, values=values)
    user = repo.get_user(student.user_id)
    return UserResponse(
        id=user.id,
        email=user.email,
        role=user.role,
        student=StudentResponse.model_validate(student),
    )


@router.post("/auth/login", response_model=UserResponse)
def login(payload: LoginRequest, response: Response, db: Session = Depends(get_db)) -> UserResponse:
    settings = get_settings()
    repo = Repository(db)
    user = repo.get_user_by_email(payload.email)
    if user is None or not verify_password(payload.password, user.password_hash):
        raise Unauthorized("Invalid credentials")

    token = repo.create_session(user.id, ttl_min=settings.session_ttl_min)
    response.set_cookie(
        settings.session_cookie_name,
        token,
        max_age=settings.session_ttl_min * 60,
        httponly=True,
        samesite="lax",
        secure=settings.session_cookie_secure,
    )

    student = repo.get_student_by_user_id(user.id) if user.role == "student" else None
    return UserResponse(
        id=user.id,
        email=user.email,
        role=user.role,
        student=StudentResponse.model_validate(student) if student else None,
    )


@router.post("/auth/logout", response_model=MessageResponse)
def logout(request: Request, response: Response, db: Session = Depends(get_db)) -> MessageResponse:
    token = get_session_token(request)
    if token:
        Repository(db).delete_session(token)
    response.delete_cookie(get_settings().session_cookie_name)
    return MessageResponse(message="Logout successful")


@router.get("/auth/me", response_model=UserResponse)
def me(user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)) -> UserResponse:
    student = Repository(db).get_student(user.student_id) if user.student_id else None
    return UserResponse(
        id=user.id,
        email=user.email,
        role=user.role,
        student=StudentResponse.model_validate(student) if student else None,
    )


@router.get("/student/profile", response_model=StudentResponse)
def get_profile(user: CurrentUser = Depends(require_student), db: Session = Depends(get_db)) -> StudentResponse:
    return StudentResponse.model_validate(_student_or_404(Repository(db), user))


@router.put("/student/profile", response_model=StudentResponse)
def update_profile(
    payload: StudentUpdateRequest,
    user: CurrentUser = Depends(require_student),
    db: Session = Depends(get_db),
) -> StudentResponse:
    repo = Repository(db)
    student = _student_or_404(repo, user)
    values = {key: value for key, value in payload.model_dump(exclude_unset=True).items() if value is not None}

    resume_url = student.resume_url
    new_branch = values.get("branch")
    if resume_url and new_branch and new_branch != student.branch:
        # the resume key follows the branch
        resume_url = ResumeStore().relocate(
            resume_url,
            branch=new_branch,
            registration_no=student.college_reg_no,
        )

    student = repo.update_student(student.id, values)
    if resume_url != student.resume_url:
        student = repo.set_student_resume(student.id, resume_url)
    return StudentResponse.model_validate(student)


@router.post("/student/resume", response_model=ResumeResponse)
def upload_resume(
    file: UploadFile = File(...),
    user: CurrentUser = Depends(require_student),
    db: Session = Depends(get_db),
) -> ResumeResponse:
    repo = Repository(db)
    student = _student_or_404(repo, user)
    store = ResumeStore()
    # one byte past the limit is enough to refuse an oversized file
    content = file.file.read(store.settings.resume_max_bytes + 1)
    url = store.store(
        content,
        branch=student.branch,
        registration_no=student.college_reg_no,
        content_type=file.content_type,
        replaces=student.resume_url,
    )
    repo.set_student_resume(student.id, url)
    return ResumeResponse(resume_url=url)


@router.delete("/student/resume", response_model=ResumeResponse)
def delete_resume(user: CurrentUser = Depends(require_student), db: Session = Depends(get_db)) -> ResumeResponse:
    repo = Repository(db)
    student = _student_or_404(repo, user)
    if not student.resume_url:
        raise NotFound("No resume uploaded")
    ResumeStore().delete(student.resume_url)
    repo.set_student_resume(student.id, None)
    return ResumeResponse(resume_url=None)


@router.get("/jobs", response_model=list[JobResponse])
def list_jobs(
    active_only: bool = False,
    branch: str | None = None,
    company: str | None = None,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[JobResponse]:
    repo = Repository(db)
    student = repo.get_student(user.student_id) if user.student_id else None
    jobs = repo.list_jobs(active_only=active_only, branch=branch, company=company)
    return [_job_response(job, student) for job in jobs]


@router.get("/jobs/{job_id}", response_model=JobResponse)
def get_job(
    job_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> JobResponse:
    repo = Repository(db)
    student = repo.get_student(user.student_id) if user.student_id else None
    return _job_response(_job_or_404(repo, job_id), student)


@router.get("/jobs/{job_id}/eligibility", response_model=EligibilityResult)
def job_eligibility(
    job_id: int,
    user: CurrentUser = Depends(require_student),
    db: Session = Depends(get_db),
) -> EligibilityResult:
    repo = Repository(db)
    return evaluate(_job_or_404(repo, job_id), _student_or_404(repo, user))


@router.post("/jobs", response_model=JobResponse)
def create_job(
    payload: JobCreateRequest,
    user: CurrentUser = Depends(require_admin),
    db: Session = Depends(get_db),
) -> JobResponse:
    job = Repository(db).create_job(payload.model_dump())
    return _job_response(job)


@router.put("/jobs/{job_id}", response_model=JobResponse)
def update_job(
    job_id: int,
    payload: JobUpdateRequest,
    user: CurrentUser = Depends(require_admin),
    db: Session = Depends(get_db),
) -> JobResponse:
    values = {
        key: value
        for key, value in payload.model_dump(exclude_unset=True).items()
        if value is not None or key in NULLABLE_JOB_FIELDS
    }
    return _job_response(Repository(db).update_job(job_id, values))


@router.delete("/jobs/{job_id}", response_model=MessageResponse)
def delete_job(
    job_id: int,
    user: CurrentUser = Depends(require_admin),
    db: Session = Depends(get_db),
) -> MessageResponse:
    Repository(db).delete_job(job_id)
    return MessageResponse(message="Job deleted successfully")


@router.post("/applications", response_model=ApplicationResponse)
def apply(
    payload: ApplicationCreateRequest,
    user: CurrentUser = Depends(require_student),
    db: Session = Depends(get_db),
) -> ApplicationResponse:
    lifecycle = ApplicationLifecycle(db)
    application = lifecycle.create(student_id=user.student_id, job_id=payload.job_id)
    return _application_response(lifecycle, application)


@router.get("/applications/student", response_model=list[ApplicationResponse])
def list_my_applications(
    user: CurrentUser = Depends(require_student),
    db: Session = Depends(get_db),
) -> list[ApplicationResponse]:
    lifecycle = ApplicationLifecycle(db)
    rows = lifecycle.repo.list_applications_for_student(user.student_id)
    return [_application_response(lifecycle, row, include_timeline=True, with_job=True) for row in rows]


@router.get("/applications/job/{job_id}", response_model=list[ApplicationResponse])
def list_job_applications(
    job_id: int,
    user: CurrentUser = Depends(require_admin),
    db: Session = Depends(get_db),
) -> list[ApplicationResponse]:
    lifecycle = ApplicationLifecycle(db)
    _job_or_404(lifecycle.repo, job_id)
    rows = lifecycle.repo.list_applications_for_job(job_id)
    return [_application_response(lifecycle, row, with_student=True) for row in rows]


@router.get("/applications/{application_id}", response_model=ApplicationResponse)
def get_application(
    application_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ApplicationResponse:
    lifecycle = ApplicationLifecycle(db)
    application = _visible_application(lifecycle.repo, user, application_id)
    return _application_response(lifecycle, application, include_timeline=True, with_job=True)


@router.get("/applications/{application_id}/timeline", response_model=list[TimelineStage])
def get_application_timeline(
    application_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[TimelineStage]:
    return derive_timeline(_visible_application(Repository(db), user, application_id))


@router.put("/applications/{application_id}/status", response_model=ApplicationResponse)
def update_application_status(
    application_id: int,
    payload: StatusUpdateRequest,
    user: CurrentUser = Depends(require_admin),
    db: Session = Depends(get_db),
) -> ApplicationResponse:
    lifecycle = ApplicationLifecycle(db)
    application = lifecycle.transition(
        application_id=application_id,
        status=payload.status,
        stage=payload.stage,
    )
    return _application_response(lifecycle, application, include_timeline=True)


@router.post("/grievances", response_model=GrievanceResponse)
def submit_grievance(
    payload: GrievanceCreateRequest,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> GrievanceResponse:
    values = payload.model_dump() | {"student_id": user.student_id, "status": "submitted"}
    return GrievanceResponse.model_validate(Repository(db).create_grievance(values))


@router.get("/grievances", response_model=list[GrievanceResponse])
def list_grievances(
    user: CurrentUser = Depends(require_admin),
    db: Session = Depends(get_db),
) -> list[GrievanceResponse]:
    return [GrievanceResponse.model_validate(row) for row in Repository(db).list_grievances()]


@router.get("/grievances/mine", response_model=list[GrievanceResponse])
def list_my_grievances(
    user: CurrentUser = Depends(require_student),
    db: Session = Depends(get_db),
) -> list[GrievanceResponse]:
    rows = Repository(db).list_grievances(student_id=user.student_id)
    return [GrievanceResponse.model_validate(row) for row in rows]


@router.put("/grievances/{grievance_id}", response_model=GrievanceResponse)
def update_grievance(
    grievance_id: int,
    payload: GrievanceUpdateRequest,
    user: CurrentUser = Depends(require_admin),
    db: Session = Depends(get_db),
) -> GrievanceResponse:
    grievance = Repository(db).update_grievance_status(grievance_id, payload.status, payload.response)
    return GrievanceResponse.model_validate(grievance)
