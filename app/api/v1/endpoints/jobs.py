# app/api/v1/endpoints/jobs.py
"""
Import job endpoints.

``POST /jobs/import`` accepts a multipart upload (``file`` plus ``projectId``),
creates a pending job, stages the file and answers ``202 Accepted`` before a
single row is parsed. Processing continues in the background and is reported
over the real-time channel; the job record can be polled at ``GET /jobs/{id}``.
"""
import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from app.api.v1.dependencies import (
    ensure_project_access,
    get_current_user,
    get_import_job_repository,
    get_import_runner,
    get_job_store,
    get_project_repository,
    get_row_error_repository,
    get_transaction_repository,
    get_upload_receiver,
)
from app.core.exceptions import NotFoundError
from app.db.repositories.import_jobs import ImportJobRepository
from app.db.repositories.projects import ProjectRepository
from app.db.repositories.transactions import ImportRowErrorRepository, TransactionRepository
from app.models.import_job import ImportJob, ImportStatus
from app.schemas.import_job import ImportJobAccepted, ImportJobResponse
from app.schemas.transaction import ImportRowErrorResponse, TransactionResponse
from app.schemas.user import User
from app.services.imports.job_store import JobStore
from app.services.imports.runner import ImportRunner
from app.services.imports.upload import UploadReceiver
from app.utils.pagination import PaginatedResponse, PaginationParams, paginate_response

router = APIRouter()
logger = logging.getLogger("ledgerflow.api.jobs")


@router.post(
    "/import",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=ImportJobAccepted,
)
async def import_transactions(
    request: Request,
    current_user: User = Depends(get_current_user),
    receiver: UploadReceiver = Depends(get_upload_receiver),
    job_store: JobStore = Depends(get_job_store),
    runner: ImportRunner = Depends(get_import_runner),
    project_repository: ProjectRepository = Depends(get_project_repository),
) -> JSONResponse:
    """
    Upload a transaction file and start importing it.

    Responses:
        202: ``{"jobId": ..., "status": "pending"}``
        400: Not multipart, or ``file``/``projectId`` missing
        403: Project belongs to another user
        404: Project does not exist
        413: File larger than the configured limit
        500: Job created but its file could not be staged; the job stays pending
    """
    upload = await receiver.receive(request)

    try:
        project = await project_repository.get_by_id(upload.project_id)
        if not project:
            raise NotFoundError(message="Project not found", details={"project_id": upload.project_id})
        ensure_project_access(project, current_user)

        job = await job_store.create_job(project_id=project.id, file_name=upload.file_name)
        job_store.stage_file(job.id, upload.path)
    except BaseException:
        upload.discard()
        raise

    runner.schedule(job.id, project.id)

    logger.info(f"Accepted import {job.id} ({upload.file_name}, {upload.size} bytes) for project {project.id}")
    return JSONResponse(
        status_code=status.HTTP_202_ACCEPTED,
        content={"jobId": job.id, "status": ImportStatus.PENDING.value},
    )


async def _get_accessible_job(
    job_id: str,
    current_user: User,
    job_repository: ImportJobRepository,
    project_repository: ProjectRepository,
) -> ImportJob:
    job = await job_repository.get_by_id(job_id)
    if not job:
        raise NotFoundError(message="Import job not found", details={"job_id": job_id})

    project = await project_repository.get_by_id(job.project_id)
    if project is not None:
        ensure_project_access(project, current_user)
    return job


@router.get("/{job_id}", response_model=ImportJobResponse)
async def get_import_job(
    job_id: str,
    current_user: User = Depends(get_current_user),
    job_repository: ImportJobRepository = Depends(get_import_job_repository),
    project_repository: ProjectRepository = Depends(get_project_repository),
):
    """
    Get the full record of an import job.
    """
    return await _get_accessible_job(job_id, current_user, job_repository, project_repository)


@router.get("/{job_id}/transactions", response_model=PaginatedResponse[TransactionResponse])
async def list_job_transactions(
    job_id: str,
    pagination: PaginationParams = Depends(),
    current_user: User = Depends(get_current_user),
    job_repository: ImportJobRepository = Depends(get_import_job_repository),
    project_repository: ProjectRepository = Depends(get_project_repository),
    transaction_repository: TransactionRepository = Depends(get_transaction_repository),
):
    """
    List the transactions accepted by an import job.
    """
    job = await _get_accessible_job(job_id, current_user, job_repository, project_repository)
    items, total = await transaction_repository.get_by_job(
        job.id, skip=pagination.skip, limit=pagination.limit
    )
    return paginate_response(
        items=[TransactionResponse.model_validate(t) for t in items],
        total=total,
        pagination=pagination,
    )


@router.get("/{job_id}/errors", response_model=PaginatedResponse[ImportRowErrorResponse])
async def list_job_errors(
    job_id: str,
    pagination: PaginationParams = Depends(),
    current_user: User = Depends(get_current_user),
    job_repository: ImportJobRepository = Depends(get_import_job_repository),
    project_repository: ProjectRepository = Depends(get_project_repository),
    row_error_repository: ImportRowErrorRepository = Depends(get_row_error_repository),
):
    """
    List the rows rejected by an import job, in file order.
    """
    job = await _get_accessible_job(job_id, current_user, job_repository, project_repository)
    items, total = await row_error_repository.get_by_job(
        job.id, skip=pagination.skip, limit=pagination.limit
    )
    return paginate_response(
        items=[ImportRowErrorResponse.model_validate(e) for e in items],
        total=total,
        pagination=pagination,
    )
