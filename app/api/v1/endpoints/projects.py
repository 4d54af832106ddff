"""
API endpoints for projects, the collections transactions are imported into.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status

from app.api.v1.dependencies import (
    get_current_user,
    get_import_job_repository,
    get_owned_project,
    get_project_repository,
)
from app.core.exceptions import BadRequestError
from app.db.repositories.import_jobs import ImportJobRepository
from app.db.repositories.projects import ProjectRepository
from app.models.import_job import ImportStatus
from app.models.project import Project
from app.schemas.import_job import ImportJobResponse
from app.schemas.project import ProjectCreate, ProjectResponse, ProjectUpdate
from app.schemas.user import User
from app.utils.pagination import PaginatedResponse, PaginationParams, paginate_response

router = APIRouter()
logger = logging.getLogger("ledgerflow.api.projects")

NAME_TAKEN = "Project name already taken"


@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    project_in: ProjectCreate,
    current_user: User = Depends(get_current_user),
    project_repository: ProjectRepository = Depends(get_project_repository),
):
    """
    Create a project owned by the current user. Names are unique.
    """
    if await project_repository.get_by_name(project_in.name):
        raise BadRequestError(message=NAME_TAKEN, code="PROJECT_NAME_TAKEN")

    project = await project_repository.create_project(name=project_in.name, user_id=current_user.id)
    logger.info(f"Created project {project.id} for user {current_user.id}")
    return project


@router.get("", response_model=PaginatedResponse[ProjectResponse])
async def list_projects(
    pagination: PaginationParams = Depends(),
    name: Optional[str] = Query(None, description="Filter by name substring"),
    current_user: User = Depends(get_current_user),
    project_repository: ProjectRepository = Depends(get_project_repository),
):
    """
    List the current user's projects, newest first.
    """
    projects, total = await project_repository.get_projects_for_user(
        current_user.id,
        name=name,
        skip=pagination.skip,
        limit=pagination.limit,
    )
    return paginate_response(
        items=[ProjectResponse.model_validate(p) for p in projects],
        total=total,
        pagination=pagination,
    )


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(project: Project = Depends(get_owned_project)):
    return project


@router.put("/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_in: ProjectUpdate,
    project: Project = Depends(get_owned_project),
    project_repository: ProjectRepository = Depends(get_project_repository),
):
    """
    Rename a project.
    """
    if project_in.name and project_in.name != project.name:
        if await project_repository.get_by_name(project_in.name):
            raise BadRequestError(message=NAME_TAKEN, code="PROJECT_NAME_TAKEN")

    return await project_repository.update(id=project.id, obj_in=project_in)


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project: Project = Depends(get_owned_project),
    project_repository: ProjectRepository = Depends(get_project_repository),
):
    await project_repository.delete(id=project.id)
    logger.info(f"Deleted project {project.id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{project_id}/jobs", response_model=PaginatedResponse[ImportJobResponse])
async def list_project_jobs(
    pagination: PaginationParams = Depends(),
    job_status: Optional[ImportStatus] = Query(None, alias="status"),
    project: Project = Depends(get_owned_project),
    job_repository: ImportJobRepository = Depends(get_import_job_repository),
):
    """
    List import jobs of a project, newest first.
    """
    jobs, total = await job_repository.get_by_project(
        project.id,
        status=job_status,
        skip=pagination.skip,
        limit=pagination.limit,
    )
    return paginate_response(
        items=[ImportJobResponse.model_validate(job) for job in jobs],
        total=total,
        pagination=pagination,
    )
