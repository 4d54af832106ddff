"""
Dependencies for API endpoints.
"""
from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer

from app.core.config import settings
from app.core.exceptions import AuthenticationError, AuthorizationError, NotFoundError
from app.core.security import decode_access_token
from app.db.repositories.import_jobs import ImportJobRepository
from app.db.repositories.projects import ProjectRepository
from app.db.repositories.transactions import ImportRowErrorRepository, TransactionRepository
from app.db.repositories.users import UserRepository
from app.db.session import get_repository_factory
from app.models.project import Project
from app.schemas.user import User, UserRole
from app.services.imports.job_store import JobStore
from app.services.imports.runner import ImportRunner
from app.services.imports.upload import UploadReceiver

# OAuth2 scheme for token authentication
oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_PREFIX}/auth/token")

get_user_repository = get_repository_factory(UserRepository)
get_project_repository = get_repository_factory(ProjectRepository)
get_import_job_repository = get_repository_factory(ImportJobRepository)
get_transaction_repository = get_repository_factory(TransactionRepository)
get_row_error_repository = get_repository_factory(ImportRowErrorRepository)


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    user_repository: UserRepository = Depends(get_user_repository)
) -> User:
    """
    Get the current authenticated user from the JWT token.

    Raises:
        AuthenticationError: If the token is invalid or expired, or the user is gone or inactive
    """
    user_id = decode_access_token(token)

    user = await user_repository.get_by_id(user_id)
    if not user:
        raise AuthenticationError("User not found")

    if not user.is_active:
        raise AuthenticationError("User is inactive")

    return User.model_validate(user)


def ensure_project_access(project: Project, user: User) -> None:
    """Only the owner (or an admin) may use a project."""
    if project.user_id != user.id and user.role != UserRole.ADMIN:
        raise AuthorizationError(message="Not authorized to access this project")


async def get_owned_project(
    project_id: str,
    current_user: User = Depends(get_current_user),
    project_repository: ProjectRepository = Depends(get_project_repository),
) -> Project:
    """Resolve the ``project_id`` path parameter to a project the caller owns."""
    project = await project_repository.get_by_id(project_id)
    if not project:
        raise NotFoundError(message="Project not found")
    ensure_project_access(project, current_user)
    return project


def get_job_store(request: Request) -> JobStore:
    return request.app.state.services.job_store


def get_import_runner(request: Request) -> ImportRunner:
    return request.app.state.services.runner


def get_upload_receiver(request: Request) -> UploadReceiver:
    return request.app.state.services.upload_receiver
