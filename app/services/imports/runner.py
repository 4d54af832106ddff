"""
Background execution of import jobs.

Each scheduled job runs in its own asyncio task. The HTTP request that
created the job only holds the job id; the runner owns the task, enforces a
deadline and makes sure every job that does not complete ends up ``failed``,
including a task cancelled before it got to run.
"""
import asyncio
import logging
from typing import Dict, Optional, Set

from sqlalchemy.orm import sessionmaker

from app.db.repositories.projects import ProjectRepository
from app.db.session import get_session
from app.models.import_job import ImportStatus
from app.services.event_bus.bus import EventBus
from app.services.imports.job_store import JobStore
from app.services.imports.notifier import ProgressNotifier
from app.services.imports.parser import TransactionCSVParser
from app.services.imports.persister import BatchPersister

logger = logging.getLogger("ledgerflow.imports.runner")

CANCELLED_REASON = "Import cancelled"


class ImportRunner:
    """
    Schedules and supervises import tasks.

    A job id is scheduled at most once while its task is alive.
    """

    def __init__(
        self,
        job_store: JobStore,
        session_factory: sessionmaker,
        event_bus: Optional[EventBus] = None,
        parser: Optional[TransactionCSVParser] = None,
        flush_size: int = 1000,
        timeout: Optional[float] = 3600,
    ):
        self.job_store = job_store
        self._session_factory = session_factory
        self.event_bus = event_bus
        self.parser = parser or TransactionCSVParser()
        self.flush_size = flush_size
        self.timeout = timeout
        self._tasks: Dict[str, asyncio.Task] = {}
        self._started: Set[str] = set()
        # Failure records for tasks cancelled before their first step
        self._cleanups: Dict[str, asyncio.Task] = {}

    def schedule(self, job_id: str, project_id: str) -> bool:
        """
        Start processing ``job_id`` in the background and return immediately.

        Returns:
            bool: False if the job already has a running task
        """
        existing = self._tasks.get(job_id)
        if existing is not None and not existing.done():
            logger.warning(f"Import job {job_id} is already running, not scheduling again")
            return False

        task = asyncio.create_task(self._run(job_id, project_id), name=f"import-{job_id}")
        self._tasks[job_id] = task
        task.add_done_callback(lambda t, jid=job_id, pid=project_id: self._forget(jid, pid, t))
        logger.info(f"Scheduled import job {job_id}")
        return True

    def _forget(self, job_id: str, project_id: str, task: asyncio.Task) -> None:
        if self._tasks.get(job_id) is task:
            del self._tasks[job_id]

        started = job_id in self._started
        self._started.discard(job_id)
        if task.cancelled() and not started:
            # _run never executed, so nothing has recorded the failure yet.
            logger.warning(f"Import job {job_id} was cancelled before it started")
            cleanup = asyncio.get_running_loop().create_task(
                self._fail_unstarted(job_id, project_id),
                name=f"import-cleanup-{job_id}",
            )
            self._cleanups[job_id] = cleanup
            cleanup.add_done_callback(lambda t, jid=job_id: self._cleanups.pop(jid, None))

    def is_running(self, job_id: str) -> bool:
        task = self._tasks.get(job_id)
        return task is not None and not task.done()

    @property
    def active_jobs(self) -> int:
        return sum(1 for task in self._tasks.values() if not task.done())

    def cancel(self, job_id: str) -> bool:
        """Request cancellation of a running job; it will end ``failed``."""
        task = self._tasks.get(job_id)
        if task is None or task.done():
            return False
        task.cancel()
        return True

    async def wait(self, job_id: str) -> None:
        """Wait for a job's task to finish, whatever its outcome."""
        task = self._tasks.get(job_id)
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)
        cleanup = self._cleanups.get(job_id)
        if cleanup is not None:
            await asyncio.gather(cleanup, return_exceptions=True)

    async def shutdown(self, timeout: float = 5.0) -> None:
        """Cancel every running job and wait for them to record their failure."""
        tasks = [task for task in self._tasks.values() if not task.done()]
        if tasks:
            logger.info(f"Cancelling {len(tasks)} running import jobs")
            for task in tasks:
                task.cancel()

            done, pending = await asyncio.wait(tasks, timeout=timeout)
            if pending:
                logger.warning(f"{len(pending)} import jobs did not stop within {timeout}s")

        cleanups = list(self._cleanups.values())
        if cleanups:
            await asyncio.wait(cleanups, timeout=timeout)

    async def _resolve_owner(self, project_id: str) -> Optional[str]:
        try:
            async with get_session(self._session_factory) as session:
                return await ProjectRepository(session).get_owner_id(project_id)
        except Exception as e:
            logger.warning(f"Could not resolve owner of project {project_id}: {e}")
            return None

    async def _run(self, job_id: str, project_id: str) -> None:
        self._started.add(job_id)
        # Replaced once the owner is known; a cancellation before that fails silently.
        notifier = ProgressNotifier(self.event_bus, job_id, None)

        try:
            notifier = ProgressNotifier(self.event_bus, job_id, await self._resolve_owner(project_id))

            staged = self.job_store.staged_path(job_id)
            if not staged.exists():
                logger.error(f"Staged file for import job {job_id} is missing: {staged}")
                await self._mark_failed(job_id, notifier, "Staged file not found")
                return

            await asyncio.wait_for(self._execute(job_id, project_id, notifier), timeout=self.timeout)
        except asyncio.CancelledError:
            logger.warning(f"Import job {job_id} was cancelled")
            await self._mark_failed(job_id, notifier, CANCELLED_REASON)
            raise
        except asyncio.TimeoutError:
            logger.error(f"Import job {job_id} exceeded {self.timeout}s")
            await self._mark_failed(job_id, notifier, f"Import timed out after {self.timeout} seconds")
        except Exception as e:
            logger.error(f"Import job {job_id} failed: {e}", exc_info=True)
            await self._mark_failed(job_id, notifier, str(e) or type(e).__name__)

    async def _fail_unstarted(self, job_id: str, project_id: str) -> None:
        notifier = ProgressNotifier(self.event_bus, job_id, await self._resolve_owner(project_id))
        await self._mark_failed(job_id, notifier, CANCELLED_REASON)

    async def _execute(self, job_id: str, project_id: str, notifier: ProgressNotifier) -> None:
        job = await self.job_store.transition(job_id, ImportStatus.PROCESSING)
        await notifier.started(project_id, job.file_name)

        persister = BatchPersister(
            self._session_factory,
            import_job_id=job_id,
            project_id=project_id,
            flush_size=self.flush_size,
        )
        result = await self.parser.parse_file(self.job_store.staged_path(job_id), persister, notifier)
        await persister.flush()

        await self.job_store.transition(
            job_id,
            ImportStatus.COMPLETED,
            total_lines=result.total_lines,
        )
        logger.info(
            f"Import job {job_id} completed: {result.accepted} accepted, {result.rejected} rejected"
        )
        await notifier.completed(result.accepted, result.rejected)

    async def _mark_failed(self, job_id: str, notifier: ProgressNotifier, reason: str) -> None:
        """Record the failure. Never raises; store errors are logged."""
        try:
            await self.job_store.transition(job_id, ImportStatus.FAILED)
        except Exception as e:
            logger.error(f"Could not mark import job {job_id} as failed: {e}")
        await notifier.failed(reason)
