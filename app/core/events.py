"""
Application lifecycle: construction and teardown of long-lived services.
"""
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from sqlalchemy.orm import sessionmaker

from app.core.config import Settings, settings as default_settings
from app.services.event_bus.bus import EventBus
from app.services.event_bus.events import Event, EventType
from app.services.imports.job_store import JobStore
from app.services.imports.parser import TransactionCSVParser
from app.services.imports.runner import ImportRunner
from app.services.imports.upload import UploadReceiver
from app.services.realtime.hub import ConnectionManager

logger = logging.getLogger("ledgerflow")


@dataclass
class Services:
    """Long-lived collaborators shared by request handlers."""
    event_bus: EventBus
    hub: ConnectionManager
    job_store: JobStore
    upload_receiver: UploadReceiver
    runner: ImportRunner


def build_services(
    session_factory: Optional[sessionmaker] = None,
    config: Optional[Settings] = None,
) -> Services:
    """Wire the import pipeline from settings."""
    if session_factory is None:
        from app.db.session import async_session_factory
        session_factory = async_session_factory
    config = config or default_settings

    imports_dir = Path(config.IMPORTS_DIR)
    event_bus = EventBus(max_queue_size=config.NOTIFICATION_QUEUE_SIZE)
    job_store = JobStore(session_factory, imports_dir)

    return Services(
        event_bus=event_bus,
        hub=ConnectionManager(send_timeout=config.WEBSOCKET_SEND_TIMEOUT_SECONDS),
        job_store=job_store,
        upload_receiver=UploadReceiver(
            imports_dir,
            max_file_size=config.IMPORT_MAX_FILE_SIZE,
            file_field=config.IMPORT_FILE_FIELD,
            project_field=config.IMPORT_PROJECT_FIELD,
            max_fields=config.IMPORT_MAX_FIELDS,
            max_field_size=config.IMPORT_MAX_FIELD_SIZE,
        ),
        runner=ImportRunner(
            job_store,
            session_factory,
            event_bus=event_bus,
            parser=TransactionCSVParser(
                delimiter=config.IMPORT_CSV_SEPARATOR,
                progress_interval=config.IMPORT_PROGRESS_INTERVAL,
            ),
            flush_size=config.IMPORT_FLUSH_SIZE,
            timeout=config.IMPORT_JOB_TIMEOUT_SECONDS,
        ),
    )


async def start_services(services: Services) -> None:
    """Start the event bus and connect the real-time hub to it."""
    await services.event_bus.initialize()
    await services.hub.attach(services.event_bus)
    services.job_store.imports_dir.mkdir(parents=True, exist_ok=True)
    await services.event_bus.publish(Event(EventType.SYSTEM_STARTUP, {}))
    logger.info("Import services started")


async def stop_services(services: Services) -> None:
    """Cancel running imports, then drain and stop the event bus."""
    await services.runner.shutdown()
    await services.event_bus.publish(Event(EventType.SYSTEM_SHUTDOWN, {"graceful": True}))
    await services.event_bus.shutdown()
    logger.info("Import services stopped")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Handle application startup and shutdown.

    The database check is logged, not fatal, so the API can come up before
    the database does.
    """
    from app.db.session import close_database_connections, initialize_database

    logger.info(f"Starting {default_settings.PROJECT_NAME}")

    try:
        await initialize_database()
    except Exception as e:
        logger.error(f"Error initializing database: {e}")

    services = build_services()
    await start_services(services)
    app.state.services = services

    logger.info(f"✅ {default_settings.PROJECT_NAME} v{default_settings.VERSION} startup complete")
    try:
        yield
    finally:
        logger.info(f"Shutting down {default_settings.PROJECT_NAME}")
        await stop_services(services)
        await close_database_connections()
        logger.info("✅ Application shutdown complete")
