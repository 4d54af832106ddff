"""
Buffered bulk persistence of accepted and rejected rows.
"""
import logging
from typing import Any, Dict, List

from sqlalchemy.orm import sessionmaker

from app.db.repositories.transactions import ImportRowErrorRepository, TransactionRepository
from app.db.session import get_session
from app.schemas.transaction import TransactionRow
from app.utils.datetime import utc_now
from app.utils.ids import generate_prefixed_id, IDPrefix

logger = logging.getLogger("ledgerflow.imports.persister")


class BatchPersister:
    """
    Buffers rows of one import job and writes them in bulk.

    A flush happens whenever either buffer reaches ``flush_size`` rows and once
    more when the caller calls :meth:`flush` at end of file. ``flush_size=0``
    keeps everything buffered until that final flush. Each flush writes both
    buffers in one transaction; rows already flushed stay if a later flush
    fails.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        import_job_id: str,
        project_id: str,
        flush_size: int = 1000,
    ):
        self._session_factory = session_factory
        self.import_job_id = import_job_id
        self.project_id = project_id
        self.flush_size = flush_size

        self._transactions: List[Dict[str, Any]] = []
        self._row_errors: List[Dict[str, Any]] = []

        self.persisted_accepted = 0
        self.persisted_rejected = 0
        self.flush_count = 0

    @property
    def pending(self) -> int:
        return len(self._transactions) + len(self._row_errors)

    async def add_accepted(self, row: TransactionRow) -> None:
        now = utc_now()
        self._transactions.append({
            "id": generate_prefixed_id(IDPrefix.TRANSACTION),
            "amount": row.amount,
            "currency": row.currency,
            "description": row.description,
            "import_job_id": self.import_job_id,
            "project_id": self.project_id,
            "created_at": now,
            "updated_at": now,
        })
        if self.flush_size and len(self._transactions) >= self.flush_size:
            await self.flush()

    async def add_rejected(self, line_number: int, line_text: str, error_message: str) -> None:
        now = utc_now()
        self._row_errors.append({
            "id": generate_prefixed_id(IDPrefix.ROW_ERROR),
            "line_number": line_number,
            "line_text": line_text,
            "error_message": error_message,
            "import_job_id": self.import_job_id,
            "created_at": now,
            "updated_at": now,
        })
        if self.flush_size and len(self._row_errors) >= self.flush_size:
            await self.flush()

    async def flush(self) -> None:
        """Write both buffers in a single transaction and clear them."""
        if not self.pending:
            return

        transactions, row_errors = self._transactions, self._row_errors

        async with get_session(self._session_factory) as session:
            accepted = await TransactionRepository(session).bulk_create(transactions)
            rejected = await ImportRowErrorRepository(session).bulk_create(row_errors)

        self._transactions, self._row_errors = [], []
        self.persisted_accepted += accepted
        self.persisted_rejected += rejected
        self.flush_count += 1

        logger.debug(
            f"Flushed {accepted} transactions and {rejected} row errors for job {self.import_job_id}"
        )
