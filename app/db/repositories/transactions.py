"""
Repositories for the rows produced by an import: accepted transactions and
rejected row errors. Both are insert-only.
"""
from typing import Any, Dict, List, Sequence, Tuple

from sqlalchemy import insert, select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.repositories.base import BaseRepository
from app.models.import_row_error import ImportRowError
from app.models.transaction import Transaction


class _ImportRowsRepository(BaseRepository):
    """Shared bulk insert and per-job paging."""

    async def bulk_create(self, rows: Sequence[Dict[str, Any]]) -> int:
        """
        Insert many rows with one executemany statement.

        Args:
            rows: Column dictionaries, each including its ``id``

        Returns:
            int: Number of rows inserted
        """
        if not rows:
            return 0
        await self.session.execute(insert(self.model), list(rows))
        return len(rows)

    async def get_by_job(
        self,
        import_job_id: str,
        *,
        skip: int = 0,
        limit: int = 100
    ) -> Tuple[List[Any], int]:
        count_query = select(func.count(self.model.id)).where(
            self.model.import_job_id == import_job_id
        )
        total = (await self.session.execute(count_query)).scalar() or 0

        query = (
            select(self.model)
            .where(self.model.import_job_id == import_job_id)
            .order_by(*self._job_ordering())
            .offset(skip)
            .limit(limit)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all()), total

    def _job_ordering(self):
        return (self.model.created_at, self.model.id)


class TransactionRepository(_ImportRowsRepository):
    """Accepted rows."""

    def __init__(self, session: AsyncSession):
        super().__init__(session=session, model=Transaction)


class ImportRowErrorRepository(_ImportRowsRepository):
    """Rejected rows, ordered by line number."""

    def __init__(self, session: AsyncSession):
        super().__init__(session=session, model=ImportRowError)

    def _job_ordering(self):
        return (ImportRowError.line_number,)
