from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager, suppress
from typing import Annotated, Any

from fastapi import Depends
from loguru import logger
from sqlalchemy import ColumnElement, delete, update
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError, SQLAlchemyError
from sqlmodel import SQLModel, col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from cardclash.core.change_feed import ChangeFeed, ChangeNotification, get_change_feed
from cardclash.core.db import get_db
from cardclash.core.enums import ChangeEvent
from cardclash.core.errors import StoreConflictError, StoreUnavailableError


class RecordStore:
    """Row-level CRUD over the database plus change notifications.

    Writes join the session's open transaction. Nothing is visible to other
    clients, and no notification goes out, until ``commit`` succeeds. A
    constraint conflict or a lost connection rolls the whole unit of work back.
    """

    def __init__(
        self,
        db: Annotated[AsyncSession, Depends(get_db)],
        feed: Annotated[ChangeFeed, Depends(get_change_feed)],
    ) -> None:
        self.db = db
        self.feed = feed
        self._pending: list[ChangeNotification] = []

    @asynccontextmanager
    async def _guard(self, action: str) -> AsyncIterator[None]:
        try:
            yield
        except IntegrityError as e:
            await self.rollback()
            msg = f"{action} rejected by the store: {e.orig}"
            raise StoreConflictError(msg) from e
        except (OperationalError, InterfaceError, TimeoutError, OSError) as e:
            self._pending.clear()
            # The connection may already be gone, in which case there is nothing to undo
            with suppress(SQLAlchemyError):
                await self.db.rollback()
            logger.warning(f"Store unavailable during {action}: {e}")
            msg = f"{action} failed: {e}"
            raise StoreUnavailableError(msg) from e

    def _queue(self, model: type[SQLModel], event: ChangeEvent, data: dict[str, Any]) -> None:
        self._pending.append(
            ChangeNotification(
                table=str(model.__tablename__), event=event, row_id=data["id"], data=data
            )
        )

    async def get[M: SQLModel](self, model: type[M], row_id: int) -> M | None:
        rows = await self.query(model, col(model.id) == row_id, limit=1)  # pyright: ignore[reportAttributeAccessIssue]
        return rows[0] if rows else None

    async def query[M: SQLModel](
        self,
        model: type[M],
        *filters: ColumnElement[bool] | bool,
        order_by: Sequence[Any] = (),
        limit: int | None = None,
        offset: int = 0,
    ) -> list[M]:
        stmt = (
            select(model)
            .where(*filters)
            .order_by(*order_by)
            .execution_options(populate_existing=True)
        )
        if offset:
            stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)

        async with self._guard(f"query {model.__tablename__}"):
            result = await self.db.exec(stmt)
            return list(result.all())

    async def scalar(self, stmt: Any) -> Any:
        async with self._guard("scalar query"):
            result = await self.db.exec(stmt)
            return result.first()

    async def insert[M: SQLModel](self, row: M) -> M:
        """Insert a row, raising StoreConflictError if a unique or foreign key rejects it."""
        async with self._guard(f"insert into {row.__tablename__}"):
            self.db.add(row)
            await self.db.flush()

        self._queue(type(row), ChangeEvent.INSERT, row.model_dump())
        return row

    async def update[M: SQLModel](
        self, model: type[M], *filters: ColumnElement[bool] | bool, patch: dict[str, Any]
    ) -> M | None:
        """Apply ``patch`` to the rows matching ``filters`` in one conditional statement.

        Returns the first affected row, or None when nothing matched.
        """
        table = model.__table__  # pyright: ignore[reportAttributeAccessIssue]
        stmt = update(table).where(*filters).values(**patch).returning(*table.columns)

        async with self._guard(f"update {model.__tablename__}"):
            connection = await self.db.connection()
            result = await connection.execute(stmt)
            affected = [dict(row._mapping) for row in result.all()]  # noqa: SLF001

        if not affected:
            return None

        for data in affected:
            self._queue(model, ChangeEvent.UPDATE, data)
        return await self.get(model, affected[0]["id"])

    async def delete(self, model: type[SQLModel], *filters: ColumnElement[bool] | bool) -> int:
        table = model.__table__  # pyright: ignore[reportAttributeAccessIssue]
        stmt = delete(table).where(*filters).returning(*table.columns)

        async with self._guard(f"delete from {model.__tablename__}"):
            connection = await self.db.connection()
            result = await connection.execute(stmt)
            removed = [dict(row._mapping) for row in result.all()]  # noqa: SLF001

        for data in removed:
            self._queue(model, ChangeEvent.DELETE, data)
        return len(removed)

    async def commit(self) -> None:
        async with self._guard("commit"):
            await self.db.commit()

        pending, self._pending = self._pending, []
        for notification in pending:
            self.feed.publish(notification)

    async def rollback(self) -> None:
        self._pending.clear()
        await self.db.rollback()

    async def release(self) -> None:
        """End the current read transaction so the next query sees fresh rows."""
        async with self._guard("release"):
            await self.rollback()
