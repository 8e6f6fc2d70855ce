# Copyright (c) Nex-AGI. All rights reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""SQL database engine using SQLModel/SQLAlchemy.

Filter DSL expressions are converted with ``to_sqlalchemy()`` before being
passed to ``where()`` clauses. Bulk updates, increments and deletes are
issued as single statements so the store applies them atomically.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator, Mapping
from contextlib import asynccontextmanager
from typing import Any, TypeVar

from sqlalchemy import delete as sa_delete
from sqlalchemy import event, func, text
from sqlalchemy import update as sa_update
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlmodel import SQLModel, select

from .engine import DatabaseEngine, Transaction
from .filters import Filter, get_column, to_sqlalchemy

T = TypeVar("T", bound=SQLModel)

logger = logging.getLogger(__name__)

_ASYNC_DRIVERS = ("+asyncpg", "+aiosqlite", "+aiomysql")


def _enable_sqlite_foreign_keys(dbapi_connection: Any, connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class SQLTransaction(Transaction):
    """Transaction bound to one ``AsyncSession``."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, model_class: type[T], pk: Any) -> T | None:
        return await self._session.get(model_class, pk, populate_existing=True)

    async def find_first(self, model_class: type[T], *, filters: Filter) -> T | None:
        stmt = (
            select(model_class)
            .where(to_sqlalchemy(filters, model_class))
            .limit(1)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return result.scalars().first()

    async def find_many(
        self,
        model_class: type[T],
        *,
        filters: Filter | None = None,
        limit: int | None = None,
        offset: int | None = None,
        order_by: str | tuple[str, ...] | None = None,
    ) -> list[T]:
        stmt = select(model_class).execution_options(populate_existing=True)

        if filters is not None:
            stmt = stmt.where(to_sqlalchemy(filters, model_class))

        if order_by:
            fields = (order_by,) if isinstance(order_by, str) else order_by
            for field in fields:
                if field.startswith("-"):
                    stmt = stmt.order_by(get_column(model_class, field[1:]).desc())
                else:
                    stmt = stmt.order_by(get_column(model_class, field))

        if offset:
            stmt = stmt.offset(offset)
        if limit:
            stmt = stmt.limit(limit)

        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def count(self, model_class: type[T], *, filters: Filter | None = None) -> int:
        stmt = select(func.count()).select_from(model_class)
        if filters is not None:
            stmt = stmt.where(to_sqlalchemy(filters, model_class))
        result = await self._session.execute(stmt)
        return result.scalar() or 0

    async def create(self, model: T) -> T:
        self._session.add(model)
        # Flush so constraint violations surface here and the primary key is assigned.
        await self._session.flush()
        return model

    async def create_many(self, models: list[T]) -> list[T]:
        self._session.add_all(models)
        await self._session.flush()
        return models

    async def update(self, model: T) -> T:
        merged = await self._session.merge(model)
        await self._session.flush()
        return merged

    async def update_many(
        self,
        model_class: type[T],
        *,
        filters: Filter,
        values: Mapping[str, Any],
        fill_nulls: Mapping[str, Any] | None = None,
    ) -> int:
        assignments: dict[str, Any] = {}
        for field, value in values.items():
            get_column(model_class, field)
            assignments[field] = value
        for field, value in (fill_nulls or {}).items():
            assignments[field] = func.coalesce(get_column(model_class, field), value)
        if not assignments:
            raise ValueError("update_many requires at least one value")

        stmt = (
            sa_update(model_class)
            .where(to_sqlalchemy(filters, model_class))
            .values(**assignments)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return int(result.rowcount or 0)  # type: ignore[attr-defined]

    async def increment(
        self,
        model_class: type[T],
        *,
        filters: Filter,
        field: str,
        by: int = 1,
    ) -> int:
        column = get_column(model_class, field)
        stmt = (
            sa_update(model_class)
            .where(to_sqlalchemy(filters, model_class))
            .values({field: column + by})
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return int(result.rowcount or 0)  # type: ignore[attr-defined]

    async def delete(self, model_class: type[T], *, filters: Filter) -> int:
        stmt = (
            sa_delete(model_class)
            .where(to_sqlalchemy(filters, model_class))
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return int(result.rowcount or 0)  # type: ignore[attr-defined]


class SQLDatabaseEngine(DatabaseEngine):
    """Async SQL database engine supporting SQLite, PostgreSQL, MySQL."""

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine
        self._initialized_models: set[type[SQLModel]] = set()

    @classmethod
    def from_url(
        cls,
        url: str,
        *,
        pool_size: int = 5,
        max_overflow: int = 10,
        echo: bool = False,
        **kwargs: Any,
    ) -> SQLDatabaseEngine:
        """Create engine from database URL."""
        if not any(driver in url for driver in _ASYNC_DRIVERS):
            raise ValueError(f"URL must contain async driver (+asyncpg, +aiosqlite, or +aiomysql): {url}")

        if "sqlite" in url:
            connect_args = kwargs.pop("connect_args", {})
            connect_args.setdefault("check_same_thread", False)
            # Writers wait on each other's locks instead of failing immediately.
            connect_args.setdefault("timeout", 30)
            engine = create_async_engine(
                url,
                echo=echo,
                connect_args=connect_args,
                **kwargs,
            )
            event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        else:
            engine = create_async_engine(
                url,
                pool_size=pool_size,
                max_overflow=max_overflow,
                echo=echo,
                **kwargs,
            )

        return cls(engine)

    @property
    def url(self) -> str:
        return self._engine.url.render_as_string(hide_password=True)

    async def setup_models(self, model_classes: list[type[SQLModel]]) -> None:
        """Create tables for all model classes."""
        async with self._engine.begin() as conn:
            if "sqlite" in str(self._engine.url.drivername):
                await conn.execute(text("PRAGMA journal_mode=WAL"))
                await conn.execute(text("PRAGMA busy_timeout=30000"))
                await conn.execute(text("PRAGMA synchronous=NORMAL"))

            await conn.run_sync(SQLModel.metadata.create_all)
        for model_class in model_classes:
            self._initialized_models.add(model_class)
        logger.info("Storage ready for %d models at %s", len(model_classes), self.url)

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[Transaction, None]:
        async with AsyncSession(self._engine, expire_on_commit=False) as session:
            try:
                async with session.begin():
                    yield SQLTransaction(session)
            except Exception:
                logger.debug("Transaction rolled back", exc_info=True)
                raise

    async def dispose(self) -> None:
        await self._engine.dispose()
