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

"""Database engine and transaction abstract base classes."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from contextlib import AbstractAsyncContextManager
from typing import Any, TypeVar

from sqlmodel import SQLModel

from .filters import Filter

T = TypeVar("T", bound=SQLModel)


class Transaction(ABC):
    """A unit of work whose statements commit or roll back together.

    Reads always return the store's current row state, even for instances
    already loaded earlier in the same transaction.
    """

    @abstractmethod
    async def get(self, model_class: type[T], pk: Any) -> T | None:
        """Point lookup by primary key."""

    @abstractmethod
    async def find_first(self, model_class: type[T], *, filters: Filter) -> T | None:
        """Find the first record matching filters."""

    @abstractmethod
    async def find_many(
        self,
        model_class: type[T],
        *,
        filters: Filter | None = None,
        limit: int | None = None,
        offset: int | None = None,
        order_by: str | tuple[str, ...] | None = None,
    ) -> list[T]:
        """Find all records matching filters.

        ``order_by`` takes field names; prefix with "-" for descending.
        """

    @abstractmethod
    async def count(self, model_class: type[T], *, filters: Filter | None = None) -> int:
        """Count records matching filters."""

    @abstractmethod
    async def create(self, model: T) -> T:
        """Insert a record. Generated primary keys are populated on return."""

    @abstractmethod
    async def create_many(self, models: list[T]) -> list[T]:
        """Insert several records."""

    @abstractmethod
    async def update(self, model: T) -> T:
        """Write back a record by primary key."""

    @abstractmethod
    async def update_many(
        self,
        model_class: type[T],
        *,
        filters: Filter,
        values: Mapping[str, Any],
        fill_nulls: Mapping[str, Any] | None = None,
    ) -> int:
        """Bulk update every record matching filters in a single statement.

        Args:
            model_class: Table to update
            filters: Predicate selecting the rows
            values: Field values assigned unconditionally
            fill_nulls: Field values assigned only where the stored value is NULL

        Returns:
            Number of rows matched by the statement
        """

    @abstractmethod
    async def increment(
        self,
        model_class: type[T],
        *,
        filters: Filter,
        field: str,
        by: int = 1,
    ) -> int:
        """Atomically add ``by`` to ``field`` on the matching records.

        Returns:
            Number of rows updated
        """

    @abstractmethod
    async def delete(self, model_class: type[T], *, filters: Filter) -> int:
        """Delete records matching filters. Returns count of deleted records."""


class DatabaseEngine(ABC):
    """Transactional storage backend.

    The one-shot helpers each run in their own short transaction. Anything
    that must be observed atomically goes through :meth:`transaction`.
    """

    @abstractmethod
    async def setup_models(self, model_classes: list[type[SQLModel]]) -> None:
        """Create storage for the given model classes."""

    @abstractmethod
    def transaction(self) -> AbstractAsyncContextManager[Transaction]:
        """Open a transaction.

        Commits when the block exits normally, rolls back and re-raises
        when it exits with an exception.
        """

    @abstractmethod
    async def dispose(self) -> None:
        """Release pooled connections."""

    async def get(self, model_class: type[T], pk: Any) -> T | None:
        async with self.transaction() as tx:
            return await tx.get(model_class, pk)

    async def find_first(self, model_class: type[T], *, filters: Filter) -> T | None:
        async with self.transaction() as tx:
            return await tx.find_first(model_class, filters=filters)

    async def find_many(
        self,
        model_class: type[T],
        *,
        filters: Filter | None = None,
        limit: int | None = None,
        offset: int | None = None,
        order_by: str | tuple[str, ...] | None = None,
    ) -> list[T]:
        async with self.transaction() as tx:
            return await tx.find_many(
                model_class,
                filters=filters,
                limit=limit,
                offset=offset,
                order_by=order_by,
            )

    async def count(self, model_class: type[T], *, filters: Filter | None = None) -> int:
        async with self.transaction() as tx:
            return await tx.count(model_class, filters=filters)

    async def create(self, model: T) -> T:
        async with self.transaction() as tx:
            return await tx.create(model)

    async def create_many(self, models: list[T]) -> list[T]:
        if not models:
            return []
        async with self.transaction() as tx:
            return await tx.create_many(models)

    async def update(self, model: T) -> T:
        async with self.transaction() as tx:
            return await tx.update(model)

    async def update_many(
        self,
        model_class: type[T],
        *,
        filters: Filter,
        values: Mapping[str, Any],
        fill_nulls: Mapping[str, Any] | None = None,
    ) -> int:
        async with self.transaction() as tx:
            return await tx.update_many(model_class, filters=filters, values=values, fill_nulls=fill_nulls)

    async def delete(self, model_class: type[T], *, filters: Filter) -> int:
        async with self.transaction() as tx:
            return await tx.delete(model_class, filters=filters)
