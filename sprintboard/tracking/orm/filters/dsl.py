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

"""Filter DSL models.

Store-independent predicates used by services to describe which rows a
read, bulk update or bulk delete applies to.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel

FilterValue = str | int | float | bool | datetime | None | list[str | int | float]
RangeValue = int | float | datetime


class FilterOperator(str, Enum):
    """Comparison operators."""

    EQ = "eq"
    NEQ = "neq"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    IN = "in"
    IS = "is"  # IS NULL


class FilterBase(BaseModel):
    """Base class for filter expressions."""


class ComparisonFilter(FilterBase):
    """Single-field comparison."""

    type: Literal["comparison"] = "comparison"
    field: str
    op: FilterOperator
    value: FilterValue

    @classmethod
    def eq(cls, field: str, value: str | int | float | bool | None) -> ComparisonFilter:
        return cls(field=field, op=FilterOperator.EQ, value=value)

    @classmethod
    def neq(cls, field: str, value: str | int | float | bool | None) -> ComparisonFilter:
        return cls(field=field, op=FilterOperator.NEQ, value=value)

    @classmethod
    def gte(cls, field: str, value: RangeValue) -> ComparisonFilter:
        return cls(field=field, op=FilterOperator.GTE, value=value)

    @classmethod
    def lt(cls, field: str, value: RangeValue) -> ComparisonFilter:
        return cls(field=field, op=FilterOperator.LT, value=value)

    @classmethod
    def lte(cls, field: str, value: RangeValue) -> ComparisonFilter:
        return cls(field=field, op=FilterOperator.LTE, value=value)

    @classmethod
    def in_(cls, field: str, value: list[str | int | float]) -> ComparisonFilter:
        return cls(field=field, op=FilterOperator.IN, value=value)

    @classmethod
    def is_null(cls, field: str) -> ComparisonFilter:
        return cls(field=field, op=FilterOperator.IS, value=None)


class AndFilter(FilterBase):
    """All sub-filters must match."""

    type: Literal["and"] = "and"
    filters: Sequence[ComparisonFilter | AndFilter | NotFilter]


class NotFilter(FilterBase):
    """Negates the wrapped filter."""

    type: Literal["not"] = "not"
    filter: ComparisonFilter | AndFilter | NotFilter


Filter = ComparisonFilter | AndFilter | NotFilter

# Resolve the forward references of the recursive union.
AndFilter.model_rebuild()
NotFilter.model_rebuild()


def all_of(*filters: Filter | None) -> Filter:
    """Combine the given filters with AND, skipping ``None`` entries.

    A single remaining filter is returned as is.
    """
    present = [f for f in filters if f is not None]
    if len(present) == 1:
        return present[0]
    return AndFilter(filters=present)
