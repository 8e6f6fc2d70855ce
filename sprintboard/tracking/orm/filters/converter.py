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

"""Conversion of Filter DSL expressions into SQLAlchemy WHERE clauses."""

from __future__ import annotations

from sqlalchemy import ColumnElement, and_, literal, not_
from sqlmodel import SQLModel

from .dsl import AndFilter, ComparisonFilter, Filter, FilterOperator


def to_sqlalchemy(
    filter_: Filter,
    model_class: type[SQLModel],
) -> ColumnElement[bool]:
    """Convert a filter into a SQLAlchemy boolean expression.

    Args:
        filter_: Filter DSL expression
        model_class: SQLModel table class providing the columns

    Returns:
        Expression usable in ``where()`` clauses

    Raises:
        ValueError: If a field does not exist on ``model_class`` or an
            operator receives a value of the wrong shape

    Examples:
        >>> expr = to_sqlalchemy(ComparisonFilter.eq("prefix", "PRJ"), WorkspaceModel)
        >>> # expr is equivalent to WorkspaceModel.prefix == "PRJ"
    """
    if isinstance(filter_, ComparisonFilter):
        return _convert_comparison(filter_, model_class)
    if isinstance(filter_, AndFilter):
        if not filter_.filters:
            return literal(True)
        return and_(*(to_sqlalchemy(sub, model_class) for sub in filter_.filters))
    return not_(to_sqlalchemy(filter_.filter, model_class))


def get_column(model_class: type[SQLModel], field_name: str) -> ColumnElement[object]:
    """Return the mapped column for ``field_name``."""
    if field_name not in model_class.model_fields:
        raise ValueError(f"Field '{field_name}' not found in model {model_class.__name__}")
    column: ColumnElement[object] = getattr(model_class, field_name)
    return column


def _convert_comparison(
    filter_: ComparisonFilter,
    model_class: type[SQLModel],
) -> ColumnElement[bool]:
    column = get_column(model_class, filter_.field)
    op = filter_.op
    value = filter_.value

    if op == FilterOperator.EQ:
        return column == value
    if op == FilterOperator.NEQ:
        return column != value
    if op == FilterOperator.GTE:
        return column >= value
    if op == FilterOperator.LT:
        return column < value
    if op == FilterOperator.LTE:
        return column <= value
    if op == FilterOperator.IN:
        if not isinstance(value, list):
            raise ValueError(f"Invalid value type for operator {op.value}: expected list, got {type(value).__name__}")
        return column.in_(value)
    if op == FilterOperator.IS:
        return column.is_(value)
    raise ValueError(f"Unsupported operator: {op}")
