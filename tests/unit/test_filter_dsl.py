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

"""Tests for Filter DSL models."""

from __future__ import annotations

from datetime import datetime

import pytest
from pydantic import ValidationError

from sprintboard.tracking.orm import (
    AndFilter,
    ComparisonFilter,
    FilterOperator,
    NotFilter,
    all_of,
)


class TestComparisonFilter:
    def test_helpers_set_operator(self):
        assert ComparisonFilter.eq("a", 1).op == FilterOperator.EQ
        assert ComparisonFilter.neq("a", 1).op == FilterOperator.NEQ
        assert ComparisonFilter.in_("a", [1, 2]).op == FilterOperator.IN
        assert ComparisonFilter.lt("a", 1).op == FilterOperator.LT
        assert ComparisonFilter.gte("a", 1).op == FilterOperator.GTE
        assert ComparisonFilter.lte("a", 1).op == FilterOperator.LTE
        assert ComparisonFilter.is_null("a").op == FilterOperator.IS

    def test_is_null_has_no_value(self):
        assert ComparisonFilter.is_null("sprint_id").value is None

    def test_bool_value_kept(self):
        filter_ = ComparisonFilter.eq("is_active", True)
        assert filter_.value is True

    def test_unknown_operator_rejected(self):
        with pytest.raises(ValidationError):
            ComparisonFilter(field="a", op="between", value=1)

    def test_datetime_value_kept(self):
        cutoff = datetime(2024, 1, 15, 12, 0)
        assert ComparisonFilter.lt("deadline", cutoff).value == cutoff

    @pytest.mark.parametrize("op", ["gt", "like", "ilike"])
    def test_unsupported_operators_rejected(self, op):
        with pytest.raises(ValidationError):
            ComparisonFilter(field="a", op=op, value=1)


class TestLogicalFilters:
    def test_nested_structure_round_trips_through_json(self):
        filter_ = AndFilter(
            filters=[
                ComparisonFilter.eq("workspace_id", 1),
                NotFilter(filter=AndFilter(filters=[ComparisonFilter.eq("step_id", 2), ComparisonFilter.is_null("epic_id")])),
            ]
        )
        restored = AndFilter.model_validate_json(filter_.model_dump_json())
        assert restored == filter_

    def test_type_discriminators(self):
        assert AndFilter(filters=[]).type == "and"
        assert NotFilter(filter=ComparisonFilter.eq("a", 1)).type == "not"


class TestAllOf:
    def test_single_filter_returned_as_is(self):
        only = ComparisonFilter.eq("id", 3)
        assert all_of(None, only, None) is only

    def test_multiple_filters_wrapped_in_and(self):
        first = ComparisonFilter.eq("id", 3)
        second = ComparisonFilter.is_null("closed_at")
        combined = all_of(first, second)
        assert isinstance(combined, AndFilter)
        assert list(combined.filters) == [first, second]

    def test_no_filters_matches_everything(self):
        combined = all_of(None)
        assert isinstance(combined, AndFilter)
        assert list(combined.filters) == []
