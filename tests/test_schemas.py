"""Tests for the request schemas."""

import pytest
from marshmallow import ValidationError

from VibeTracker.api.schemas import (
    ActivityCancelSchema,
    ActivityCompleteSchema,
    ActivityStartSchema,
    RoutePointBatchSchema,
    RoutePointSchema,
    UserProfileSchema,
)

ALL_SCHEMAS = [
    ActivityStartSchema, RoutePointSchema, RoutePointBatchSchema,
    ActivityCompleteSchema, ActivityCancelSchema, UserProfileSchema,
]


@pytest.mark.parametrize("schema", ALL_SCHEMAS)
def test_schemas_are_documented(schema):
    assert schema.__doc__ and schema.__doc__.startswith("Schema for")


class TestActivityCompleteSchema:
    def test_multiplier_is_not_client_settable(self):
        data = ActivityCompleteSchema().load({'multiplier_percentage': 100000, 'rating': 4})
        assert 'multiplier_percentage' not in data
        assert data['rating'] == 4

    def test_exertion_range(self):
        with pytest.raises(ValidationError):
            ActivityCompleteSchema().load({'perceived_exertion': 11})


class TestActivityCancelSchema:
    def test_reason_optional(self):
        assert ActivityCancelSchema().load({}) == {'reason': None}
