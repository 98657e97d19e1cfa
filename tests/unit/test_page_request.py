"""Unit tests for limit/cursor parsing."""

import uuid

import pytest

from clinic_registry.core.errors import ValidationError
from clinic_registry.core.ids import new_uuid7
from clinic_registry.services.pagination import (
    DEFAULT_LIMIT,
    MAX_LIMIT,
    InvalidPageParameter,
    PageRequest,
)


@pytest.mark.unit
class TestPageRequest:
    def test_defaults(self):
        request = PageRequest.from_raw()
        assert request.limit == DEFAULT_LIMIT == 20
        assert request.cursor is None

    def test_blank_values_use_defaults(self):
        request = PageRequest.from_raw(limit="  ", cursor="")
        assert request.limit == DEFAULT_LIMIT
        assert request.cursor is None

    @pytest.mark.parametrize("limit", [1, "1", 50, " 100 "])
    def test_valid_limits(self, limit):
        assert PageRequest.from_raw(limit=limit).limit == int(str(limit).strip())

    @pytest.mark.parametrize("limit", [0, -5, MAX_LIMIT + 1, "101"])
    def test_out_of_range(self, limit):
        with pytest.raises(ValidationError) as exc_info:
            PageRequest.from_raw(limit=limit)
        assert exc_info.value.message == f"limit must be between 1 and {MAX_LIMIT}"

    @pytest.mark.parametrize("limit", ["ten", "1.5", True])
    def test_not_an_integer(self, limit):
        with pytest.raises(ValidationError) as exc_info:
            PageRequest.from_raw(limit=limit)
        assert exc_info.value.message == (
            f"limit must be an integer between 1 and {MAX_LIMIT}"
        )

    def test_custom_bounds(self):
        assert PageRequest.from_raw(default_limit=5).limit == 5
        with pytest.raises(ValidationError):
            PageRequest.from_raw(limit=11, max_limit=10)

    def test_cursor_must_be_uuid7(self):
        cursor = new_uuid7()
        assert PageRequest.from_raw(cursor=str(cursor)).cursor == cursor
        with pytest.raises(ValidationError) as exc_info:
            PageRequest.from_raw(cursor=str(uuid.uuid4()))
        assert exc_info.value.message == "cursor must be a UUIDv7"

    def test_error_names_the_parameter(self):
        with pytest.raises(InvalidPageParameter) as exc_info:
            PageRequest.from_raw(limit="0", max_limit=50)
        assert exc_info.value.param == "limit"
        assert exc_info.value.reason == "must be between 1 and 50"
        # Still a validation error for callers that only know the taxonomy
        assert isinstance(exc_info.value, ValidationError)
