"""Unit tests for UUIDv7 generation and the test clock."""

import uuid
from datetime import datetime, timezone

import pytest

from clinic_registry.core.ids import (
    FixedClock,
    UUIDv7Generator,
    new_uuid7,
    parse_uuid7,
    utc_now,
)


@pytest.mark.unit
class TestUUIDv7Generator:
    def test_version_and_variant(self):
        value = new_uuid7()
        assert value.version == 7
        assert value.variant == uuid.RFC_4122

    def test_embeds_millisecond_timestamp(self):
        generator = UUIDv7Generator(time_ms=lambda: 1_700_000_000_123)
        value = generator.new()
        assert value.int >> 80 == 1_700_000_000_123

    def test_monotonic_within_same_millisecond(self):
        generator = UUIDv7Generator(time_ms=lambda: 1_700_000_000_000)
        values = [generator() for _ in range(500)]
        assert values == sorted(values)
        assert len(set(values)) == 500

    def test_string_order_matches_creation_order(self):
        values = [str(new_uuid7()) for _ in range(200)]
        assert values == sorted(values)

    def test_clock_going_backwards_keeps_order(self):
        ticks = iter([2_000, 1_000, 1_000])
        generator = UUIDv7Generator(time_ms=lambda: next(ticks))
        first, second, third = generator(), generator(), generator()
        assert first < second < third


@pytest.mark.unit
class TestParseUUID7:
    def test_parses_string_and_uuid(self):
        value = new_uuid7()
        assert parse_uuid7(str(value)) == value
        assert parse_uuid7(f"  {value}  ") == value
        assert parse_uuid7(value) == value

    def test_rejects_other_versions_and_garbage(self):
        assert parse_uuid7(str(uuid.uuid4())) is None
        assert parse_uuid7("not-a-uuid") is None
        assert parse_uuid7(None) is None


@pytest.mark.unit
class TestClock:
    def test_utc_now_is_aware(self):
        assert utc_now().tzinfo is not None

    def test_fixed_clock_advances(self):
        start = datetime(2026, 1, 1, tzinfo=timezone.utc)
        clock = FixedClock(start)
        assert clock() == start
        assert clock.advance(minutes=5) == datetime(2026, 1, 1, 0, 5, tzinfo=timezone.utc)
        assert clock() == datetime(2026, 1, 1, 0, 5, tzinfo=timezone.utc)
