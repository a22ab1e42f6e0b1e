"""Tests for the ID generator utility functions."""

import re
from unittest import mock

import pytest

from runtime_core.utils.id_generator import generate_prefixed_id, is_prefixed_id, to_base36


class TestToBase36:
    """Tests for the to_base36 function."""

    @pytest.mark.parametrize(
        "number,expected",
        [(0, "0"), (7, "7"), (10, "a"), (35, "z"), (36, "10"), (1295, "zz"), (46656, "1000")],
    )
    def test_conversion(self, number: int, expected: str):
        assert to_base36(number) == expected

    def test_millisecond_timestamps_stay_short(self):
        """Current millisecond timestamps fit in 8 base36 digits."""
        assert len(to_base36(1_700_000_000_000)) == 8


class TestGeneratePrefixedId:
    """Tests for the generate_prefixed_id function."""

    def test_format(self):
        """Test that the ID is prefix, timestamp and random part."""
        id_value = generate_prefixed_id("sub")
        assert re.match(r"^sub_[0-9a-z]+_[0-9a-z]{9}$", id_value) is not None

    def test_custom_random_length(self):
        """Test that the random suffix honours its length."""
        id_value = generate_prefixed_id("req", random_length=4)
        assert len(id_value.rsplit("_", 1)[1]) == 4

    def test_uniqueness(self):
        """Test that generated IDs are unique."""
        ids = [generate_prefixed_id("sub") for _ in range(100)]
        assert len(ids) == len(set(ids)), "Generated IDs should be unique"

    def test_timestamp_component(self):
        """Test that the timestamp component follows the prefix."""
        fixed_time = 1647427200.0
        expected_base36 = to_base36(int(fixed_time * 1000))

        with mock.patch("time.time", return_value=fixed_time):
            id_value = generate_prefixed_id("req")
            assert id_value.startswith(f"req_{expected_base36}_")


class TestIsPrefixedId:
    """Tests for the is_prefixed_id function."""

    def test_generated_ids_match(self):
        """Test that generated IDs are recognised."""
        assert is_prefixed_id(generate_prefixed_id("sub"), "sub")

    def test_wrong_prefix(self):
        """Test that another kind of ID is rejected."""
        assert not is_prefixed_id(generate_prefixed_id("req"), "sub")

    def test_plain_topics_rejected(self):
        """Test that topic names are not mistaken for IDs."""
        assert not is_prefixed_id("sub:created", "sub")
        assert not is_prefixed_id("subscriptions", "sub")
        assert not is_prefixed_id("sub_", "sub")
