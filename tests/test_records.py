"""Tests for record normalization at the extraction boundary."""

import pytest

from shamela_mirror.core.records import (
    UNCHANGED,
    contains_unchanged,
    is_deleted,
    normalize_record,
    normalize_value,
    parse_flag,
)


class TestParseFlag:
    """Test suite for deletion flag parsing."""

    @pytest.mark.parametrize("value", [1, "1", "true", "True", " yes ", True, 2])
    def test_truthy_values(self, value: object) -> None:
        assert parse_flag(value) is True

    @pytest.mark.parametrize("value", [0, "0", "", None, "false", False, UNCHANGED])
    def test_falsy_values(self, value: object) -> None:
        assert parse_flag(value) is False


class TestNormalizeValue:
    """Test suite for cell normalization."""

    def test_sentinel_becomes_unchanged(self) -> None:
        assert normalize_value("#") is UNCHANGED

    def test_null_stays_null(self) -> None:
        """Null means 'explicitly cleared' and must not become UNCHANGED."""
        assert normalize_value(None) is None

    def test_sentinel_only_matches_whole_value(self) -> None:
        assert normalize_value("#1") == "#1"
        assert normalize_value(" # ") == " # "

    def test_blob_decoded_as_text(self) -> None:
        assert normalize_value("نص".encode()) == "نص"

    def test_unchanged_repr(self) -> None:
        assert repr(UNCHANGED) == "UNCHANGED"


class TestNormalizeRecord:
    """Test suite for whole-record normalization."""

    def test_coerces_id_and_parent(self) -> None:
        record = normalize_record({"id": "7", "parent": 3.0, "content": "x"})
        assert record == {"id": 7, "parent": 3, "content": "x"}

    def test_unchanged_parent_kept(self) -> None:
        record = normalize_record({"id": 1, "parent": "#"})
        assert record["parent"] is UNCHANGED

    def test_delete_flag_normalized(self) -> None:
        assert normalize_record({"id": 1, "is_deleted": "1"})["is_deleted"] is True
        assert normalize_record({"id": 1, "is_deleted": 0})["is_deleted"] is False

    def test_missing_id_rejected(self) -> None:
        with pytest.raises(ValueError, match="no 'id'"):
            normalize_record({"name": "x"})

    def test_unchanged_id_rejected(self) -> None:
        with pytest.raises(ValueError):
            normalize_record({"id": "#"})

    def test_non_integer_id_rejected(self) -> None:
        with pytest.raises(ValueError, match="integer"):
            normalize_record({"id": "abc"})


class TestRecordHelpers:
    def test_is_deleted(self) -> None:
        assert is_deleted({"id": 1, "is_deleted": True})
        assert not is_deleted({"id": 1})

    def test_contains_unchanged(self) -> None:
        assert contains_unchanged({"id": 1, "name": UNCHANGED})
        assert not contains_unchanged({"id": 1, "name": None})
