"""
Unit tests for input validation utilities and cancellation tokens.

Includes property-based testing with hypothesis for validators.
"""

import uuid

import pytest
from hypothesis import given
from hypothesis import strategies as st

from fieldops_ingest.core.errors import OperationCancelledError, ValidationError
from fieldops_ingest.core.models import UndoScope
from fieldops_ingest.utils.cancellation import CancellationToken
from fieldops_ingest.utils.validation import (
    sanitize_file_name,
    validate_chunk_size,
    validate_scope,
    validate_source_system,
    validate_upload_set_id,
)


@pytest.mark.unit
class TestValidateUploadSetId:
    def test_accepts_uuid_and_string(self):
        value = uuid.uuid4()
        assert validate_upload_set_id(value) is value
        assert validate_upload_set_id(f" {value} ") == value

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_missing(self, value):
        with pytest.raises(ValidationError, match="Missing upload_set_id"):
            validate_upload_set_id(value)

    def test_malformed_uses_field_name(self):
        with pytest.raises(ValidationError, match="batch_id must be a UUID"):
            validate_upload_set_id("abc", "batch_id")

    @given(st.uuids())
    def test_string_form_roundtrips(self, value):
        assert validate_upload_set_id(str(value)) == value


@pytest.mark.unit
class TestValidateSourceSystem:
    @pytest.mark.parametrize("value", ["ontrac", "vendor_2", "a-b"])
    def test_valid(self, value):
        assert validate_source_system(value) == value

    @pytest.mark.parametrize("value", ["OnTrac", "a b", "../etc", "x/y"])
    def test_invalid_characters(self, value):
        with pytest.raises(ValidationError, match="invalid characters"):
            validate_source_system(value)

    def test_too_long(self):
        with pytest.raises(ValidationError, match="maximum length"):
            validate_source_system("a" * 65)

    def test_missing(self):
        with pytest.raises(ValidationError):
            validate_source_system("")


@pytest.mark.unit
class TestSanitizeFileName:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("keystone.xlsx", "keystone.xlsx"),
            ("/tmp/uploads/keystone.xlsx", "keystone.xlsx"),
            ("C:\\exports\\keystone.xlsx", "keystone.xlsx"),
            ("bad\x00name.csv", "badname.csv"),
            ("", "file"),
            (None, "file"),
            ("..", "file"),
        ],
    )
    def test_sanitize(self, raw, expected):
        assert sanitize_file_name(raw) == expected

    @given(st.text())
    def test_never_contains_separators(self, raw):
        name = sanitize_file_name(raw)
        assert name
        assert "/" not in name
        assert "\\" not in name


@pytest.mark.unit
class TestValidateScopeAndChunkSize:
    def test_scope_default(self):
        assert validate_scope(None) == UndoScope.COMMIT
        assert validate_scope("") == UndoScope.COMMIT

    def test_scope_parsing(self):
        assert validate_scope(" ALL ") == UndoScope.ALL
        assert validate_scope(UndoScope.RAW) == UndoScope.RAW

    def test_scope_invalid(self):
        with pytest.raises(ValidationError):
            validate_scope("partial")

    def test_chunk_size(self):
        assert validate_chunk_size(500) == 500
        for bad in (0, -1, 10001, True, "5"):
            with pytest.raises(ValidationError):
                validate_chunk_size(bad)


@pytest.mark.unit
class TestCancellationToken:
    def test_not_cancelled_by_default(self):
        token = CancellationToken()
        assert not token.cancelled
        token.raise_if_cancelled("anywhere")

    def test_explicit_cancel(self):
        token = CancellationToken(timeout=3600)
        token.cancel()
        with pytest.raises(OperationCancelledError, match=r"Operation cancelled \(before row-store write\)"):
            token.raise_if_cancelled("before row-store write")

    def test_deadline(self):
        token = CancellationToken(timeout=0)
        assert token.expired
        with pytest.raises(OperationCancelledError, match="deadline exceeded"):
            token.raise_if_cancelled()
