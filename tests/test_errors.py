# tests/test_errors.py
"""Tests for failure classification and remediation hints."""

import pytest

from pixelmint.errors import (
    IDENTITY_HINT,
    STORAGE_HINT,
    AuthorizationError,
    CommitError,
    EncodingError,
    PublicationError,
    PublishError,
    remediation_hint,
)


class TestRemediationHint:

    @pytest.mark.parametrize("message", [
        "Image upload failed: timeout",
        "Storage quota exceeded",
        "Store request failed: HTTP 500",
        "UPLOAD rejected",
    ])
    def test_storage(self, message):
        assert remediation_hint(message) == STORAGE_HINT

    @pytest.mark.parametrize("message", [
        "Identity not connected",
        "Wallet locked",
        "User rejected the signature request",
    ])
    def test_identity(self, message):
        assert remediation_hint(message) == IDENTITY_HINT

    def test_storage_checked_first(self):
        assert remediation_hint("upload signature mismatch") == STORAGE_HINT

    @pytest.mark.parametrize("message", ["Ledger unreachable", "", None])
    def test_none(self, message):
        assert remediation_hint(message) is None


class TestPublicationError:

    def test_stages(self):
        assert AuthorizationError("x").stage == "identity"
        assert EncodingError("x").stage == "encode"
        assert CommitError("x").stage == "commit"
        assert PublishError("x", stage="record").stage == "record"
        assert PublicationError("x").stage == "pipeline"

    def test_describe_with_hint(self):
        error = PublishError("Image upload failed: reset", stage="asset")
        assert error.describe() == f"Publication failed: Image upload failed: reset\n\n{STORAGE_HINT}"

    def test_describe_without_hint(self):
        assert CommitError("Ledger unreachable").describe() == "Publication failed: Ledger unreachable"

    def test_to_dict(self):
        data = PublishError("Metadata upload failed", stage="record", attempts=3).to_dict()
        assert data == {
            "kind": "PublishError",
            "stage": "record",
            "message": "Metadata upload failed",
            "hint": STORAGE_HINT,
            "attempts": 3,
        }
