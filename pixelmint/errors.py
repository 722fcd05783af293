# pixelmint/errors.py
"""
Error taxonomy for the publication pipeline.

Every terminal failure carries the stage it happened in and the proximate
underlying message. A remediation hint may be attached for display; it is
derived from the message text and never influences control flow.
"""

from typing import Optional

STORAGE_HINT = (
    "This appears to be a storage/upload issue. "
    "Please check your internet connection and try again."
)
IDENTITY_HINT = (
    "This appears to be an identity issue. "
    "Please check your identity connection and try again."
)

_STORAGE_MARKERS = ("upload", "storage", "store")
_IDENTITY_MARKERS = ("identity", "wallet", "signature")


def remediation_hint(message: str) -> Optional[str]:
    """
    Suggest a remediation for a failure message.

    Advisory only: callers must not branch on the result.
    """
    text = (message or "").lower()
    if any(marker in text for marker in _STORAGE_MARKERS):
        return STORAGE_HINT
    if any(marker in text for marker in _IDENTITY_MARKERS):
        return IDENTITY_HINT
    return None


class PublicationError(Exception):
    """Base class for classified pipeline failures."""

    stage = "pipeline"

    def __init__(self, message: str, stage: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if stage is not None:
            self.stage = stage

    @property
    def hint(self) -> Optional[str]:
        return remediation_hint(self.message)

    def describe(self) -> str:
        """Human-readable failure text, with hint if one applies."""
        text = f"Publication failed: {self.message}"
        if self.hint:
            text += f"\n\n{self.hint}"
        return text

    def to_dict(self):
        return {
            "kind": type(self).__name__,
            "stage": self.stage,
            "message": self.message,
            "hint": self.hint,
        }


class AuthorizationError(PublicationError):
    """No identity, or the identity refused to authorize the registration."""

    stage = "identity"


class EncodingError(PublicationError):
    """The raster could not be turned into a valid image payload."""

    stage = "encode"


class PublishError(PublicationError):
    """Uploading to the durable store failed."""

    def __init__(self, message: str, stage: str, attempts: int = 1):
        super().__init__(message, stage)
        self.attempts = attempts

    def to_dict(self):
        data = super().to_dict()
        data["attempts"] = self.attempts
        return data


class CommitError(PublicationError):
    """The ledger rejected the registration or could not be reached."""

    stage = "commit"
