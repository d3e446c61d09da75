"""
Autopilot error types.

Library code raises these; the pipeline, scheduler, CLI and Flask routes
are the boundaries that catch and report them.
"""
from typing import List, Optional


class AutopilotError(Exception):
    """Base class for all reel-autopilot errors."""


class ConfigurationError(AutopilotError):
    """Required configuration is missing or malformed."""

    def __init__(self, message: str, missing: Optional[List[str]] = None):
        self.missing = missing or []
        super().__init__(message)


class AcquisitionError(AutopilotError):
    """No resolver produced a usable media file."""


class StoreError(AutopilotError):
    """The deduplication store is unavailable or misused."""


class RecordNotFoundError(StoreError):
    """An update targeted a video id that was never recorded."""

    def __init__(self, tiktok_id: str):
        self.tiktok_id = tiktok_id
        super().__init__(f"No video record for id {tiktok_id}")


class PublishError(AutopilotError):
    """Base class for failures talking to the Graph API."""


class TransferError(PublishError):
    """Media bytes could not be delivered to the upload endpoint."""


class ProcessingError(PublishError):
    """The remote side failed to process an uploaded video."""


class ProcessingTimeoutError(ProcessingError):
    """The remote side did not finish processing before the deadline."""


class PublishRejectedError(PublishError):
    """The Graph API refused the request or reported success=false."""

    def __init__(
        self,
        message: str,
        code: Optional[int] = None,
        error_type: Optional[str] = None
    ):
        self.code = code
        self.error_type = error_type
        details = ", ".join(str(part) for part in (code, error_type) if part)
        super().__init__(f"Facebook API: {message} ({details})" if details else f"Facebook API: {message}")
