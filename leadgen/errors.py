"""
Error taxonomy for the lead pipeline.

Routes map these onto HTTP status codes; everything else is a generic 500.
"""
from typing import Any, List, Optional


class LeadGenError(Exception):
    """Base class for every error the pipeline raises on purpose."""


class RequestValidationError(LeadGenError):
    """Mandatory baseline facets are missing from the request."""
    def __init__(self, missing_fields: List[str]):
        self.missing_fields = list(missing_fields)
        super().__init__(
            "Bad Request: Missing mandatory baseline fields for Tier 1 search: "
            f"{', '.join(self.missing_fields)}. Please check your request payload."
        )


class ConfigurationError(LeadGenError):
    """A credential the pipeline cannot run without is not configured."""
    def __init__(self, setting: str, reason: str = ''):
        self.setting = setting
        message = f"Configuration Error: {setting} is missing"
        if reason:
            message += f", which is required for {reason}"
        super().__init__(message + '.')


class UpstreamError(LeadGenError):
    """An outbound call to a search or model provider failed."""


class FatalUpstreamError(UpstreamError):
    """Client error (4xx other than 429). Retrying cannot help."""
    def __init__(self, status: int, body: Any = None, label: str = ''):
        self.status = status
        self.body = body
        self.label = label
        prefix = f"{label}: " if label else ''
        super().__init__(f"{prefix}API Fatal Error: Status {status}")


class RetryExhaustedError(UpstreamError):
    """Transient failures persisted through every allowed attempt."""
    def __init__(self, attempts: int, last_status: Optional[int] = None,
                 last_error: Optional[BaseException] = None, label: str = ''):
        self.attempts = attempts
        self.last_status = last_status
        self.last_error = last_error
        self.label = label
        detail = f"Status: {last_status}" if last_status else f"Cause: {last_error}"
        prefix = f"{label}: " if label else ''
        super().__init__(f"{prefix}Max retries reached after {attempts} attempts. {detail}")


class PipelineTimeoutError(LeadGenError):
    """The overall wall-clock budget for a synchronous run ran out."""
    def __init__(self, stage: str, deadline_seconds: float):
        self.stage = stage
        self.deadline_seconds = deadline_seconds
        super().__init__(
            f"Pipeline deadline of {deadline_seconds:.0f}s exceeded during {stage}"
        )
