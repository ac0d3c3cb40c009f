"""Exception hierarchy for capture and translation failures.

WHY: Callers must tell recoverable provider failures (handled by the
fallback) apart from configuration mistakes (surfaced immediately) and
capture gaps (handled by adapter fallback). Typed exceptions make each
recovery path explicit.

HOW: All exceptions derive from CaptionTranslatorError. ProviderError
carries a ProviderErrorKind and optional HTTP status code.

RULES:
- ProviderError is recovered locally (fallback) or reported as provider "error"
- MissingCredentialError is never silently downgraded to another provider
- CaptureUnavailableError is not fatal; it triggers adapter fallback/retry
- StaleResponseError never reaches the user; stale results are dropped
"""

from __future__ import annotations

import enum
from typing import Optional


class ProviderErrorKind(str, enum.Enum):
    """Why a provider call failed."""

    NETWORK = "network"
    TIMEOUT = "timeout"
    MALFORMED_RESPONSE = "malformed-response"
    HTTP_STATUS = "http-status"


class CaptionTranslatorError(Exception):
    """Base class for all errors raised by this package."""


class ProviderError(CaptionTranslatorError):
    """Raised when a translation provider call fails.

    WHY: The orchestrator falls back from the primary to the secondary
    provider on *any* provider failure; a single exception type keeps
    that catch clause honest.

    RULES:
    - kind is always set
    - status_code is only set for HTTP_STATUS failures
    - detail is the response body or a short summary
    """

    def __init__(
        self,
        kind: ProviderErrorKind,
        detail: str,
        provider: str = "",
        status_code: Optional[int] = None,
    ) -> None:
        self.kind = kind
        self.detail = detail
        self.provider = provider
        self.status_code = status_code
        prefix = "{} ".format(provider) if provider else ""
        if status_code is not None:
            message = "{}API error {}: {}".format(prefix, status_code, detail)
        else:
            message = "{}{} error: {}".format(prefix, kind.value, detail)
        super().__init__(message)


class MissingCredentialError(CaptionTranslatorError):
    """Raised when the forced-primary strategy is used without an API key."""


class CaptureUnavailableError(CaptionTranslatorError):
    """Raised when no qualifying structured caption track exists."""


class StaleResponseError(CaptionTranslatorError):
    """Raised when a translation arrives for a line that is no longer shown,
    or after a newer translation of the same line was requested."""

    def __init__(
        self,
        line_id: int,
        current_line_id: Optional[int],
        request_id: Optional[int] = None,
    ) -> None:
        self.line_id = line_id
        self.current_line_id = current_line_id
        self.request_id = request_id
        if line_id == current_line_id:
            message = "Translation request {} for line {} was superseded by a newer request".format(
                request_id, line_id
            )
        else:
            message = "Translation for line {} arrived after line {} replaced it".format(
                line_id, current_line_id
            )
        super().__init__(message)
