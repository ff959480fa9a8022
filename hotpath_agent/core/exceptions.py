"""
Error taxonomy for the hotpath agent.

IngestError is surfaced to the HTTP caller; CredentialError and
SubmissionError abort a single flush attempt and are logged.
"""

from typing import List, Optional


class HotpathAgentError(Exception):
    """Base class for all agent errors."""


class IngestError(HotpathAgentError):
    """Inbound sample batch was rejected (bad body or missing metadata)."""

    def __init__(self, detail: str, status_code: int = 400):
        super().__init__(detail)
        self.detail = detail
        self.status_code = status_code


class CredentialError(HotpathAgentError):
    """Credentials missing, or the token exchange failed."""


class SubmissionError(HotpathAgentError):
    """Base class for failures while sending samples to the API server."""


class TransportError(SubmissionError):
    """Connection failure, non-2xx status, or malformed response envelope."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RemoteError(SubmissionError):
    """The API server answered but reported one or more GraphQL errors."""

    def __init__(self, message: str, errors: Optional[List] = None):
        super().__init__(f"graphql error: {message}")
        self.message = message
        self.errors = errors or []
