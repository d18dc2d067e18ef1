"""Exception types for scan errors.

This module defines the exception hierarchy for feed scanning. Fetch and
transport failures are fatal to a scan and propagate to the caller.
Field-level problems (MalformedField) and record validation problems
(DataFormatAssumptionException) are recovered inside the engine.
"""

from typing import Any


class FeedScanException(Exception):
    """Base class for all feedscan errors."""

    pass


class FetchFailed(FeedScanException):
    """Raised when the upstream response has a non-2xx status code.

    Scanning never starts for such a response, so no records are produced.

    Attributes:
        status_code: The HTTP status code received.
        url: The URL that returned the status.
        message: Human-readable error message.
    """

    def __init__(self, status_code: int, url: str) -> None:
        """Initialize the exception.

        Args:
            status_code: The actual status code received.
            url: The URL of the request.
        """
        self.status_code = status_code
        self.url = url
        self.message = f"HTTP {status_code} from {url} (expected 2xx)"
        super().__init__(self.message)


class StreamError(FeedScanException):
    """Raised when the event source fails while a document is being scanned.

    Malformed markup never raises this; only a failure of the underlying
    chunk or event stream does.
    """

    def __init__(self, message: str, url: str = "") -> None:
        self.message = message
        self.url = url
        super().__init__(message)


class TransportError(StreamError):
    """Raised when the response body stream is interrupted mid-read.

    Attributes:
        url: The URL being read.
        cause: The underlying exception.
    """

    def __init__(self, url: str, cause: BaseException) -> None:
        """Initialize the exception.

        Args:
            url: The URL being read when the stream failed.
            cause: The exception raised by the transport.
        """
        self.cause = cause
        super().__init__(
            f"Transport error while reading {url}: "
            f"{type(cause).__name__}: {cause}",
            url,
        )


class FetchTimeout(TransportError):
    """Raised when fetching or reading a response times out.

    Attributes:
        url: The URL that timed out.
        timeout_seconds: The configured timeout in seconds.
    """

    def __init__(
        self, url: str, timeout_seconds: float | None, cause: BaseException
    ) -> None:
        self.timeout_seconds = timeout_seconds
        super().__init__(url, cause)
        self.message = f"Request to {url} timed out after {timeout_seconds}s"
        self.args = (self.message,)


class MalformedField(FeedScanException):
    """Raised when a single field can't be derived cleanly.

    Never escapes the engine. Extractors catch it and degrade the field to a
    sentinel value; the record is then subject to the normal validity check.
    """

    def __init__(
        self,
        field: str,
        value: str,
        reason: str,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            field: Name of the field being derived.
            value: The raw value that failed.
            reason: Human-readable description of the failure.
            context: Optional dict of additional context.
        """
        self.field = field
        self.value = value
        self.reason = reason
        self.context = context or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        parts = [f"Could not derive '{self.field}' from {self.value!r}: {self.reason}"]
        if self.context:
            parts.append("Context:")
            for key, value in self.context.items():
                parts.append(f"  {key}: {value}")
        return "\n".join(parts)


class DataFormatAssumptionException(FeedScanException):
    """Raised when an assembled record doesn't match its model.

    The assembler catches this and discards the scratch record.
    """

    def __init__(
        self,
        errors: list[dict[str, Any]],
        failed_doc: dict[str, Any],
        model_name: str,
        request_url: str,
        assembler: str = "",
    ) -> None:
        """Initialize the exception.

        Args:
            errors: List of Pydantic validation errors.
            failed_doc: The scratch record that failed validation.
            model_name: Name of the Pydantic model validated against.
            request_url: The URL of the document being scanned.
            assembler: Name of the assembler whose record was rejected.
        """
        self.errors = errors
        self.failed_doc = failed_doc
        self.model_name = model_name
        self.request_url = request_url
        self.assembler = assembler

        error_summary = ", ".join(
            f"{err['loc'][0] if err.get('loc') else '?'}: {err['msg']}"
            for err in errors
        )
        self.message = (
            f"Data validation failed for model '{model_name}': {error_summary}"
        )
        super().__init__(self.message)
