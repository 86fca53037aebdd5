"""Exception types for extraction errors.

This module defines the exception hierarchy raised while locating the
aircraft table, normalizing its rows, exporting snapshots and validating
configuration. All of them are recoverable at the scheduler level: a failed
extraction cycle is reported, never fatal.
"""

from typing import Any


class ExtractorException(Exception):
    """Base class for extraction errors.

    Carries a human-readable message, the URL (or path) of the page being
    read when the error happened, and an optional context dict that is
    rendered into the exception string.
    """

    def __init__(
        self,
        message: str,
        source_url: str = "",
        context: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable description of the failure.
            source_url: The page URL or file path that was being read.
            context: Optional dict of additional context (selector, counts, etc).
        """
        self.message = message
        self.source_url = source_url
        self.context = context or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the error message with context.

        Returns:
            Formatted error message string.
        """
        parts = [self.message]
        if self.source_url:
            parts.append(f"Source: {self.source_url}")

        if self.context:
            parts.append("Context:")
            for key, value in self.context.items():
                parts.append(f"  {key}: {value}")

        return "\n".join(parts)


class HTMLStructuralAssumptionException(ExtractorException):
    """Raised when the page structure doesn't match expectations.

    Raised when an XPath or CSS selector returns a different number of
    elements than expected, which usually means the page layout changed.

    Attributes:
        selector: The XPath or CSS selector that was used.
        selector_type: Type of selector ("xpath" or "css").
        description: What the selector was meant to find.
        expected_min: Minimum number of elements expected.
        expected_max: Maximum number of elements expected (None = unlimited).
        actual_count: Number of elements actually found.
    """

    def __init__(
        self,
        selector: str,
        selector_type: str,
        description: str,
        expected_min: int,
        expected_max: int | None,
        actual_count: int,
        source_url: str = "",
    ) -> None:
        self.selector = selector
        self.selector_type = selector_type
        self.description = description
        self.expected_min = expected_min
        self.expected_max = expected_max
        self.actual_count = actual_count

        if expected_max is None:
            expected_str = f"at least {expected_min}"
        elif expected_min == expected_max:
            expected_str = f"exactly {expected_min}"
        else:
            expected_str = f"between {expected_min} and {expected_max}"

        message = (
            f"HTML structure mismatch: Expected {expected_str} "
            f"elements for '{description}', but found {actual_count}"
        )

        context = {
            "selector": selector,
            "selector_type": selector_type,
            "expected_min": expected_min,
            "expected_max": expected_max
            if expected_max is not None
            else "unlimited",
            "actual_count": actual_count,
        }

        super().__init__(message, source_url, context)


class SourceNotFoundException(ExtractorException):
    """Raised when the aircraft table cannot be located at all.

    The extraction cycle aborts without producing a snapshot. This is the
    usual symptom of running against the wrong page or before the page
    finished rendering.
    """

    def __init__(self, table_id: str = "", source_url: str = "") -> None:
        self.table_id = table_id
        message = (
            f"Could not find the table '{table_id}'"
            if table_id
            else "Could not find the table"
        )
        super().__init__(
            message,
            source_url,
            {"table_id": table_id} if table_id else None,
        )


class EmptyExtractionException(ExtractorException):
    """Raised when the table is present but yields no usable rows.

    Treated exactly like SourceNotFoundException by the scheduler.
    """

    def __init__(self, row_count: int = 0, source_url: str = "") -> None:
        self.row_count = row_count
        super().__init__(
            "No aircraft found in the table",
            source_url,
            {"rows_seen": row_count},
        )


class ExportFailureException(ExtractorException):
    """Raised when an export sink could not persist a file.

    The snapshot that was being exported stays in the history; the
    scheduler keeps running.

    Attributes:
        filename: Name of the file that failed to export.
        mime_type: MIME type of the content.
    """

    def __init__(
        self, filename: str, mime_type: str, cause: BaseException
    ) -> None:
        self.filename = filename
        self.mime_type = mime_type
        self.cause = cause
        super().__init__(
            f"Failed to export {filename}: {cause}",
            context={
                "mime_type": mime_type,
                "error_type": type(cause).__name__,
            },
        )


class InvalidConfigurationException(ExtractorException):
    """Raised when configuration values are rejected.

    The previous configuration is always retained when this is raised.

    Attributes:
        errors: List of pydantic validation errors (or hand-built dicts with
            the same ``loc``/``msg`` keys).
        values: The values that were rejected.
    """

    def __init__(
        self,
        errors: list[dict[str, Any]],
        values: dict[str, Any],
    ) -> None:
        self.errors = errors
        self.values = values

        error_summary = ", ".join(
            f"{err['loc'][0] if err.get('loc') else 'config'}: {err['msg']}"
            for err in errors
        )
        super().__init__(
            f"Invalid configuration: {error_summary}",
            context={"error_count": len(errors), "values": values},
        )


class TransientException(Exception):
    """Base class for errors that might resolve on the next cycle.

    Network hiccups, 5xx responses and browser timeouts fall into this
    category. The scheduler reports them and tries again on the next tick.
    """

    pass


class PageFetchException(TransientException):
    """Raised when the page holding the table could not be fetched.

    Attributes:
        url: The URL that failed.
        status_code: HTTP status code, if a response was received.
        message: Human-readable error message.
    """

    def __init__(
        self, url: str, reason: str, status_code: int | None = None
    ) -> None:
        self.url = url
        self.status_code = status_code
        self.message = f"Could not fetch {url}: {reason}"
        super().__init__(self.message)
