"""Domain exception hierarchy for MLBuild.

Services raise these instead of bare ``ValueError`` so that the global
exception handler can map them to the correct HTTP status code without
fragile string matching.
"""


class CatalogError(Exception):
    """Base for all domain exceptions."""

    def __init__(self, message: str = "An unexpected error occurred", *, status_code: int = 500):
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(CatalogError):
    """Resource not found (404).

    Also used for resources that exist but belong to someone else, so
    that callers cannot test for foreign ids.
    """

    def __init__(self, message: str = "Not found"):
        super().__init__(message, status_code=404)


class BadRequestError(CatalogError):
    """Client sent an invalid request (400)."""

    def __init__(self, message: str = "Bad request"):
        super().__init__(message, status_code=400)


class ValidationError(BadRequestError):
    """Missing or malformed input, e.g. no title or no image (400)."""

    def __init__(self, message: str = "Validation failed"):
        super().__init__(message)


class QuotaExceededError(BadRequestError):
    """Per-user, per-hero build cap reached (400)."""

    def __init__(self, message: str = "Maximum 3 builds allowed per hero"):
        super().__init__(message)


class ConflictError(CatalogError):
    """Display-order collision within an (owner, hero) scope (409).

    Raised by the build repository on a unique violation.  The build
    service retries once before letting it through.
    """

    def __init__(self, message: str = "Build order conflict"):
        super().__init__(message, status_code=409)


class AuthError(CatalogError):
    """Authentication or authorization failure (401/403)."""

    def __init__(self, message: str = "Not authorized", *, status_code: int = 401):
        super().__init__(message, status_code=status_code)


def format_error_response(
    *,
    error: str,
    detail: object = None,
    request_id: str = "",
) -> dict:
    """Build a structured error response dict.

    Parameters
    ----------
    error : str
        Short error title (e.g. ``"Internal Server Error"``).
    detail : object
        Human-readable detail string or validation error list.
    request_id : str
        The request ID for tracing.

    Returns
    -------
    dict
        ``{"error": ..., "detail": ..., "request_id": ...}``
    """
    return {
        "error": error,
        "detail": detail if detail is not None else error,
        "request_id": request_id,
    }
