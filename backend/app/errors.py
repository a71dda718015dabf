"""
Client-facing pagination errors.

Every error carries a short machine-readable ``code``. Routers prefix it
with their own scope (``SEARCH_``, ``REVIEW_``, ``FEED_``) so callers can
tell a blank query from a malformed cursor from an out-of-range page size.
"""


class PaginationError(ValueError):
    code = "INVALID_REQUEST"

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        if code is not None:
            self.code = code

    def to_detail(self, scope: str) -> dict:
        return {"code": f"{scope}_{self.code}", "message": str(self)}


class InvalidQuery(PaginationError):
    """Blank search text, or page/page_size outside the allowed bounds."""

    code = "INVALID_QUERY"


class InvalidCursor(PaginationError):
    """Undecodable token, malformed payload, or a cursor issued for another sort mode."""

    code = "INVALID_CURSOR"
