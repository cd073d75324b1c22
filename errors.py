"""HTTP error taxonomy shared by all routers.

Every class is an ``HTTPException`` with a fixed status code, so FastAPI
renders it as ``{"detail": "<message>"}`` without a custom handler.
"""

from fastapi import HTTPException, status


class ValidationError(HTTPException):
    """Malformed or missing input."""

    def __init__(self, detail: str = "Invalid request"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class AuthError(HTTPException):
    """Bad credentials, missing/invalid/expired token or banned account."""

    def __init__(
        self,
        detail: str = "Not authenticated",
        status_code: int = status.HTTP_401_UNAUTHORIZED,
    ):
        headers = None
        if status_code == status.HTTP_401_UNAUTHORIZED:
            headers = {"WWW-Authenticate": "Bearer"}
        super().__init__(status_code=status_code, detail=detail, headers=headers)


class AuthorizationError(HTTPException):
    """Authenticated, but not allowed to touch this resource."""

    def __init__(self, detail: str = "Not authorized"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class NotFoundError(HTTPException):
    def __init__(self, detail: str = "Not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class ConflictError(HTTPException):
    def __init__(self, detail: str = "Already exists"):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)
