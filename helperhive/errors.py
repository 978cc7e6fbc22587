"""Error kinds raised by the engagement services.

Each kind is an ``HTTPException`` so routers can let it propagate untouched;
``main`` renders the ``kind`` next to the detail message.
"""

from typing import Optional

from fastapi import HTTPException


class LifecycleError(HTTPException):
    status_code = 400
    kind = "Error"

    def __init__(self, detail: str, headers: Optional[dict] = None):
        super().__init__(status_code=type(self).status_code, detail=detail, headers=headers)


class NotFound(LifecycleError):
    status_code = 404
    kind = "NotFound"


class Forbidden(LifecycleError):
    status_code = 403
    kind = "Forbidden"


class InvalidTransition(LifecycleError):
    status_code = 409
    kind = "InvalidTransition"


class InvalidInput(LifecycleError):
    status_code = 400
    kind = "InvalidInput"


class NotEligible(LifecycleError):
    status_code = 409
    kind = "NotEligible"


class Conflict(LifecycleError):
    """Lost a race against a concurrent write; re-read before trying again."""

    status_code = 409
    kind = "Conflict"


class Unavailable(LifecycleError):
    status_code = 503
    kind = "Unavailable"
