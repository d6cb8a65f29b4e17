"""Error taxonomy of the banner engine.

Every error carries the HTTP status the API layer answers with. Handlers in
``bannerhub.main`` turn them into the ``{success: false, ...}`` envelope.
"""
from typing import Any, Optional


class BannerError(Exception):
    status_code = 400
    message = "Request failed"

    def __init__(self, message: Optional[str] = None, details: Any = None):
        self.message = message or self.message
        self.details = details
        super().__init__(self.message)


class ValidationError(BannerError):
    status_code = 400
    message = "Validation failed"


class InvalidTransition(ValidationError):
    message = "Transition not allowed"


class PriorityConflict(BannerError):
    status_code = 400

    def __init__(self, priority: Optional[int] = None, details: Any = None):
        self.priority = priority
        if priority is None:
            message = "Banner priority already in use by another active banner"
        else:
            message = f"Banner with priority {priority} already exists"
        super().__init__(message, details)


class NotFound(BannerError):
    status_code = 404
    message = "Banner not found"


class InvalidArgument(BannerError):
    status_code = 400
    message = "Invalid banner ID format"


class PersistenceError(BannerError):
    status_code = 500
    message = "Storage operation failed"
