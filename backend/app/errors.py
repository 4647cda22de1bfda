"""Error taxonomy shared by the stores, the delivery engine and the routers.

Every error carries a human-readable message, a short machine code (sent to
WebSocket clients) and the HTTP status the REST surface answers with.
"""


class CoreError(Exception):
    """Base exception for the real-time core."""
    code = "error"

    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class AuthRejected(CoreError):
    """Raised when a bearer credential is missing, malformed or expired."""
    code = "auth_rejected"

    def __init__(self, message: str = "Auth error (Invalid token)"):
        super().__init__(message, status_code=401)


class InvalidRequest(CoreError):
    """Raised for malformed payloads and forbidden shapes such as self-chat."""
    code = "invalid_request"

    def __init__(self, message: str):
        super().__init__(message, status_code=400)


class NotFound(CoreError):
    """Raised when a resource is missing OR not visible to the requester.

    The two cases are deliberately indistinguishable.
    """
    code = "not_found"

    def __init__(self, message: str = "Not found"):
        super().__init__(message, status_code=404)


class PersistenceFailure(CoreError):
    """Raised when a storage write fails."""
    code = "persistence_failure"

    def __init__(self, message: str):
        super().__init__(f"Storage error: {message}", status_code=500)
