class TodoError(Exception):
    """Base class for errors reported back to the user.

    ``status_code`` is what the HTTP API answers with when the error escapes a
    route, and what the client maps back to the same class.
    """

    default_message = "Something went wrong"
    status_code = 500

    def __init__(self, message: str = ""):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(TodoError):
    default_message = "Invalid input"
    status_code = 400


class AuthError(TodoError):
    default_message = "Not authenticated"
    status_code = 401


class InvalidToken(AuthError):
    default_message = "Invalid token"


class NotFoundError(TodoError):
    default_message = "Task not found"
    status_code = 404


class ParentNotFound(NotFoundError):
    default_message = "Parent task not found"


class UpstreamError(TodoError):
    default_message = "Upstream service failed"
    status_code = 502
