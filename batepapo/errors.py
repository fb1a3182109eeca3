class ChatError(Exception):
    """Base error; carries the HTTP status the transport should answer with."""

    status_code = 500

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ValidationError(ChatError):
    status_code = 422


class UnprocessableEntity(ChatError):
    status_code = 422


class BadRequest(ChatError):
    status_code = 400


class Conflict(ChatError):
    status_code = 409


class NotFound(ChatError):
    status_code = 404


class Unauthorized(ChatError):
    status_code = 401


class StoreError(ChatError):
    status_code = 500
