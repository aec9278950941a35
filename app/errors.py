"""Domain error kinds and their HTTP status codes."""

from http import HTTPStatus


class AppError(Exception):
    """Base for every error the API reports with a structured body."""

    status: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR
    message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class ValidationFailure(AppError):
    status = HTTPStatus.BAD_REQUEST
    message = "Validation Failure"

    def __init__(self, validation_errors: dict[str, str]) -> None:
        super().__init__()
        self.validation_errors = dict(validation_errors)


class AuthenticationFailure(AppError):
    status = HTTPStatus.UNAUTHORIZED
    message = "Incorrect credentionals"


class ForbiddenError(AppError):
    status = HTTPStatus.FORBIDDEN
    message = "Forbidden"


class NotFoundError(AppError):
    status = HTTPStatus.NOT_FOUND
    message = "Not found"


class InvalidTokenError(AppError):
    status = HTTPStatus.BAD_REQUEST
    message = "This account is either active or the token is invalid"


class EmailFailure(AppError):
    status = HTTPStatus.BAD_GATEWAY
    message = "E-mail Failure"
