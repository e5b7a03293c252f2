from fastapi import status


class AuthError(Exception):
    """Base error for the authentication core.

    Each subclass carries the message and HTTP status used when it reaches
    the API boundary unchanged.
    """

    message = "Authentication failed"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.message
        super().__init__(self.message)


class ValidationError(AuthError):
    message = "Invalid request"


class InvalidConfiguration(AuthError):
    message = "Invalid configuration"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class UserNotFound(AuthError):
    message = "User not found, redirect to signup"


class UserAlreadyExists(AuthError):
    message = "User already exists, redirect to login"


class InvalidOrExpiredOtp(AuthError):
    message = "Invalid or expired OTP"


class InvalidOtp(AuthError):
    message = "Invalid OTP"


class InvalidPassword(AuthError):
    message = "Invalid password"


class InvalidToken(AuthError):
    message = "Invalid token"
    status_code = status.HTTP_401_UNAUTHORIZED


class InvalidRefreshToken(InvalidToken):
    message = "Invalid refresh token"


class RefreshTokenNotFound(InvalidToken):
    message = "Refresh token not found"


class PermissionDenied(AuthError):
    message = "Forbidden"
    status_code = status.HTTP_403_FORBIDDEN
