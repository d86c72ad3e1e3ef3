class AuthError(Exception):
    """Base for failures the auth endpoints report to the client."""

    code = "AuthError"
    status_code = 400
    default_message = "Authentication failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class InvalidPhone(AuthError):
    code = "InvalidPhone"
    default_message = "Phone must be in E.164 format, e.g. +9715xxxxxxxx"


class InvalidInput(AuthError):
    code = "InvalidInput"
    default_message = "Phone and 6-digit code are required"


class RateLimited(AuthError):
    code = "RateLimited"
    status_code = 429
    default_message = "Too many OTP requests. Try later."

    def __init__(self, retry_after_seconds: int, message: str | None = None) -> None:
        super().__init__(message)
        self.retry_after_seconds = retry_after_seconds


class InvalidOrExpiredCode(AuthError):
    code = "InvalidOrExpiredCode"
    default_message = "Invalid or expired OTP"


class ProviderUnavailable(AuthError):
    code = "ProviderUnavailable"
    status_code = 503
    default_message = "SMS provider is unavailable, try again"


class Unauthorized(AuthError):
    code = "Unauthorized"
    status_code = 401
    default_message = "Unauthorized"


class Forbidden(AuthError):
    code = "Forbidden"
    status_code = 403
    default_message = "Admin access only"
