class AuthError(Exception):
    """Base class for failures of a single login request."""

    message = "Authentication failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)
        self.message = message or self.message


class InvalidCredentials(AuthError):
    # Shared by unknown usernames and wrong passwords.
    message = "Invalid username or password"


class DeliveryFailure(AuthError):
    message = "Unable to send verification code"


class InvalidOrExpiredCode(AuthError):
    # Shared by wrong, consumed and expired codes.
    message = "Invalid or expired OTP"


class InputValidationError(AuthError):
    message = "Invalid input"
