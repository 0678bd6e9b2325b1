"""
Authentication-specific exceptions.
"""
from fastapi import status
from ..exceptions import AppException

class AuthException(AppException):
    """Base class for authentication exceptions."""
    def __init__(self, status_code: int, detail: str):
        super().__init__(status_code=status_code, detail=detail)

class InvalidCredentialsException(AuthException):
    """Exception raised when credentials are invalid."""
    def __init__(self, detail: str = "Invalid email or password"):
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)

class InvalidTokenException(AuthException):
    """Exception raised when token is missing, expired or malformed."""
    def __init__(self, detail: str = "Invalid or expired token"):
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)

class AccountDisabledException(AuthException):
    """Exception raised when a deactivated account tries to act."""
    def __init__(self, detail: str = "Account is disabled"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)
