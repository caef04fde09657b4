from typing import Optional


class ShareHubException(Exception):
    """Base exception for the application"""
    status_code = 500
    message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class AuthenticationError(ShareHubException):
    """Authentication related errors"""
    status_code = 401
    message = "Not authorized to access this route"


class ValidationError(ShareHubException):
    """Validation related errors"""
    status_code = 400
    message = "Invalid request"


class NotFoundError(ShareHubException):
    """Resource not found errors"""
    status_code = 404
    message = "Resource not found"


class ConflictError(ShareHubException):
    """Resource conflict errors"""
    status_code = 409
    message = "Resource already exists"


class FileTooLargeError(ShareHubException):
    """Upload exceeds the configured size limit"""
    status_code = 413
    message = "File too large"


class FileOperationError(ShareHubException):
    """File operation related errors"""
    status_code = 500
    message = "File operation failed"
