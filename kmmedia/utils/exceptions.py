"""
Custom exceptions for the KM Media application
"""


class KMMediaException(Exception):
    """Base exception for KM Media application"""
    status_code = 500

    def __init__(self, message: str = None, status_code: int = None):
        super().__init__(message or self.__class__.__doc__)
        if status_code is not None:
            self.status_code = status_code


class ValidationError(KMMediaException):
    """Validation error"""
    status_code = 400


class AuthenticationError(KMMediaException):
    """Authentication required"""
    status_code = 401


class AuthorizationError(KMMediaException):
    """Insufficient permissions"""
    status_code = 403


class NotFoundError(KMMediaException):
    """Resource not found"""
    status_code = 404


class ConflictError(KMMediaException):
    """Resource conflict"""
    status_code = 409


class EmailError(KMMediaException):
    """Email service error"""
    pass


class FileUploadError(KMMediaException):
    """File upload error"""
    status_code = 400


class PaymentError(KMMediaException):
    """Payment processing error"""
    status_code = 400


class PaymentGatewayError(PaymentError):
    """Payment gateway unavailable"""
    status_code = 502
