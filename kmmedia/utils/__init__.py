"""
Utilities package initialization
"""

from kmmedia.utils.exceptions import (
    KMMediaException, ValidationError, AuthenticationError, AuthorizationError,
    NotFoundError, ConflictError, EmailError, FileUploadError,
    PaymentError, PaymentGatewayError
)
from kmmedia.utils.validators import (
    validate_email, validate_password, validate_required, validate_string_length,
    validate_phone_number, validate_file_extension, validate_choice,
    parse_int, parse_amount, parse_date, parse_datetime
)
from kmmedia.utils.helpers import (
    setup_logging, log_error, log_info, ensure_directory_exists, create_response,
    generate_payment_reference, to_money, add_plan_period, utcnow, today
)

__all__ = [
    'KMMediaException', 'ValidationError', 'AuthenticationError', 'AuthorizationError',
    'NotFoundError', 'ConflictError', 'EmailError', 'FileUploadError',
    'PaymentError', 'PaymentGatewayError',
    'validate_email', 'validate_password', 'validate_required', 'validate_string_length',
    'validate_phone_number', 'validate_file_extension', 'validate_choice',
    'parse_int', 'parse_amount', 'parse_date', 'parse_datetime',
    'setup_logging', 'log_error', 'log_info', 'ensure_directory_exists', 'create_response',
    'generate_payment_reference', 'to_money', 'add_plan_period', 'utcnow', 'today'
]
