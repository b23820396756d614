"""
Helper utilities
"""

import os
import logging
import uuid
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Optional, Dict, Any
from dateutil.relativedelta import relativedelta
from flask import current_app


def setup_logging() -> None:
    """Setup application logging"""
    if not current_app.debug:
        # Production logging
        logging.basicConfig(
            level=logging.INFO,
            format='%(asctime)s %(levelname)s %(name)s %(message)s'
        )
    else:
        # Development logging
        logging.basicConfig(
            level=logging.DEBUG,
            format='%(asctime)s %(levelname)s %(name)s %(message)s'
        )


def log_error(message: str, exception: Optional[Exception] = None) -> None:
    """
    Log error message

    Args:
        message: Error message
        exception: Exception object
    """
    if exception:
        current_app.logger.error(f"{message}: {str(exception)}")
    else:
        current_app.logger.error(message)


def log_info(message: str) -> None:
    """
    Log info message

    Args:
        message: Info message
    """
    current_app.logger.info(message)


def ensure_directory_exists(directory_path: str) -> None:
    """
    Ensure directory exists, create if it doesn't

    Args:
        directory_path: Path to directory
    """
    if not os.path.exists(directory_path):
        os.makedirs(directory_path, exist_ok=True)


def create_response(success: bool, message: str, data: Optional[Any] = None) -> Dict[str, Any]:
    """
    Create standardized API response

    Args:
        success: Whether operation was successful
        message: Response message
        data: Optional data to include

    Returns:
        Standardized response dictionary
    """
    response = {
        'ok': success,
        'message': message
    }

    if data is not None:
        response['data'] = data

    return response


def generate_payment_reference() -> str:
    """Unique gateway reference, e.g. KM_MEDIA_3F2A9C0D1E4B5A6C"""
    return f"KM_MEDIA_{uuid.uuid4().hex[:16].upper()}"


def to_money(value: Optional[Decimal]) -> Optional[float]:
    """Serialize a Numeric column for JSON"""
    if value is None:
        return None
    return float(value)


def add_plan_period(start: date, payment_plan: str) -> date:
    """
    Advance a due date by one installment period

    Args:
        start: Current due date
        payment_plan: weekly, monthly or quarterly

    Returns:
        The next due date
    """
    if payment_plan == 'weekly':
        return start + timedelta(weeks=1)
    if payment_plan == 'quarterly':
        return start + relativedelta(months=3)
    return start + relativedelta(months=1)


def utcnow() -> datetime:
    return datetime.utcnow()


def today() -> date:
    return utcnow().date()
