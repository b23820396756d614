"""
Public course enquiries
"""

from typing import Any, Dict, List
from flask import current_app
from kmmedia.models import db, Enquiry
from kmmedia.utils.exceptions import ValidationError
from kmmedia.utils.validators import (
    validate_email, validate_required, validate_string_length, validate_phone_number
)


class EnquiryService:
    """Enquiry service class"""

    @staticmethod
    def submit(data: Dict[str, Any]) -> Enquiry:
        validate_required(data.get('name'), 'Name')
        validate_required(data.get('message'), 'Message')
        validate_string_length(str(data['message']), 5, 5000, 'Message')
        email = (data.get('email') or '').strip().lower()
        if not validate_email(email):
            raise ValidationError("Invalid email format")
        phone = (data.get('phone') or '').strip() or None
        if phone and not validate_phone_number(phone):
            raise ValidationError("Invalid phone number")

        enquiry = Enquiry(
            name=str(data['name']).strip(),
            email=email,
            phone=phone,
            course_interest=data.get('course_interest'),
            message=str(data['message']).strip()
        )
        db.session.add(enquiry)
        db.session.commit()
        current_app.logger.info(f"Enquiry {enquiry.id} received from {email}")
        return enquiry

    @staticmethod
    def list_all() -> List[Enquiry]:
        return Enquiry.query.order_by(Enquiry.created_at.desc(), Enquiry.id.desc()).all()
