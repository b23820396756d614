"""
Course registration (enrollment) service
"""

from typing import Any, Dict, List, Optional
from flask import current_app
from kmmedia.models import db, Course, Registration, Payment, User
from kmmedia.models.registration import REGISTRATION_STATUSES, APPLICATION_FIELDS
from kmmedia.services.notification_service import NotificationService
from kmmedia.utils.exceptions import (
    ValidationError, AuthorizationError, NotFoundError, ConflictError
)
from kmmedia.utils.validators import (
    validate_email, validate_required, validate_choice, parse_date, parse_int
)

# Statuses that hold a seat in the course
SEAT_STATUSES = ('pending', 'approved')

STATUS_MESSAGES = {
    'pending': "Your application for {course} is pending review.",
    'approved': "Congratulations! Your application for {course} has been approved. "
                "You now have access to the course materials.",
    'rejected': "Your application for {course} was not successful.",
    'completed': "You have completed {course}. Well done!"
}


class RegistrationService:
    """Registration service class"""

    @staticmethod
    def _clean_application(data: Dict[str, Any]) -> Dict[str, Any]:
        """Pick and normalise the application form fields"""
        fields = {}
        for field in APPLICATION_FIELDS:
            value = data.get(field)
            if isinstance(value, str):
                value = value.strip() or None
            fields[field] = value

        if fields.get('email') and not validate_email(fields['email']):
            raise ValidationError("Invalid email format")
        fields['date_of_birth'] = parse_date(fields.get('date_of_birth'), 'Date of birth')
        for field in ('year_attended_from', 'year_attended_to'):
            if fields.get(field) is not None:
                fields[field] = parse_int(fields[field], field.replace('_', ' ').capitalize(),
                                          min_value=1900, max_value=2100)
        if (fields.get('year_attended_from') and fields.get('year_attended_to')
                and fields['year_attended_from'] > fields['year_attended_to']):
            raise ValidationError("Year attended from cannot be after year attended to")
        return fields

    @staticmethod
    def seats_taken(course_id: int) -> int:
        return Registration.query.filter(
            Registration.course_id == course_id,
            Registration.status.in_(SEAT_STATUSES)
        ).count()

    @staticmethod
    def apply(user: User, course_id: int, data: Dict[str, Any]) -> Registration:
        """
        Submit an application for a course

        Args:
            user: Applying student
            course_id: Course applied for
            data: Application form (personal, education and guardian details)

        Returns:
            The pending registration
        """
        course = db.session.get(Course, course_id) if course_id else None
        if not course or not course.is_active:
            raise NotFoundError("Course not found or inactive")

        if Registration.query.filter_by(user_id=user.id, course_id=course.id).first():
            raise ConflictError("You have already applied for this course")

        if RegistrationService.seats_taken(course.id) >= course.max_students:
            raise ValidationError("This course is full")

        fields = RegistrationService._clean_application(data)
        validate_required(fields.get('declaration'), 'Declaration')
        fields['first_name'] = fields.get('first_name') or user.first_name
        fields['last_name'] = fields.get('last_name') or user.last_name
        fields['email'] = fields.get('email') or user.email
        fields['full_name'] = fields.get('full_name') or f"{fields['first_name']} {fields['last_name']}"
        fields['preferred_course'] = fields.get('preferred_course') or course.name

        registration = Registration(user_id=user.id, course_id=course.id, status='pending', **fields)
        db.session.add(registration)
        db.session.commit()
        current_app.logger.info(f"User {user.id} applied for course {course.id}")
        return registration

    @staticmethod
    def ensure_from_payment(payment: Payment) -> Registration:
        """
        Open a pending registration for a paid application fee.

        Existing registrations are left untouched. Does not commit.
        """
        registration = Registration.query.filter_by(
            user_id=payment.user_id, course_id=payment.course_id
        ).first()
        if registration is not None:
            return registration

        metadata = payment.payment_metadata or {}
        user = payment.user
        first_name = metadata.get('first_name') or user.first_name
        last_name = metadata.get('last_name') or user.last_name
        registration = Registration(
            user_id=payment.user_id,
            course_id=payment.course_id,
            status='pending',
            first_name=first_name,
            last_name=last_name,
            full_name=f"{first_name} {last_name}",
            email=user.email,
            phone=metadata.get('phone') or user.phone,
            preferred_course=payment.course.name if payment.course else None,
            notes=f"Application submitted with payment reference: {payment.reference}"
        )
        db.session.add(registration)
        current_app.logger.info(
            f"Created registration for user {payment.user_id} course {payment.course_id} "
            f"from payment {payment.reference}"
        )
        return registration

    @staticmethod
    def check(user: User, course_id: int) -> Optional[Registration]:
        return Registration.query.filter_by(user_id=user.id, course_id=course_id).first()

    @staticmethod
    def list_for_user(user: User) -> List[Registration]:
        return (Registration.query
                .filter_by(user_id=user.id)
                .order_by(Registration.created_at.desc(), Registration.id.desc())
                .all())

    @staticmethod
    def get_or_404(registration_id: int) -> Registration:
        registration = db.session.get(Registration, registration_id)
        if not registration:
            raise NotFoundError("Registration not found")
        return registration

    @staticmethod
    def cancel(user: User, registration_id: int) -> None:
        """Withdraw a pending application"""
        registration = RegistrationService.get_or_404(registration_id)
        if registration.user_id != user.id:
            raise AuthorizationError("You can only cancel your own registration")
        if registration.status != 'pending':
            raise ValidationError("Only pending registrations can be cancelled")
        db.session.delete(registration)
        db.session.commit()
        current_app.logger.info(f"User {user.id} cancelled registration {registration_id}")

    @staticmethod
    def list_all(status: Optional[str] = None, course_id: Optional[int] = None) -> List[Registration]:
        query = Registration.query
        if status:
            validate_choice(status, REGISTRATION_STATUSES, 'Status')
            query = query.filter(Registration.status == status)
        if course_id:
            query = query.filter(Registration.course_id == course_id)
        return query.order_by(Registration.created_at.desc(), Registration.id.desc()).all()

    @staticmethod
    def update_status(registration_id: int, status: str, acting_user: User,
                      notes: Optional[str] = None) -> Registration:
        """
        Change a registration's status and notify the student

        Args:
            registration_id: Registration to update
            status: pending, approved, rejected or completed
            acting_user: Administrator making the change
            notes: Optional note stored on the registration

        Returns:
            The updated registration
        """
        validate_choice(status, REGISTRATION_STATUSES, 'Status')
        registration = RegistrationService.get_or_404(registration_id)

        if status == 'approved' and registration.status not in SEAT_STATUSES:
            course = registration.course
            if RegistrationService.seats_taken(course.id) >= course.max_students:
                raise ValidationError("This course is full")

        previous = registration.status
        registration.status = status
        if notes:
            registration.notes = notes

        if previous != status:
            course_name = registration.course.name if registration.course else 'your course'
            NotificationService.notify(
                registration.student,
                'registration',
                f"Registration {status}",
                STATUS_MESSAGES[status].format(course=course_name)
            )
        db.session.commit()
        current_app.logger.info(
            f"User {acting_user.id} changed registration {registration.id}: {previous} -> {status}"
        )
        return registration
