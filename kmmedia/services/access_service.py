"""
Role-based course access
"""

from typing import List, Optional
from flask import current_app
from kmmedia.models import db, Course, Registration, User
from kmmedia.services.registration_service import RegistrationService
from kmmedia.utils.exceptions import AuthorizationError, NotFoundError

# Registration statuses that open a course's content
ACCESS_STATUSES = ('approved', 'completed')


class AccessService:
    """Access control service class"""

    @staticmethod
    def has_access(user: Optional[User], course: Course) -> bool:
        """
        Check whether a user may read a course's content

        Admins always can, trainers when assigned to the course and
        students once their registration is approved or completed.
        """
        if user is None or course is None:
            return False
        if user.role == 'admin':
            return True
        if user.role == 'trainer':
            return course.instructor_id == user.id
        registration = Registration.query.filter_by(user_id=user.id, course_id=course.id).first()
        return registration is not None and registration.grants_access

    @staticmethod
    def can_manage(user: Optional[User], course: Course) -> bool:
        """Admins and the assigned trainer manage course content"""
        if user is None or course is None:
            return False
        if user.role == 'admin':
            return True
        return user.role == 'trainer' and course.instructor_id == user.id

    @staticmethod
    def require_access(user: User, course: Course) -> None:
        if not AccessService.has_access(user, course):
            raise AuthorizationError("You do not have access to this course")

    @staticmethod
    def require_manage(user: User, course: Course) -> None:
        if not AccessService.can_manage(user, course):
            raise AuthorizationError("You cannot manage this course")

    @staticmethod
    def grant_access(registration_id: int, admin: User) -> Registration:
        return RegistrationService.update_status(registration_id, 'approved', admin)

    @staticmethod
    def revoke_access(registration_id: int, admin: User) -> Registration:
        return RegistrationService.update_status(registration_id, 'rejected', admin)

    @staticmethod
    def course_students(course_id: int) -> List[Registration]:
        """Registrations with access to the course"""
        if not db.session.get(Course, course_id):
            raise NotFoundError("Course not found")
        return (Registration.query
                .filter(Registration.course_id == course_id,
                        Registration.status.in_(ACCESS_STATUSES))
                .order_by(Registration.created_at.asc())
                .all())

    @staticmethod
    def pending_registrations(course_id: int) -> List[Registration]:
        if not db.session.get(Course, course_id):
            raise NotFoundError("Course not found")
        return (Registration.query
                .filter_by(course_id=course_id, status='pending')
                .order_by(Registration.created_at.asc())
                .all())

    @staticmethod
    def accessible_courses(user: User) -> List[Course]:
        """Courses whose content the user can read"""
        if user.role == 'admin':
            return Course.query.order_by(Course.name.asc()).all()
        if user.role == 'trainer':
            return Course.query.filter_by(instructor_id=user.id).order_by(Course.name.asc()).all()
        courses = (Course.query
                   .join(Registration, Registration.course_id == Course.id)
                   .filter(Registration.user_id == user.id,
                           Registration.status.in_(ACCESS_STATUSES))
                   .order_by(Course.name.asc())
                   .all())
        current_app.logger.debug(f"User {user.id} has access to {len(courses)} course(s)")
        return courses

    @staticmethod
    def student_courses(student_id: int) -> List[Course]:
        """Admin view of a student's accessible courses"""
        student = db.session.get(User, student_id)
        if not student:
            raise NotFoundError("Student not found")
        return AccessService.accessible_courses(student)
