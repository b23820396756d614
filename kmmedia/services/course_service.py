"""
Course catalog service
"""

from decimal import Decimal
from typing import Any, Dict, List, Optional
from flask import current_app
from kmmedia.models import db, Course, Registration, Payment, User
from kmmedia.models.course import LEVELS
from kmmedia.utils.exceptions import ValidationError, NotFoundError, ConflictError
from kmmedia.utils.helpers import to_money
from kmmedia.utils.validators import (
    validate_required, validate_string_length, validate_choice, parse_int, parse_amount
)

# Free-text fields copied as-is
OPTIONAL_FIELDS = ('excerpt', 'featured_image', 'syllabus', 'requirements', 'learning_outcomes')


class CourseService:
    """Course service class"""

    @staticmethod
    def _apply_fields(course: Course, data: Dict[str, Any], partial: bool) -> None:
        """Validate and copy course fields; partial updates only touch keys present"""
        if not partial or 'name' in data:
            validate_required(data.get('name'), 'Course name')
            validate_string_length(str(data['name']), 1, 255, 'Course name')
            course.name = str(data['name']).strip()
        if not partial or 'description' in data:
            validate_required(data.get('description'), 'Description')
            validate_string_length(str(data['description']), 10, None, 'Description')
            course.description = str(data['description']).strip()
        if not partial or 'duration' in data:
            validate_required(data.get('duration'), 'Duration')
            course.duration = str(data['duration']).strip()
        if not partial or 'price' in data:
            course.price = parse_amount(data.get('price'), 'Price')
        if not partial or 'max_students' in data:
            course.max_students = parse_int(data.get('max_students', 30), 'Maximum students', min_value=1)
        if not partial or 'category' in data:
            validate_required(data.get('category'), 'Category')
            course.category = str(data['category']).strip()
        if 'level' in data or not partial:
            course.level = validate_choice(data.get('level') or 'beginner', LEVELS, 'Level')
        if 'is_active' in data:
            course.is_active = bool(data['is_active'])
        if 'instructor_id' in data:
            course.instructor_id = CourseService._resolve_trainer(data['instructor_id'])
        for field in OPTIONAL_FIELDS:
            if field in data:
                setattr(course, field, data[field] or None)

    @staticmethod
    def _resolve_trainer(trainer_id: Any) -> Optional[int]:
        if trainer_id in (None, ''):
            return None
        trainer = db.session.get(User, parse_int(trainer_id, 'Trainer'))
        if not trainer:
            raise NotFoundError("Trainer not found")
        if trainer.role != 'trainer':
            raise ValidationError("User is not a trainer")
        return trainer.id

    @staticmethod
    def list_public(category: Optional[str] = None, level: Optional[str] = None,
                    search: Optional[str] = None) -> List[Course]:
        """Active courses, optionally filtered"""
        query = Course.query.filter(Course.is_active.is_(True))
        if category:
            query = query.filter(Course.category == category)
        if level:
            validate_choice(level, LEVELS, 'Level')
            query = query.filter(Course.level == level)
        if search:
            term = f"%{search.strip()}%"
            query = query.filter(db.or_(Course.name.ilike(term), Course.description.ilike(term)))
        return query.order_by(Course.created_at.desc(), Course.id.desc()).all()

    @staticmethod
    def list_all() -> List[Course]:
        return Course.query.order_by(Course.created_at.desc(), Course.id.desc()).all()

    @staticmethod
    def get_or_404(course_id: int) -> Course:
        course = db.session.get(Course, course_id)
        if not course:
            raise NotFoundError("Course not found")
        return course

    @staticmethod
    def get_public(course_id: int) -> Course:
        """Inactive courses are hidden from the public catalog"""
        course = db.session.get(Course, course_id)
        if not course or not course.is_active:
            raise NotFoundError("Course not found")
        return course

    @staticmethod
    def create(data: Dict[str, Any]) -> Course:
        """
        Create a course

        Args:
            data: name, description, duration, price, max_students, category and optional fields

        Returns:
            The created course
        """
        course = Course()
        CourseService._apply_fields(course, data, partial=False)
        db.session.add(course)
        db.session.commit()
        current_app.logger.info(f"Course {course.id} created: {course.name}")
        return course

    @staticmethod
    def update(course_id: int, data: Dict[str, Any]) -> Course:
        course = CourseService.get_or_404(course_id)
        CourseService._apply_fields(course, data, partial=True)
        db.session.commit()
        return course

    @staticmethod
    def toggle_active(course_id: int) -> Course:
        course = CourseService.get_or_404(course_id)
        course.is_active = not course.is_active
        db.session.commit()
        current_app.logger.info(f"Course {course.id} active={course.is_active}")
        return course

    @staticmethod
    def delete(course_id: int) -> None:
        """Delete a course that nobody has registered for or paid for"""
        course = CourseService.get_or_404(course_id)
        if Registration.query.filter_by(course_id=course.id).first():
            raise ConflictError("Cannot delete a course with registrations. Deactivate it instead.")
        if Payment.query.filter_by(course_id=course.id).first():
            raise ConflictError("Cannot delete a course with payments. Deactivate it instead.")
        db.session.delete(course)
        db.session.commit()
        current_app.logger.info(f"Course {course_id} deleted")

    @staticmethod
    def assign_trainer(course_id: int, trainer_id: Any) -> Course:
        course = CourseService.get_or_404(course_id)
        course.instructor_id = CourseService._resolve_trainer(trainer_id)
        db.session.commit()
        current_app.logger.info(f"Course {course.id} assigned to trainer {course.instructor_id}")
        return course

    @staticmethod
    def stats() -> Dict[str, Any]:
        revenue = db.session.query(db.func.coalesce(db.func.sum(Payment.amount), 0)).filter(
            Payment.status == 'success'
        ).scalar()
        return {
            'total_courses': Course.query.count(),
            'active_courses': Course.query.filter(Course.is_active.is_(True)).count(),
            'total_registrations': Registration.query.count(),
            'total_revenue': to_money(Decimal(str(revenue or 0)))
        }
