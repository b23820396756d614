"""
Trainer accounts, profiles and the trainer dashboard
"""

from typing import Any, Dict, List
from flask import current_app
from kmmedia.models import (
    db, Assignment, Course, CourseMaterial, Quiz, Registration, TrainerProfile, User
)
from kmmedia.models.registration import REGISTRATION_STATUSES
from kmmedia.services.auth_service import AuthService
from kmmedia.utils.exceptions import ConflictError, NotFoundError
from kmmedia.utils.helpers import utcnow
from kmmedia.utils.validators import validate_required, parse_int, parse_amount

# Free-text profile fields copied as-is
PROFILE_TEXT_FIELDS = ('certifications', 'availability')


def trainer_to_dict(trainer: User) -> Dict[str, Any]:
    data = trainer.to_dict()
    data['profile'] = trainer.trainer_profile.to_dict() if trainer.trainer_profile else None
    return data


class TrainerService:
    """Trainer service class"""

    @staticmethod
    def _apply_profile(trainer: User, data: Dict[str, Any], partial: bool) -> TrainerProfile:
        profile = trainer.trainer_profile
        if profile is None:
            profile = TrainerProfile(user_id=trainer.id, experience=0)
            trainer.trainer_profile = profile

        if not partial or 'specialization' in data:
            validate_required(data.get('specialization'), 'Specialization')
            profile.specialization = str(data['specialization']).strip()
        if 'experience' in data:
            profile.experience = parse_int(data['experience'], 'Experience', min_value=0)
        if 'hourly_rate' in data:
            profile.hourly_rate = (parse_amount(data['hourly_rate'], 'Hourly rate')
                                   if data['hourly_rate'] not in (None, '') else None)
        for field in PROFILE_TEXT_FIELDS:
            if field in data:
                setattr(profile, field, data[field] or None)
        return profile

    @staticmethod
    def get_or_404(trainer_id: int) -> User:
        trainer = db.session.get(User, trainer_id)
        if not trainer or trainer.role != 'trainer':
            raise NotFoundError("Trainer not found")
        return trainer

    @staticmethod
    def list_trainers() -> List[User]:
        return (User.query
                .filter_by(role='trainer')
                .order_by(User.created_at.desc(), User.id.desc())
                .all())

    @staticmethod
    def create_trainer(data: Dict[str, Any]) -> User:
        """
        Register a trainer account with its profile (admin)

        Args:
            data: Account fields (email, password, first_name, last_name,
                phone, bio) plus specialization and optional experience,
                certifications, hourly_rate, availability

        Returns:
            The trainer user
        """
        validate_required(data.get('specialization'), 'Specialization')
        if 'experience' in data:
            parse_int(data['experience'], 'Experience', min_value=0)
        if data.get('hourly_rate') not in (None, ''):
            parse_amount(data['hourly_rate'], 'Hourly rate')

        trainer = AuthService.register_user(data, role='trainer')
        if data.get('bio'):
            trainer.bio = data['bio']
        TrainerService._apply_profile(trainer, data, partial=False)
        db.session.commit()
        current_app.logger.info(f"Trainer {trainer.id} registered")
        return trainer

    @staticmethod
    def update_trainer(trainer_id: int, data: Dict[str, Any]) -> User:
        trainer = TrainerService.get_or_404(trainer_id)
        TrainerService._apply_profile(trainer, data, partial=trainer.trainer_profile is not None)
        AuthService.update_profile(trainer, data)
        return trainer

    @staticmethod
    def delete_trainer(trainer_id: int) -> None:
        """Delete a trainer who teaches no course"""
        trainer = TrainerService.get_or_404(trainer_id)
        if Course.query.filter_by(instructor_id=trainer.id).first():
            raise ConflictError("Cannot delete a trainer with assigned courses. Reassign the courses first.")
        db.session.delete(trainer)
        db.session.commit()
        current_app.logger.info(f"Trainer {trainer_id} deleted")

    @staticmethod
    def stats() -> Dict[str, Any]:
        month_start = utcnow().replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        rows = (db.session.query(TrainerProfile.specialization, db.func.count(TrainerProfile.id))
                .join(User, TrainerProfile.user_id == User.id)
                .filter(User.role == 'trainer')
                .group_by(TrainerProfile.specialization)
                .order_by(db.func.count(TrainerProfile.id).desc())
                .all())
        trainers = User.query.filter_by(role='trainer')
        return {
            'total': trainers.count(),
            'active': trainers.filter(User.is_active.is_(True)).count(),
            'this_month': trainers.filter(User.created_at >= month_start).count(),
            'specializations': [{'specialization': name, 'count': count} for name, count in rows]
        }

    @staticmethod
    def courses(trainer: User) -> List[Dict[str, Any]]:
        """Assigned courses with enrollment and content counts"""
        result = []
        courses = (Course.query
                   .filter_by(instructor_id=trainer.id)
                   .order_by(Course.created_at.desc(), Course.id.desc())
                   .all())
        for course in courses:
            data = course.to_dict()
            data['enrolled_students'] = Registration.query.filter(
                Registration.course_id == course.id,
                Registration.status.in_(('approved', 'completed'))
            ).count()
            data['completed_students'] = Registration.query.filter_by(
                course_id=course.id, status='completed'
            ).count()
            data['material_count'] = CourseMaterial.query.filter_by(course_id=course.id).count()
            data['assignment_count'] = Assignment.query.filter_by(course_id=course.id).count()
            data['quiz_count'] = Quiz.query.filter_by(course_id=course.id).count()
            result.append(data)
        return result

    @staticmethod
    def students(trainer: User) -> List[Registration]:
        """Registrations across the trainer's courses, newest first"""
        return (Registration.query
                .join(Course, Registration.course_id == Course.id)
                .filter(Course.instructor_id == trainer.id)
                .order_by(Registration.created_at.desc(), Registration.id.desc())
                .all())

    @staticmethod
    def dashboard(trainer: User) -> Dict[str, Any]:
        registrations = TrainerService.students(trainer)
        by_status = {status: set() for status in REGISTRATION_STATUSES}
        for registration in registrations:
            by_status[registration.status].add(registration.user_id)

        month_start = utcnow().replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        return {
            'profile': trainer_to_dict(trainer),
            'stats': {
                'total_courses': Course.query.filter_by(instructor_id=trainer.id).count(),
                'total_students': len({r.user_id for r in registrations}),
                'active_students': len(by_status['approved']),
                'completed_students': len(by_status['completed']),
                'pending_students': len(by_status['pending']),
                'this_month_registrations': sum(
                    1 for r in registrations if r.created_at and r.created_at >= month_start
                )
            },
            'courses': TrainerService.courses(trainer),
            'recent_students': [r.to_dict() for r in registrations[:10]]
        }
