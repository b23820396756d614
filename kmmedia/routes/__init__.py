"""
Routes package initialization
"""

from kmmedia.routes.auth_routes import auth_bp, users_bp
from kmmedia.routes.course_routes import courses_bp
from kmmedia.routes.registration_routes import registrations_bp
from kmmedia.routes.payment_routes import payments_bp
from kmmedia.routes.material_routes import materials_bp
from kmmedia.routes.assessment_routes import assessments_bp
from kmmedia.routes.dashboard_routes import dashboard_bp, notifications_bp, enquiries_bp, health_bp
from kmmedia.routes.story_routes import stories_bp
from kmmedia.routes.trainer_routes import trainers_bp

__all__ = [
    'auth_bp', 'users_bp', 'courses_bp', 'registrations_bp', 'payments_bp', 'materials_bp',
    'assessments_bp', 'dashboard_bp', 'notifications_bp', 'enquiries_bp', 'health_bp',
    'stories_bp', 'trainers_bp'
]
