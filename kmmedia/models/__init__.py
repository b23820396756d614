"""
Database models initialization
"""

from kmmedia.models.database import db
from kmmedia.models.user import User, TrainerProfile
from kmmedia.models.course import Course
from kmmedia.models.registration import Registration
from kmmedia.models.payment import Payment, InstallmentPlan
from kmmedia.models.content import (
    CourseModule, CourseMaterial, MaterialProgress, Assignment,
    AssignmentSubmission, Quiz, QuizQuestion, QuizAttempt
)
from kmmedia.models.notification import Notification, Enquiry
from kmmedia.models.story import Story, StoryComment, StoryLike

# Export all models
__all__ = [
    'db', 'User', 'TrainerProfile', 'Course', 'Registration', 'Payment', 'InstallmentPlan',
    'CourseModule', 'CourseMaterial', 'MaterialProgress', 'Assignment',
    'AssignmentSubmission', 'Quiz', 'QuizQuestion', 'QuizAttempt',
    'Notification', 'Enquiry', 'Story', 'StoryComment', 'StoryLike'
]
