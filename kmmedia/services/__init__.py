"""
Services package initialization
"""

from kmmedia.services.auth_service import AuthService
from kmmedia.services.email_service import EmailService
from kmmedia.services.notification_service import NotificationService
from kmmedia.services.storage_service import StorageService
from kmmedia.services.paystack_client import PaystackClient
from kmmedia.services.registration_service import RegistrationService
from kmmedia.services.installment_service import InstallmentService
from kmmedia.services.payment_service import PaymentService
from kmmedia.services.course_service import CourseService
from kmmedia.services.access_service import AccessService
from kmmedia.services.material_service import MaterialService
from kmmedia.services.assessment_service import AssessmentService
from kmmedia.services.dashboard_service import DashboardService
from kmmedia.services.enquiry_service import EnquiryService
from kmmedia.services.story_service import StoryService
from kmmedia.services.trainer_service import TrainerService

__all__ = [
    'AuthService', 'EmailService', 'NotificationService', 'StorageService', 'PaystackClient',
    'RegistrationService', 'InstallmentService', 'PaymentService', 'CourseService',
    'AccessService', 'MaterialService', 'AssessmentService', 'DashboardService', 'EnquiryService',
    'StoryService', 'TrainerService'
]
