"""
Dashboard, notification, enquiry and health routes
"""

from flask import Blueprint, request, jsonify
from sqlalchemy import text
from kmmedia.models import db
from kmmedia.services import (
    AuthService, DashboardService, NotificationService, EnquiryService, TrainerService
)
from kmmedia.utils import KMMediaException, log_error, create_response

dashboard_bp = Blueprint('dashboard', __name__)
notifications_bp = Blueprint('notifications', __name__)
enquiries_bp = Blueprint('enquiries', __name__)
health_bp = Blueprint('health', __name__)


@dashboard_bp.route('/student', methods=['GET'])
def student_dashboard():
    try:
        user = AuthService.require_role('student')
        return jsonify(create_response(True, "Dashboard loaded", DashboardService.student_dashboard(user)))
    except KMMediaException as e:
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        log_error("Student dashboard error", e)
        return jsonify(create_response(False, "Failed to load dashboard")), 500


@dashboard_bp.route('/admin', methods=['GET'])
def admin_dashboard():
    try:
        AuthService.require_role('admin')
        return jsonify(create_response(True, "Dashboard loaded", DashboardService.admin_dashboard()))
    except KMMediaException as e:
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        log_error("Admin dashboard error", e)
        return jsonify(create_response(False, "Failed to load dashboard")), 500


@dashboard_bp.route('/trainer', methods=['GET'])
def trainer_dashboard():
    try:
        trainer = AuthService.require_role('trainer')
        return jsonify(create_response(True, "Dashboard loaded", TrainerService.dashboard(trainer)))
    except KMMediaException as e:
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        log_error("Trainer dashboard error", e)
        return jsonify(create_response(False, "Failed to load dashboard")), 500


@notifications_bp.route('', methods=['GET'])
def list_notifications():
    try:
        user = AuthService.require_auth()
        unread_only = request.args.get('unread', '').lower() in ('true', '1')
        notifications = NotificationService.list_for_user(user, unread_only=unread_only)
        return jsonify(create_response(True, "Notifications retrieved", [n.to_dict() for n in notifications]))
    except KMMediaException as e:
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        log_error("List notifications error", e)
        return jsonify(create_response(False, "Failed to load notifications")), 500


@notifications_bp.route('/<int:notification_id>/read', methods=['PATCH'])
def mark_read(notification_id):
    try:
        user = AuthService.require_auth()
        notification = NotificationService.mark_read(user, notification_id)
        return jsonify(create_response(True, "Notification marked as read", notification.to_dict()))
    except KMMediaException as e:
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        db.session.rollback()
        log_error("Mark notification error", e)
        return jsonify(create_response(False, "Failed to update notification")), 500


@notifications_bp.route('/read-all', methods=['PATCH'])
def mark_all_read():
    try:
        user = AuthService.require_auth()
        count = NotificationService.mark_all_read(user)
        return jsonify(create_response(True, f"{count} notification(s) marked as read", {'updated': count}))
    except KMMediaException as e:
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        db.session.rollback()
        log_error("Mark all notifications error", e)
        return jsonify(create_response(False, "Failed to update notifications")), 500


@enquiries_bp.route('', methods=['POST'])
def submit_enquiry():
    """Public contact form"""
    try:
        enquiry = EnquiryService.submit(request.get_json(silent=True) or {})
        return jsonify(create_response(True, "Thank you! We will get back to you shortly.", enquiry.to_dict())), 201
    except KMMediaException as e:
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        db.session.rollback()
        log_error("Submit enquiry error", e)
        return jsonify(create_response(False, "Failed to submit enquiry")), 500


@enquiries_bp.route('', methods=['GET'])
def list_enquiries():
    try:
        AuthService.require_role('admin')
        return jsonify(create_response(True, "Enquiries retrieved", [q.to_dict() for q in EnquiryService.list_all()]))
    except KMMediaException as e:
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        log_error("List enquiries error", e)
        return jsonify(create_response(False, "Failed to load enquiries")), 500


@health_bp.route('/health', methods=['GET'])
def health():
    """Application and database status"""
    try:
        db.session.execute(text('SELECT 1'))
        database = 'connected'
        status_code = 200
    except Exception as e:
        db.session.rollback()
        log_error("Health check database error", e)
        database = 'unavailable'
        status_code = 503
    data = {'status': 'ok' if status_code == 200 else 'degraded', 'database': database}
    return jsonify(create_response(status_code == 200, "KM Media API", data)), status_code
