"""
Registration (enrollment) routes
"""

from flask import Blueprint, request, jsonify
from kmmedia.models import db
from kmmedia.services import AuthService, RegistrationService, AccessService
from kmmedia.utils import KMMediaException, parse_int, log_error, create_response

registrations_bp = Blueprint('registrations', __name__)


@registrations_bp.route('', methods=['POST'])
def apply():
    """Submit the application form for a course"""
    try:
        user = AuthService.require_role('student')
        data = request.get_json(silent=True) or {}
        course_id = parse_int(data.get('course_id'), 'Course')
        registration = RegistrationService.apply(user, course_id, data)
        return jsonify(create_response(True, "Application submitted successfully",
                                       registration.to_dict(include_application=True))), 201
    except KMMediaException as e:
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        db.session.rollback()
        log_error("Registration apply error", e)
        return jsonify(create_response(False, "Failed to submit application")), 500


@registrations_bp.route('/check/<int:course_id>', methods=['GET'])
def check(course_id):
    try:
        user = AuthService.require_auth()
        registration = RegistrationService.check(user, course_id)
        return jsonify(create_response(True, "Registration status", {
            'registered': registration is not None,
            'registration': registration.to_dict() if registration else None
        }))
    except KMMediaException as e:
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        log_error("Registration check error", e)
        return jsonify(create_response(False, "Failed to check registration")), 500


@registrations_bp.route('/my', methods=['GET'])
def my_registrations():
    try:
        user = AuthService.require_auth()
        registrations = RegistrationService.list_for_user(user)
        return jsonify(create_response(True, "Registrations retrieved", [r.to_dict() for r in registrations]))
    except KMMediaException as e:
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        log_error("My registrations error", e)
        return jsonify(create_response(False, "Failed to load registrations")), 500


@registrations_bp.route('/<int:registration_id>', methods=['DELETE'])
def cancel(registration_id):
    try:
        user = AuthService.require_auth()
        RegistrationService.cancel(user, registration_id)
        return jsonify(create_response(True, "Registration cancelled"))
    except KMMediaException as e:
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        db.session.rollback()
        log_error("Cancel registration error", e)
        return jsonify(create_response(False, "Failed to cancel registration")), 500


@registrations_bp.route('', methods=['GET'])
def list_registrations():
    """All registrations, optionally by status or course (admin)"""
    try:
        AuthService.require_role('admin')
        course_id = request.args.get('course_id', type=int)
        registrations = RegistrationService.list_all(request.args.get('status'), course_id)
        return jsonify(create_response(True, "Registrations retrieved",
                                       [r.to_dict(include_application=True) for r in registrations]))
    except KMMediaException as e:
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        log_error("List registrations error", e)
        return jsonify(create_response(False, "Failed to load registrations")), 500


@registrations_bp.route('/<int:registration_id>', methods=['GET'])
def get_registration(registration_id):
    try:
        user = AuthService.require_auth()
        registration = RegistrationService.get_or_404(registration_id)
        if user.role != 'admin' and registration.user_id != user.id:
            return jsonify(create_response(False, "Registration not found")), 404
        return jsonify(create_response(True, "Registration retrieved",
                                       registration.to_dict(include_application=True)))
    except KMMediaException as e:
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        log_error("Get registration error", e)
        return jsonify(create_response(False, "Failed to load registration")), 500


@registrations_bp.route('/<int:registration_id>/status', methods=['PATCH'])
def update_status(registration_id):
    try:
        admin = AuthService.require_role('admin')
        data = request.get_json(silent=True) or {}
        registration = RegistrationService.update_status(
            registration_id, data.get('status'), admin, data.get('notes')
        )
        return jsonify(create_response(True, f"Registration {registration.status}", registration.to_dict()))
    except KMMediaException as e:
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        db.session.rollback()
        log_error("Update registration status error", e)
        return jsonify(create_response(False, "Failed to update registration")), 500


@registrations_bp.route('/<int:registration_id>/grant', methods=['POST'])
def grant_access(registration_id):
    try:
        admin = AuthService.require_role('admin')
        registration = AccessService.grant_access(registration_id, admin)
        return jsonify(create_response(True, "Access granted", registration.to_dict()))
    except KMMediaException as e:
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        db.session.rollback()
        log_error("Grant access error", e)
        return jsonify(create_response(False, "Failed to grant access")), 500


@registrations_bp.route('/<int:registration_id>/revoke', methods=['POST'])
def revoke_access(registration_id):
    try:
        admin = AuthService.require_role('admin')
        registration = AccessService.revoke_access(registration_id, admin)
        return jsonify(create_response(True, "Access revoked", registration.to_dict()))
    except KMMediaException as e:
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        db.session.rollback()
        log_error("Revoke access error", e)
        return jsonify(create_response(False, "Failed to revoke access")), 500


@registrations_bp.route('/students/<int:student_id>/courses', methods=['GET'])
def student_courses(student_id):
    """Courses a student can access (admin)"""
    try:
        AuthService.require_role('admin')
        courses = AccessService.student_courses(student_id)
        return jsonify(create_response(True, "Courses retrieved", [c.to_dict() for c in courses]))
    except KMMediaException as e:
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        log_error("Student courses error", e)
        return jsonify(create_response(False, "Failed to load courses")), 500
