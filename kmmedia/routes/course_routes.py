"""
Course catalog routes
"""

from flask import Blueprint, request, jsonify
from kmmedia.models import db
from kmmedia.services import AuthService, CourseService, AccessService
from kmmedia.utils import KMMediaException, log_error, create_response

courses_bp = Blueprint('courses', __name__)


@courses_bp.route('', methods=['GET'])
def list_courses():
    """Public catalog of active courses"""
    try:
        courses = CourseService.list_public(
            category=request.args.get('category'),
            level=request.args.get('level'),
            search=request.args.get('search')
        )
        return jsonify(create_response(True, "Courses retrieved", [c.to_dict() for c in courses]))
    except KMMediaException as e:
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        log_error("List courses error", e)
        return jsonify(create_response(False, "Failed to load courses")), 500


@courses_bp.route('/<int:course_id>', methods=['GET'])
def get_course(course_id):
    try:
        course = CourseService.get_public(course_id)
        return jsonify(create_response(True, "Course retrieved", course.to_dict()))
    except KMMediaException as e:
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        log_error("Get course error", e)
        return jsonify(create_response(False, "Failed to load course")), 500


@courses_bp.route('/admin/all', methods=['GET'])
def list_all_courses():
    """All courses including inactive ones (admin)"""
    try:
        AuthService.require_role('admin')
        courses = CourseService.list_all()
        return jsonify(create_response(True, "Courses retrieved", [c.to_dict() for c in courses]))
    except KMMediaException as e:
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        log_error("List all courses error", e)
        return jsonify(create_response(False, "Failed to load courses")), 500


@courses_bp.route('/admin/stats', methods=['GET'])
def course_stats():
    try:
        AuthService.require_role('admin')
        return jsonify(create_response(True, "Course statistics", CourseService.stats()))
    except KMMediaException as e:
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        log_error("Course stats error", e)
        return jsonify(create_response(False, "Failed to load statistics")), 500


@courses_bp.route('', methods=['POST'])
def create_course():
    try:
        AuthService.require_role('admin')
        course = CourseService.create(request.get_json(silent=True) or {})
        return jsonify(create_response(True, "Course created successfully", course.to_dict())), 201
    except KMMediaException as e:
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        db.session.rollback()
        log_error("Create course error", e)
        return jsonify(create_response(False, "Failed to create course")), 500


@courses_bp.route('/<int:course_id>', methods=['PUT'])
def update_course(course_id):
    try:
        AuthService.require_role('admin')
        course = CourseService.update(course_id, request.get_json(silent=True) or {})
        return jsonify(create_response(True, "Course updated successfully", course.to_dict()))
    except KMMediaException as e:
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        db.session.rollback()
        log_error("Update course error", e)
        return jsonify(create_response(False, "Failed to update course")), 500


@courses_bp.route('/<int:course_id>/toggle', methods=['PATCH'])
def toggle_course(course_id):
    try:
        AuthService.require_role('admin')
        course = CourseService.toggle_active(course_id)
        message = "Course activated" if course.is_active else "Course deactivated"
        return jsonify(create_response(True, message, course.to_dict()))
    except KMMediaException as e:
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        db.session.rollback()
        log_error("Toggle course error", e)
        return jsonify(create_response(False, "Failed to update course")), 500


@courses_bp.route('/<int:course_id>', methods=['DELETE'])
def delete_course(course_id):
    try:
        AuthService.require_role('admin')
        CourseService.delete(course_id)
        return jsonify(create_response(True, "Course deleted successfully"))
    except KMMediaException as e:
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        db.session.rollback()
        log_error("Delete course error", e)
        return jsonify(create_response(False, "Failed to delete course")), 500


@courses_bp.route('/<int:course_id>/trainer', methods=['PUT'])
def assign_trainer(course_id):
    try:
        AuthService.require_role('admin')
        data = request.get_json(silent=True) or {}
        course = CourseService.assign_trainer(course_id, data.get('trainer_id'))
        return jsonify(create_response(True, "Trainer assigned", course.to_dict()))
    except KMMediaException as e:
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        db.session.rollback()
        log_error("Assign trainer error", e)
        return jsonify(create_response(False, "Failed to assign trainer")), 500


@courses_bp.route('/<int:course_id>/students', methods=['GET'])
def course_students(course_id):
    """Students with access to the course (admin or assigned trainer)"""
    try:
        user = AuthService.require_auth()
        AccessService.require_manage(user, CourseService.get_or_404(course_id))
        registrations = AccessService.course_students(course_id)
        return jsonify(create_response(True, "Students retrieved", [r.to_dict() for r in registrations]))
    except KMMediaException as e:
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        log_error("Course students error", e)
        return jsonify(create_response(False, "Failed to load students")), 500


@courses_bp.route('/<int:course_id>/pending-registrations', methods=['GET'])
def pending_registrations(course_id):
    try:
        AuthService.require_role('admin')
        registrations = AccessService.pending_registrations(course_id)
        return jsonify(create_response(True, "Pending registrations retrieved",
                                       [r.to_dict(include_application=True) for r in registrations]))
    except KMMediaException as e:
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        log_error("Pending registrations error", e)
        return jsonify(create_response(False, "Failed to load registrations")), 500


@courses_bp.route('/mine', methods=['GET'])
def my_courses():
    """Courses the signed-in user can open"""
    try:
        user = AuthService.require_auth()
        courses = AccessService.accessible_courses(user)
        return jsonify(create_response(True, "Courses retrieved", [c.to_dict() for c in courses]))
    except KMMediaException as e:
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        log_error("My courses error", e)
        return jsonify(create_response(False, "Failed to load courses")), 500
