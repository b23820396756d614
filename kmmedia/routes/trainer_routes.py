"""
Trainer management (admin) and trainer self-service routes
"""

from flask import Blueprint, request, jsonify
from kmmedia.models import db
from kmmedia.services import AuthService, TrainerService
from kmmedia.services.trainer_service import trainer_to_dict
from kmmedia.utils import KMMediaException, log_error, log_info, create_response

trainers_bp = Blueprint('trainers', __name__)


@trainers_bp.route('/admin/all', methods=['GET'])
def list_trainers():
    try:
        AuthService.require_role('admin')
        trainers = TrainerService.list_trainers()
        return jsonify(create_response(True, "Trainers retrieved", [trainer_to_dict(t) for t in trainers]))
    except KMMediaException as e:
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        log_error("List trainers error", e)
        return jsonify(create_response(False, "Failed to load trainers")), 500


@trainers_bp.route('/admin/stats', methods=['GET'])
def trainer_stats():
    try:
        AuthService.require_role('admin')
        return jsonify(create_response(True, "Trainer statistics", TrainerService.stats()))
    except KMMediaException as e:
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        log_error("Trainer stats error", e)
        return jsonify(create_response(False, "Failed to load trainer statistics")), 500


@trainers_bp.route('/admin/register', methods=['POST'])
def register_trainer():
    try:
        admin = AuthService.require_role('admin')
        trainer = TrainerService.create_trainer(request.get_json(silent=True) or {})
        log_info(f"Admin {admin.id} registered trainer {trainer.id}")
        return jsonify(create_response(True, "Trainer registered successfully", trainer_to_dict(trainer))), 201
    except KMMediaException as e:
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        db.session.rollback()
        log_error("Register trainer error", e)
        return jsonify(create_response(False, "Failed to register trainer")), 500


@trainers_bp.route('/admin/<int:trainer_id>', methods=['GET'])
def get_trainer(trainer_id):
    try:
        AuthService.require_role('admin')
        trainer = TrainerService.get_or_404(trainer_id)
        return jsonify(create_response(True, "Trainer retrieved", trainer_to_dict(trainer)))
    except KMMediaException as e:
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        log_error("Get trainer error", e)
        return jsonify(create_response(False, "Failed to load trainer")), 500


@trainers_bp.route('/admin/<int:trainer_id>', methods=['PUT'])
def update_trainer(trainer_id):
    try:
        admin = AuthService.require_role('admin')
        trainer = TrainerService.update_trainer(trainer_id, request.get_json(silent=True) or {})
        log_info(f"Admin {admin.id} updated trainer {trainer_id}")
        return jsonify(create_response(True, "Trainer updated successfully", trainer_to_dict(trainer)))
    except KMMediaException as e:
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        db.session.rollback()
        log_error("Update trainer error", e)
        return jsonify(create_response(False, "Failed to update trainer")), 500


@trainers_bp.route('/admin/<int:trainer_id>', methods=['DELETE'])
def delete_trainer(trainer_id):
    try:
        admin = AuthService.require_role('admin')
        TrainerService.delete_trainer(trainer_id)
        log_info(f"Admin {admin.id} deleted trainer {trainer_id}")
        return jsonify(create_response(True, "Trainer deleted successfully"))
    except KMMediaException as e:
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        db.session.rollback()
        log_error("Delete trainer error", e)
        return jsonify(create_response(False, "Failed to delete trainer")), 500


@trainers_bp.route('/admin/<int:trainer_id>/courses', methods=['GET'])
def trainer_courses_admin(trainer_id):
    try:
        AuthService.require_role('admin')
        trainer = TrainerService.get_or_404(trainer_id)
        return jsonify(create_response(True, "Trainer courses retrieved", TrainerService.courses(trainer)))
    except KMMediaException as e:
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        log_error("Trainer courses error", e)
        return jsonify(create_response(False, "Failed to load trainer courses")), 500


@trainers_bp.route('/courses', methods=['GET'])
def my_courses():
    """Courses assigned to the signed-in trainer"""
    try:
        trainer = AuthService.require_role('trainer')
        return jsonify(create_response(True, "Courses retrieved", TrainerService.courses(trainer)))
    except KMMediaException as e:
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        log_error("Trainer own courses error", e)
        return jsonify(create_response(False, "Failed to load courses")), 500


@trainers_bp.route('/students', methods=['GET'])
def my_students():
    try:
        trainer = AuthService.require_role('trainer')
        registrations = TrainerService.students(trainer)
        return jsonify(create_response(True, "Students retrieved", [r.to_dict() for r in registrations]))
    except KMMediaException as e:
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        log_error("Trainer students error", e)
        return jsonify(create_response(False, "Failed to load students")), 500


@trainers_bp.route('/profile', methods=['GET'])
def get_profile():
    try:
        trainer = AuthService.require_role('trainer')
        return jsonify(create_response(True, "Profile retrieved", trainer_to_dict(trainer)))
    except KMMediaException as e:
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        log_error("Trainer profile error", e)
        return jsonify(create_response(False, "Failed to load profile")), 500


@trainers_bp.route('/profile', methods=['PUT'])
def update_profile():
    try:
        trainer = AuthService.require_role('trainer')
        trainer = TrainerService.update_trainer(trainer.id, request.get_json(silent=True) or {})
        return jsonify(create_response(True, "Profile updated successfully", trainer_to_dict(trainer)))
    except KMMediaException as e:
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        db.session.rollback()
        log_error("Update trainer profile error", e)
        return jsonify(create_response(False, "Failed to update profile")), 500
