"""
Course content routes: modules, materials, progress and uploaded files
"""

from flask import Blueprint, request, jsonify, send_from_directory
from kmmedia.models import db
from kmmedia.services import AuthService, MaterialService, StorageService
from kmmedia.utils import KMMediaException, log_error, create_response

materials_bp = Blueprint('materials', __name__)


def _form_data():
    """JSON body, or form fields for multipart uploads"""
    if request.files or request.form:
        return request.form.to_dict()
    return request.get_json(silent=True) or {}


@materials_bp.route('/courses/<int:course_id>/modules', methods=['GET'])
def list_modules(course_id):
    try:
        user = AuthService.require_auth()
        modules = MaterialService.list_modules(user, course_id)
        return jsonify(create_response(True, "Modules retrieved", modules))
    except KMMediaException as e:
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        log_error("List modules error", e)
        return jsonify(create_response(False, "Failed to load modules")), 500


@materials_bp.route('/courses/<int:course_id>/modules', methods=['POST'])
def create_module(course_id):
    try:
        user = AuthService.require_auth()
        module = MaterialService.create_module(user, course_id, request.get_json(silent=True) or {})
        return jsonify(create_response(True, "Module created", module.to_dict(materials=[]))), 201
    except KMMediaException as e:
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        db.session.rollback()
        log_error("Create module error", e)
        return jsonify(create_response(False, "Failed to create module")), 500


@materials_bp.route('/modules/<int:module_id>', methods=['PUT'])
def update_module(module_id):
    try:
        user = AuthService.require_auth()
        module = MaterialService.update_module(user, module_id, request.get_json(silent=True) or {})
        return jsonify(create_response(True, "Module updated", module.to_dict()))
    except KMMediaException as e:
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        db.session.rollback()
        log_error("Update module error", e)
        return jsonify(create_response(False, "Failed to update module")), 500


@materials_bp.route('/modules/<int:module_id>', methods=['DELETE'])
def delete_module(module_id):
    try:
        user = AuthService.require_auth()
        MaterialService.delete_module(user, module_id)
        return jsonify(create_response(True, "Module deleted"))
    except KMMediaException as e:
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        db.session.rollback()
        log_error("Delete module error", e)
        return jsonify(create_response(False, "Failed to delete module")), 500


@materials_bp.route('/courses/<int:course_id>/materials', methods=['GET'])
def list_materials(course_id):
    try:
        user = AuthService.require_auth()
        module_id = request.args.get('module_id', type=int)
        materials = MaterialService.list_materials(user, course_id, module_id)
        return jsonify(create_response(True, "Materials retrieved", [m.to_dict() for m in materials]))
    except KMMediaException as e:
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        log_error("List materials error", e)
        return jsonify(create_response(False, "Failed to load materials")), 500


@materials_bp.route('/courses/<int:course_id>/materials', methods=['POST'])
def create_material(course_id):
    """Add a material from a multipart upload or a JSON body with file_url"""
    try:
        user = AuthService.require_auth()
        material = MaterialService.create_material(user, course_id, _form_data(), request.files.get('file'))
        return jsonify(create_response(True, "Material created", material.to_dict())), 201
    except KMMediaException as e:
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        db.session.rollback()
        log_error("Create material error", e)
        return jsonify(create_response(False, "Failed to create material")), 500


@materials_bp.route('/materials/<int:material_id>', methods=['GET'])
def get_material(material_id):
    try:
        user = AuthService.require_auth()
        material = MaterialService.get_material(user, material_id)
        return jsonify(create_response(True, "Material retrieved", material.to_dict()))
    except KMMediaException as e:
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        log_error("Get material error", e)
        return jsonify(create_response(False, "Failed to load material")), 500


@materials_bp.route('/materials/<int:material_id>', methods=['PUT'])
def update_material(material_id):
    try:
        user = AuthService.require_auth()
        material = MaterialService.update_material(user, material_id, request.get_json(silent=True) or {})
        return jsonify(create_response(True, "Material updated", material.to_dict()))
    except KMMediaException as e:
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        db.session.rollback()
        log_error("Update material error", e)
        return jsonify(create_response(False, "Failed to update material")), 500


@materials_bp.route('/materials/<int:material_id>/toggle', methods=['PATCH'])
def toggle_material(material_id):
    try:
        user = AuthService.require_auth()
        material = MaterialService.toggle_material(user, material_id)
        message = "Material activated" if material.is_active else "Material deactivated"
        return jsonify(create_response(True, message, material.to_dict()))
    except KMMediaException as e:
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        db.session.rollback()
        log_error("Toggle material error", e)
        return jsonify(create_response(False, "Failed to update material")), 500


@materials_bp.route('/materials/<int:material_id>', methods=['DELETE'])
def delete_material(material_id):
    try:
        user = AuthService.require_auth()
        MaterialService.delete_material(user, material_id)
        return jsonify(create_response(True, "Material deleted"))
    except KMMediaException as e:
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        db.session.rollback()
        log_error("Delete material error", e)
        return jsonify(create_response(False, "Failed to delete material")), 500


@materials_bp.route('/materials/<int:material_id>/view', methods=['POST'])
def record_view(material_id):
    try:
        user = AuthService.require_auth()
        material = MaterialService.record_view(user, material_id)
        return jsonify(create_response(True, "View recorded", material.to_dict()))
    except KMMediaException as e:
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        db.session.rollback()
        log_error("Record view error", e)
        return jsonify(create_response(False, "Failed to record view")), 500


@materials_bp.route('/materials/<int:material_id>/download', methods=['POST'])
def record_download(material_id):
    try:
        user = AuthService.require_auth()
        material = MaterialService.record_download(user, material_id)
        return jsonify(create_response(True, "Download recorded", material.to_dict()))
    except KMMediaException as e:
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        db.session.rollback()
        log_error("Record download error", e)
        return jsonify(create_response(False, "Failed to record download")), 500


@materials_bp.route('/materials/<int:material_id>/complete', methods=['POST'])
def complete_material(material_id):
    try:
        user = AuthService.require_auth()
        data = request.get_json(silent=True) or {}
        progress = MaterialService.complete_material(user, material_id, data.get('time_spent'))
        return jsonify(create_response(True, "Material marked as completed", {
            'progress': progress.to_dict(),
            'course_progress': MaterialService.course_progress(user, progress.course_id)
        }))
    except KMMediaException as e:
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        db.session.rollback()
        log_error("Complete material error", e)
        return jsonify(create_response(False, "Failed to update progress")), 500


@materials_bp.route('/courses/<int:course_id>/progress', methods=['GET'])
def course_progress(course_id):
    try:
        user = AuthService.require_auth()
        return jsonify(create_response(True, "Course progress", MaterialService.course_progress(user, course_id)))
    except KMMediaException as e:
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        log_error("Course progress error", e)
        return jsonify(create_response(False, "Failed to load progress")), 500


@materials_bp.route('/uploads/<path:key>', methods=['GET'])
def serve_upload(key):
    """Files stored on local disk when S3 is not configured"""
    return send_from_directory(StorageService.local_root(), key)
