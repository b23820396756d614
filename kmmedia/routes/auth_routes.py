"""
Authentication and account routes
"""

from flask import Blueprint, request, jsonify
from kmmedia.models import db, User
from kmmedia.models.user import ROLES
from kmmedia.services import AuthService
from kmmedia.utils import KMMediaException, validate_choice, log_error, log_info, create_response

auth_bp = Blueprint('auth', __name__)
users_bp = Blueprint('users', __name__)


@auth_bp.route('/register', methods=['POST'])
def register():
    """Create a student account and sign it in"""
    try:
        data = request.get_json(silent=True) or {}
        user = AuthService.register_user(data, role='student')
        token = AuthService.issue_token(user)
        return jsonify(create_response(True, "Registration successful", {
            'token': token,
            'user': user.to_dict()
        })), 201
    except KMMediaException as e:
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        db.session.rollback()
        log_error("Registration error", e)
        return jsonify(create_response(False, "Registration failed. Please try again.")), 500


@auth_bp.route('/login', methods=['POST'])
def login():
    """Handle user login"""
    try:
        data = request.get_json(silent=True) or {}
        email = (data.get('email') or '').strip().lower()
        password = data.get('password') or ''

        if not email or not password:
            return jsonify(create_response(False, "Please enter both email and password.")), 400

        token, user = AuthService.authenticate_user(email, password)
        return jsonify(create_response(True, "Login successful", {
            'token': token,
            'user': user.to_dict()
        }))
    except KMMediaException as e:
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        db.session.rollback()
        log_error("Login error", e)
        return jsonify(create_response(False, "Login failed. Please try again.")), 500


@auth_bp.route('/me', methods=['GET'])
def get_current_user():
    """Get current logged-in user"""
    try:
        user = AuthService.require_auth()
        return jsonify(create_response(True, "User found", user.to_dict()))
    except KMMediaException as e:
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        log_error("Get current user error", e)
        return jsonify(create_response(False, "Failed to get user info")), 500


@auth_bp.route('/profile', methods=['PUT'])
def update_profile():
    try:
        user = AuthService.require_auth()
        data = request.get_json(silent=True) or {}
        user = AuthService.update_profile(user, data)
        return jsonify(create_response(True, "Profile updated", user.to_dict()))
    except KMMediaException as e:
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        db.session.rollback()
        log_error("Update profile error", e)
        return jsonify(create_response(False, "Failed to update profile")), 500


@auth_bp.route('/change-password', methods=['POST'])
def change_password():
    try:
        user = AuthService.require_auth()
        data = request.get_json(silent=True) or {}
        AuthService.change_password(user, data.get('current_password'), data.get('new_password'))
        return jsonify(create_response(True, "Password changed successfully"))
    except KMMediaException as e:
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        db.session.rollback()
        log_error("Change password error", e)
        return jsonify(create_response(False, "Failed to change password")), 500


@users_bp.route('', methods=['GET'])
def list_users():
    """List accounts, optionally by role (admin)"""
    try:
        AuthService.require_role('admin')
        role = request.args.get('role')
        query = User.query
        if role:
            validate_choice(role, ROLES, 'Role')
            query = query.filter_by(role=role)
        users = query.order_by(User.created_at.desc(), User.id.desc()).all()
        return jsonify(create_response(True, "Users retrieved", [u.to_dict() for u in users]))
    except KMMediaException as e:
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        log_error("List users error", e)
        return jsonify(create_response(False, "Failed to load users")), 500


@users_bp.route('', methods=['POST'])
def create_user():
    """Create a trainer, admin or student account (admin)"""
    try:
        admin = AuthService.require_role('admin')
        data = request.get_json(silent=True) or {}
        user = AuthService.register_user(data, role=data.get('role') or 'trainer')
        log_info(f"Admin {admin.id} created {user.role} account {user.id}")
        return jsonify(create_response(True, "User created", user.to_dict())), 201
    except KMMediaException as e:
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        db.session.rollback()
        log_error("Create user error", e)
        return jsonify(create_response(False, "Failed to create user")), 500


@users_bp.route('/<int:user_id>/status', methods=['PATCH'])
def set_user_status(user_id):
    """Activate or deactivate an account (admin)"""
    try:
        admin = AuthService.require_role('admin')
        data = request.get_json(silent=True) or {}
        if 'is_active' not in data:
            return jsonify(create_response(False, "is_active is required")), 400
        user = AuthService.set_active(user_id, bool(data['is_active']), admin)
        message = "User activated" if user.is_active else "User deactivated"
        return jsonify(create_response(True, message, user.to_dict()))
    except KMMediaException as e:
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        db.session.rollback()
        log_error("Set user status error", e)
        return jsonify(create_response(False, "Failed to update user")), 500
