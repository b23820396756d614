"""
Authentication service
"""

from datetime import datetime, timedelta
from typing import Optional, Tuple, Dict, Any
import jwt
from flask import current_app, request, g
from kmmedia.models import db, User
from kmmedia.models.user import ROLES
from kmmedia.utils.validators import (
    validate_email, validate_password, validate_required, validate_choice
)
from kmmedia.utils.exceptions import (
    ValidationError, AuthenticationError, AuthorizationError, ConflictError, NotFoundError
)


class AuthService:
    """Authentication service class"""

    @staticmethod
    def issue_token(user: User) -> str:
        """Sign a bearer token for the user"""
        exp = datetime.utcnow() + timedelta(minutes=current_app.config['JWT_EXPIRES_MIN'])
        return jwt.encode(
            {'uid': user.id, 'role': user.role, 'exp': exp},
            current_app.config['JWT_SECRET'],
            algorithm='HS256'
        )

    @staticmethod
    def decode_token(token: str) -> Optional[Dict[str, Any]]:
        if not token:
            return None
        try:
            return jwt.decode(token, current_app.config['JWT_SECRET'], algorithms=['HS256'])
        except jwt.PyJWTError:
            return None

    @staticmethod
    def register_user(data: Dict[str, Any], role: str = 'student') -> User:
        """
        Create a new account

        Args:
            data: email, password, first_name, last_name, optional phone
            role: Account role

        Returns:
            The created user
        """
        email = (data.get('email') or '').strip().lower()
        password = data.get('password') or ''

        validate_required(data.get('first_name'), 'First name')
        validate_required(data.get('last_name'), 'Last name')
        if not validate_email(email):
            raise ValidationError("Invalid email format")
        if not validate_password(password):
            raise ValidationError("Password must be at least 6 characters")
        validate_choice(role, ROLES, 'Role')

        if User.query.filter_by(email=email).first():
            raise ConflictError("An account with this email already exists")

        user = User(
            email=email,
            first_name=str(data['first_name']).strip(),
            last_name=str(data['last_name']).strip(),
            phone=data.get('phone'),
            role=role
        )
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        current_app.logger.info(f"Registered {role} account {user.id}")
        return user

    @staticmethod
    def authenticate_user(email: str, password: str) -> Tuple[str, User]:
        """
        Authenticate user

        Args:
            email: User email
            password: User password

        Returns:
            Tuple of (token, user)
        """
        if not validate_email(email):
            raise ValidationError("Invalid email format")
        if not password:
            raise ValidationError("Password is required")

        user = User.query.filter_by(email=email.lower().strip()).first()
        if not user or not user.check_password(password):
            raise AuthenticationError("Invalid email or password")

        if not user.is_active:
            raise AuthorizationError("Account is deactivated. Please contact the administrator.")

        user.last_login = datetime.utcnow()
        db.session.commit()
        return AuthService.issue_token(user), user

    @staticmethod
    def get_current_user() -> Optional[User]:
        """Get the user behind the request's bearer token"""
        auth = request.headers.get('Authorization', '')
        token = None
        if auth.lower().startswith('bearer '):
            token = auth.split(' ', 1)[1].strip()

        # g outlives the request when an app context is already pushed
        cached = g.get('auth_cache')
        if cached is not None and cached[0] == token:
            return cached[1]

        user = None
        payload = AuthService.decode_token(token)
        if payload is not None:
            try:
                uid = int(payload.get('uid'))
            except (TypeError, ValueError):
                uid = None
            if uid is not None:
                user = db.session.get(User, uid)
                if user is not None and not user.is_active:
                    user = None

        g.auth_cache = (token, user)
        return user

    @staticmethod
    def require_auth() -> User:
        """Require authentication - raise exception if not authenticated"""
        user = AuthService.get_current_user()
        if not user:
            raise AuthenticationError("Authentication required")
        return user

    @staticmethod
    def require_role(*roles: str) -> User:
        """Require an authenticated user holding one of the roles"""
        user = AuthService.require_auth()
        if user.role not in roles:
            raise AuthorizationError("Insufficient permissions")
        return user

    @staticmethod
    def update_profile(user: User, data: Dict[str, Any]) -> User:
        """Update editable profile fields"""
        if 'first_name' in data:
            validate_required(data['first_name'], 'First name')
            user.first_name = str(data['first_name']).strip()
        if 'last_name' in data:
            validate_required(data['last_name'], 'Last name')
            user.last_name = str(data['last_name']).strip()
        for field in ('phone', 'address', 'bio'):
            if field in data:
                setattr(user, field, data[field] or None)
        db.session.commit()
        return user

    @staticmethod
    def change_password(user: User, current_password: str, new_password: str) -> None:
        if not current_password or not user.check_password(current_password):
            raise ValidationError("Current password is incorrect")
        if not validate_password(new_password):
            raise ValidationError("Password must be at least 6 characters")
        user.set_password(new_password)
        db.session.commit()

    @staticmethod
    def set_active(user_id: int, is_active: bool, acting_user: User) -> User:
        """Activate or deactivate an account (admin)"""
        user = db.session.get(User, user_id)
        if not user:
            raise NotFoundError("User not found")
        if user.id == acting_user.id and not is_active:
            raise ValidationError("You cannot deactivate your own account")
        user.is_active = bool(is_active)
        db.session.commit()
        current_app.logger.info(
            f"Admin {acting_user.id} set user {user.id} active={user.is_active}"
        )
        return user
