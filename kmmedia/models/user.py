"""
User model for the KM Media application
"""

from datetime import datetime
from werkzeug.security import generate_password_hash, check_password_hash
from kmmedia.models.database import db

ROLES = ('student', 'trainer', 'admin')


class User(db.Model):
    """Student, trainer or admin account"""
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    phone = db.Column(db.String(50), nullable=True)
    address = db.Column(db.Text, nullable=True)
    bio = db.Column(db.Text, nullable=True)
    role = db.Column(db.Enum(*ROLES, name='user_role'), nullable=False, default='student')
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    last_login = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    registrations = db.relationship('Registration', backref='student', lazy=True,
                                    foreign_keys='Registration.user_id')
    notifications = db.relationship('Notification', backref='user', lazy=True,
                                    cascade='all, delete-orphan')
    trainer_profile = db.relationship('TrainerProfile', backref='user', uselist=False,
                                      cascade='all, delete-orphan')

    def set_password(self, password):
        """Set password hash"""
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        """Check password"""
        return check_password_hash(self.password_hash, password)

    @property
    def full_name(self):
        """Get full name"""
        return f"{self.first_name} {self.last_name}"

    def to_dict(self):
        """Convert to dictionary"""
        return {
            'id': self.id,
            'email': self.email,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'full_name': self.full_name,
            'phone': self.phone,
            'address': self.address,
            'bio': self.bio,
            'role': self.role,
            'is_active': self.is_active,
            'last_login': self.last_login.isoformat() if self.last_login else None,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }


class TrainerProfile(db.Model):
    """Teaching details kept for trainer accounts"""
    __tablename__ = 'trainer_profiles'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, unique=True)
    specialization = db.Column(db.String(255), nullable=False)
    experience = db.Column(db.Integer, nullable=False, default=0)  # years
    certifications = db.Column(db.Text, nullable=True)
    hourly_rate = db.Column(db.Numeric(10, 2), nullable=True)
    availability = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            'specialization': self.specialization,
            'experience': self.experience,
            'certifications': self.certifications,
            'hourly_rate': float(self.hourly_rate) if self.hourly_rate is not None else None,
            'availability': self.availability
        }
