"""
Course catalog model
"""

from datetime import datetime
from kmmedia.models.database import db
from kmmedia.utils.helpers import to_money

LEVELS = ('beginner', 'intermediate', 'advanced')


class Course(db.Model):
    """Course offered by the institute"""
    __tablename__ = 'courses'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=False)
    excerpt = db.Column(db.String(500), nullable=True)
    duration = db.Column(db.String(100), nullable=False)
    price = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    max_students = db.Column(db.Integer, nullable=False, default=30)
    level = db.Column(db.Enum(*LEVELS, name='course_level'), nullable=False, default='beginner')
    category = db.Column(db.String(100), nullable=False)
    instructor_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    featured_image = db.Column(db.Text, nullable=True)
    syllabus = db.Column(db.Text, nullable=True)
    requirements = db.Column(db.Text, nullable=True)
    learning_outcomes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    instructor = db.relationship('User', foreign_keys=[instructor_id])
    registrations = db.relationship('Registration', backref='course', lazy=True)
    modules = db.relationship('CourseModule', backref='course', lazy=True,
                              cascade='all, delete-orphan',
                              order_by='CourseModule.order_number')
    materials = db.relationship('CourseMaterial', backref='course', lazy=True,
                                cascade='all, delete-orphan')
    assignments = db.relationship('Assignment', backref='course', lazy=True,
                                  cascade='all, delete-orphan')
    quizzes = db.relationship('Quiz', backref='course', lazy=True,
                              cascade='all, delete-orphan')

    def to_dict(self):
        """Convert to dictionary"""
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'excerpt': self.excerpt,
            'duration': self.duration,
            'price': to_money(self.price),
            'max_students': self.max_students,
            'level': self.level,
            'category': self.category,
            'instructor_id': self.instructor_id,
            'instructor_name': self.instructor.full_name if self.instructor else None,
            'is_active': self.is_active,
            'featured_image': self.featured_image,
            'syllabus': self.syllabus,
            'requirements': self.requirements,
            'learning_outcomes': self.learning_outcomes,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None
        }
