"""
Course registration (enrollment) model
"""

from datetime import datetime
from kmmedia.models.database import db

REGISTRATION_STATUSES = ('pending', 'approved', 'rejected', 'completed')

# Application form fields accepted from the student
APPLICATION_FIELDS = (
    'first_name', 'last_name', 'email', 'phone', 'full_name', 'date_of_birth',
    'residential_address', 'nationality', 'religion', 'marital_status', 'occupation',
    'telephone', 'level_of_education', 'name_of_school', 'year_attended_from',
    'year_attended_to', 'certificate_obtained', 'parent_guardian_name',
    'parent_guardian_occupation', 'parent_guardian_address', 'parent_guardian_contact',
    'parent_guardian_telephone', 'preferred_course', 'academic_year', 'declaration',
    'comments', 'notes'
)


class Registration(db.Model):
    """A student's application and enrollment for one course"""
    __tablename__ = 'registrations'
    __table_args__ = (
        db.UniqueConstraint('user_id', 'course_id', name='uq_registration_user_course'),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    course_id = db.Column(db.Integer, db.ForeignKey('courses.id'), nullable=False, index=True)
    status = db.Column(db.Enum(*REGISTRATION_STATUSES, name='registration_status'),
                       nullable=False, default='pending')
    registration_date = db.Column(db.DateTime, default=datetime.utcnow)

    # Personal information
    first_name = db.Column(db.String(255), nullable=True)
    last_name = db.Column(db.String(255), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(50), nullable=True)
    full_name = db.Column(db.String(255), nullable=True)
    date_of_birth = db.Column(db.Date, nullable=True)
    residential_address = db.Column(db.Text, nullable=True)
    nationality = db.Column(db.String(100), nullable=True)
    religion = db.Column(db.String(100), nullable=True)
    marital_status = db.Column(db.String(50), nullable=True)
    occupation = db.Column(db.String(255), nullable=True)
    telephone = db.Column(db.String(50), nullable=True)

    # Educational background
    level_of_education = db.Column(db.String(100), nullable=True)
    name_of_school = db.Column(db.String(255), nullable=True)
    year_attended_from = db.Column(db.Integer, nullable=True)
    year_attended_to = db.Column(db.Integer, nullable=True)
    certificate_obtained = db.Column(db.String(255), nullable=True)

    # Parent / guardian
    parent_guardian_name = db.Column(db.String(255), nullable=True)
    parent_guardian_occupation = db.Column(db.String(255), nullable=True)
    parent_guardian_address = db.Column(db.Text, nullable=True)
    parent_guardian_contact = db.Column(db.String(50), nullable=True)
    parent_guardian_telephone = db.Column(db.String(50), nullable=True)

    preferred_course = db.Column(db.Text, nullable=True)
    academic_year = db.Column(db.String(50), nullable=True)
    declaration = db.Column(db.Text, nullable=True)
    comments = db.Column(db.Text, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def grants_access(self):
        """Approved and completed enrollments open the course content"""
        return self.status in ('approved', 'completed')

    def to_dict(self, include_application=False):
        """Convert to dictionary"""
        data = {
            'id': self.id,
            'user_id': self.user_id,
            'course_id': self.course_id,
            'course_name': self.course.name if self.course else None,
            'student_name': self.student.full_name if self.student else None,
            'student_email': self.student.email if self.student else None,
            'status': self.status,
            'registration_date': self.registration_date.isoformat() if self.registration_date else None,
            'notes': self.notes,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None
        }
        if include_application:
            for field in APPLICATION_FIELDS:
                value = getattr(self, field)
                if field == 'date_of_birth' and value is not None:
                    value = value.isoformat()
                data[field] = value
        return data
