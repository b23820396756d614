"""
Course content models: modules, materials, assignments and quizzes
"""

from datetime import datetime
from kmmedia.models.database import db

MATERIAL_TYPES = ('document', 'video', 'link', 'file')
SUBMISSION_STATUSES = ('submitted', 'graded', 'late')
QUESTION_TYPES = ('multiple_choice', 'true_false', 'short_answer')
ATTEMPT_STATUSES = ('in_progress', 'completed', 'abandoned')
PROGRESS_STATUSES = ('not_started', 'in_progress', 'completed')


class CourseModule(db.Model):
    """Ordered section of a course grouping its materials"""
    __tablename__ = 'course_modules'

    id = db.Column(db.Integer, primary_key=True)
    course_id = db.Column(db.Integer, db.ForeignKey('courses.id'), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    order_number = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    materials = db.relationship('CourseMaterial', backref='module', lazy=True,
                                order_by='CourseMaterial.order_index')

    def to_dict(self, materials=None):
        """Convert to dictionary"""
        data = {
            'id': self.id,
            'course_id': self.course_id,
            'name': self.name,
            'description': self.description,
            'order_number': self.order_number,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }
        if materials is not None:
            data['materials'] = [material.to_dict() for material in materials]
        return data


class CourseMaterial(db.Model):
    """Document, video, link or file attached to a course"""
    __tablename__ = 'course_materials'

    id = db.Column(db.Integer, primary_key=True)
    course_id = db.Column(db.Integer, db.ForeignKey('courses.id'), nullable=False, index=True)
    module_id = db.Column(db.Integer, db.ForeignKey('course_modules.id', ondelete='SET NULL'),
                          nullable=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    type = db.Column(db.Enum(*MATERIAL_TYPES, name='material_type'), nullable=False)
    file_url = db.Column(db.Text, nullable=True)
    file_name = db.Column(db.String(255), nullable=True)
    file_size = db.Column(db.Integer, nullable=True)
    duration = db.Column(db.Integer, nullable=True)  # minutes, videos only
    order_index = db.Column(db.Integer, nullable=False, default=0)
    is_public = db.Column(db.Boolean, nullable=False, default=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    view_count = db.Column(db.Integer, nullable=False, default=0)
    download_count = db.Column(db.Integer, nullable=False, default=0)
    uploaded_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        """Convert to dictionary"""
        return {
            'id': self.id,
            'course_id': self.course_id,
            'module_id': self.module_id,
            'title': self.title,
            'description': self.description,
            'type': self.type,
            'file_url': self.file_url,
            'file_name': self.file_name,
            'file_size': self.file_size,
            'duration': self.duration,
            'order_index': self.order_index,
            'is_public': self.is_public,
            'is_active': self.is_active,
            'view_count': self.view_count,
            'download_count': self.download_count,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }


class MaterialProgress(db.Model):
    """Per-student completion record for a material"""
    __tablename__ = 'student_progress'
    __table_args__ = (
        db.UniqueConstraint('student_id', 'material_id', name='uq_progress_student_material'),
    )

    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    course_id = db.Column(db.Integer, db.ForeignKey('courses.id'), nullable=False, index=True)
    material_id = db.Column(db.Integer, db.ForeignKey('course_materials.id', ondelete='CASCADE'),
                            nullable=False)
    status = db.Column(db.Enum(*PROGRESS_STATUSES, name='progress_status'),
                       nullable=False, default='in_progress')
    time_spent = db.Column(db.Integer, nullable=True)  # minutes
    completed_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'student_id': self.student_id,
            'course_id': self.course_id,
            'material_id': self.material_id,
            'status': self.status,
            'time_spent': self.time_spent,
            'completed_at': self.completed_at.isoformat() if self.completed_at else None
        }


class Assignment(db.Model):
    """Graded course assignment"""
    __tablename__ = 'assignments'

    id = db.Column(db.Integer, primary_key=True)
    course_id = db.Column(db.Integer, db.ForeignKey('courses.id'), nullable=False, index=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=False)
    instructions = db.Column(db.Text, nullable=True)
    due_date = db.Column(db.DateTime, nullable=True)
    max_score = db.Column(db.Integer, nullable=False, default=100)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    submissions = db.relationship('AssignmentSubmission', backref='assignment', lazy=True,
                                  cascade='all, delete-orphan')

    def to_dict(self):
        """Convert to dictionary"""
        return {
            'id': self.id,
            'course_id': self.course_id,
            'title': self.title,
            'description': self.description,
            'instructions': self.instructions,
            'due_date': self.due_date.isoformat() if self.due_date else None,
            'max_score': self.max_score,
            'is_active': self.is_active,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }


class AssignmentSubmission(db.Model):
    """A student's submission for an assignment"""
    __tablename__ = 'assignment_submissions'
    __table_args__ = (
        db.UniqueConstraint('assignment_id', 'student_id', name='uq_submission_assignment_student'),
    )

    id = db.Column(db.Integer, primary_key=True)
    assignment_id = db.Column(db.Integer, db.ForeignKey('assignments.id'), nullable=False, index=True)
    student_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    submission_text = db.Column(db.Text, nullable=True)
    file_url = db.Column(db.Text, nullable=True)
    file_name = db.Column(db.String(255), nullable=True)
    submitted_at = db.Column(db.DateTime, default=datetime.utcnow)
    graded_at = db.Column(db.DateTime, nullable=True)
    graded_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    score = db.Column(db.Integer, nullable=True)
    feedback = db.Column(db.Text, nullable=True)
    status = db.Column(db.Enum(*SUBMISSION_STATUSES, name='submission_status'),
                       nullable=False, default='submitted')
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    student = db.relationship('User', foreign_keys=[student_id])

    def to_dict(self):
        """Convert to dictionary"""
        return {
            'id': self.id,
            'assignment_id': self.assignment_id,
            'student_id': self.student_id,
            'student_name': self.student.full_name if self.student else None,
            'submission_text': self.submission_text,
            'file_url': self.file_url,
            'file_name': self.file_name,
            'submitted_at': self.submitted_at.isoformat() if self.submitted_at else None,
            'graded_at': self.graded_at.isoformat() if self.graded_at else None,
            'score': self.score,
            'feedback': self.feedback,
            'status': self.status
        }


class Quiz(db.Model):
    """Timed, auto-graded course quiz"""
    __tablename__ = 'quizzes'

    id = db.Column(db.Integer, primary_key=True)
    course_id = db.Column(db.Integer, db.ForeignKey('courses.id'), nullable=False, index=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    time_limit = db.Column(db.Integer, nullable=True)  # minutes, None for no limit
    max_attempts = db.Column(db.Integer, nullable=False, default=1)
    passing_score = db.Column(db.Integer, nullable=False, default=70)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    questions = db.relationship('QuizQuestion', backref='quiz', lazy=True,
                                cascade='all, delete-orphan',
                                order_by='QuizQuestion.order_index')
    attempts = db.relationship('QuizAttempt', backref='quiz', lazy=True,
                               cascade='all, delete-orphan')

    @property
    def total_points(self):
        return sum(question.points for question in self.questions)

    def to_dict(self, include_questions=False, include_answers=False):
        """Convert to dictionary"""
        data = {
            'id': self.id,
            'course_id': self.course_id,
            'title': self.title,
            'description': self.description,
            'time_limit': self.time_limit,
            'max_attempts': self.max_attempts,
            'passing_score': self.passing_score,
            'is_active': self.is_active,
            'question_count': len(self.questions),
            'total_points': self.total_points,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }
        if include_questions:
            data['questions'] = [q.to_dict(include_answer=include_answers) for q in self.questions]
        return data


class QuizQuestion(db.Model):
    """Quiz question"""
    __tablename__ = 'quiz_questions'

    id = db.Column(db.Integer, primary_key=True)
    quiz_id = db.Column(db.Integer, db.ForeignKey('quizzes.id'), nullable=False, index=True)
    question = db.Column(db.Text, nullable=False)
    question_type = db.Column(db.Enum(*QUESTION_TYPES, name='question_type'), nullable=False)
    options = db.Column(db.JSON, nullable=True)
    correct_answer = db.Column(db.Text, nullable=False)
    points = db.Column(db.Integer, nullable=False, default=1)
    order_index = db.Column(db.Integer, nullable=False, default=0)

    def to_dict(self, include_answer=False):
        data = {
            'id': self.id,
            'question': self.question,
            'question_type': self.question_type,
            'options': self.options,
            'points': self.points,
            'order_index': self.order_index
        }
        if include_answer:
            data['correct_answer'] = self.correct_answer
        return data


class QuizAttempt(db.Model):
    """A student's attempt at a quiz"""
    __tablename__ = 'quiz_attempts'

    id = db.Column(db.Integer, primary_key=True)
    quiz_id = db.Column(db.Integer, db.ForeignKey('quizzes.id'), nullable=False, index=True)
    student_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    started_at = db.Column(db.DateTime, default=datetime.utcnow)
    completed_at = db.Column(db.DateTime, nullable=True)
    score = db.Column(db.Integer, nullable=True)  # percentage
    points_earned = db.Column(db.Integer, nullable=True)
    passed = db.Column(db.Boolean, nullable=True)
    answers = db.Column(db.JSON, nullable=True)
    status = db.Column(db.Enum(*ATTEMPT_STATUSES, name='attempt_status'),
                       nullable=False, default='in_progress')
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        """Convert to dictionary"""
        return {
            'id': self.id,
            'quiz_id': self.quiz_id,
            'student_id': self.student_id,
            'started_at': self.started_at.isoformat() if self.started_at else None,
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
            'score': self.score,
            'points_earned': self.points_earned,
            'passed': self.passed,
            'status': self.status
        }
