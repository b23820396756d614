"""
Payment and installment plan models
"""

from datetime import datetime
from kmmedia.models.database import db
from kmmedia.utils.helpers import to_money

PAYMENT_STATUSES = ('pending', 'success', 'failed')
PAYMENT_TYPES = ('application_fee', 'course_fee', 'installment')
PAYMENT_METHODS = ('paystack', 'manual', 'bank_transfer', 'cash', 'mobile_money')
PAYMENT_PLANS = ('weekly', 'monthly', 'quarterly')
PLAN_STATUSES = ('active', 'completed', 'defaulted', 'cancelled')


class Payment(db.Model):
    """A single payment attempt for an application fee, course fee or installment"""
    __tablename__ = 'payments'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    course_id = db.Column(db.Integer, db.ForeignKey('courses.id'), nullable=False, index=True)
    reference = db.Column(db.String(255), unique=True, nullable=False)
    amount = db.Column(db.Numeric(10, 2), nullable=False)
    currency = db.Column(db.String(10), nullable=False, default='GHS')
    status = db.Column(db.Enum(*PAYMENT_STATUSES, name='payment_status'),
                       nullable=False, default='pending', index=True)
    payment_method = db.Column(db.String(50), nullable=False, default='paystack')
    payment_type = db.Column(db.Enum(*PAYMENT_TYPES, name='payment_type'),
                             nullable=False, default='application_fee', index=True)
    installment_number = db.Column(db.Integer, nullable=True)
    total_installments = db.Column(db.Integer, nullable=True)
    installment_amount = db.Column(db.Numeric(10, 2), nullable=True)
    remaining_balance = db.Column(db.Numeric(10, 2), nullable=True)
    payment_metadata = db.Column('metadata', db.JSON, nullable=True)
    paid_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = db.relationship('User', backref=db.backref('payments', lazy=True))
    course = db.relationship('Course', backref=db.backref('payments', lazy=True))

    def to_dict(self):
        """Convert to dictionary"""
        return {
            'id': self.id,
            'user_id': self.user_id,
            'course_id': self.course_id,
            'course_name': self.course.name if self.course else None,
            'student_name': self.user.full_name if self.user else None,
            'reference': self.reference,
            'amount': to_money(self.amount),
            'currency': self.currency,
            'status': self.status,
            'payment_method': self.payment_method,
            'payment_type': self.payment_type,
            'installment_number': self.installment_number,
            'total_installments': self.total_installments,
            'installment_amount': to_money(self.installment_amount),
            'remaining_balance': to_money(self.remaining_balance),
            'metadata': self.payment_metadata,
            'paid_at': self.paid_at.isoformat() if self.paid_at else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None
        }


class InstallmentPlan(db.Model):
    """Course fee installment plan for a student/course pair"""
    __tablename__ = 'course_fee_installments'
    __table_args__ = (
        db.UniqueConstraint('user_id', 'course_id', name='uq_installment_user_course'),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    course_id = db.Column(db.Integer, db.ForeignKey('courses.id'), nullable=False, index=True)
    total_course_fee = db.Column(db.Numeric(10, 2), nullable=False)
    application_fee_paid = db.Column(db.Boolean, nullable=False, default=False)
    application_fee_reference = db.Column(db.String(255), nullable=True)
    total_installments = db.Column(db.Integer, nullable=False)
    installment_amount = db.Column(db.Numeric(10, 2), nullable=False)
    paid_installments = db.Column(db.Integer, nullable=False, default=0)
    amount_paid = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    remaining_balance = db.Column(db.Numeric(10, 2), nullable=False)
    next_due_date = db.Column(db.Date, nullable=True, index=True)
    payment_plan = db.Column(db.Enum(*PAYMENT_PLANS, name='payment_plan'),
                             nullable=False, default='monthly')
    status = db.Column(db.Enum(*PLAN_STATUSES, name='installment_status'),
                       nullable=False, default='active', index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = db.relationship('User', backref=db.backref('installment_plans', lazy=True))
    course = db.relationship('Course', backref=db.backref('installment_plans', lazy=True))

    def to_dict(self):
        """Convert to dictionary"""
        return {
            'id': self.id,
            'user_id': self.user_id,
            'course_id': self.course_id,
            'course_name': self.course.name if self.course else None,
            'student_name': self.user.full_name if self.user else None,
            'total_course_fee': to_money(self.total_course_fee),
            'application_fee_paid': self.application_fee_paid,
            'application_fee_reference': self.application_fee_reference,
            'total_installments': self.total_installments,
            'installment_amount': to_money(self.installment_amount),
            'paid_installments': self.paid_installments,
            'amount_paid': to_money(self.amount_paid),
            'remaining_balance': to_money(self.remaining_balance),
            'next_due_date': self.next_due_date.isoformat() if self.next_due_date else None,
            'payment_plan': self.payment_plan,
            'status': self.status,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None
        }
