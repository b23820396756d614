"""
Course fee installment plan bookkeeping
"""

from datetime import date, timedelta
from decimal import Decimal, ROUND_CEILING
from typing import List, Optional
from flask import current_app
from kmmedia.models import db, Course, Registration, Payment, InstallmentPlan, User
from kmmedia.models.payment import PAYMENT_PLANS
from kmmedia.utils.exceptions import (
    ValidationError, NotFoundError, ConflictError, AuthorizationError, PaymentError
)
from kmmedia.utils.helpers import add_plan_period, today
from kmmedia.utils.validators import validate_choice, parse_int

CENT = Decimal('0.01')

# Plans that can still take payments
PAYABLE_STATUSES = ('active', 'defaulted')


def compute_installment_amount(total_fee: Decimal, total_installments: int) -> Decimal:
    """Installment size rounded up to a whole currency unit"""
    if total_installments < 1:
        raise ValidationError("Number of installments must be at least 1")
    share = (Decimal(total_fee) / total_installments).to_integral_value(rounding=ROUND_CEILING)
    return share.quantize(CENT)


class InstallmentService:
    """Installment plan service class"""

    @staticmethod
    def get_plan(user_id: int, course_id: int) -> Optional[InstallmentPlan]:
        return InstallmentPlan.query.filter_by(user_id=user_id, course_id=course_id).first()

    @staticmethod
    def get_plan_or_404(plan_id: int) -> InstallmentPlan:
        plan = db.session.get(InstallmentPlan, plan_id)
        if not plan:
            raise NotFoundError("Installment plan not found")
        return plan

    @staticmethod
    def next_installment_amount(plan: InstallmentPlan) -> Decimal:
        """The last installment only covers what is left"""
        return min(Decimal(plan.installment_amount), Decimal(plan.remaining_balance))

    @staticmethod
    def create_plan(user: User, course_id: int, total_installments, payment_plan: str = 'monthly',
                    start_date: Optional[date] = None) -> InstallmentPlan:
        """
        Create an installment plan for the student's course fee

        Args:
            user: Student paying the fee
            course_id: Course the fee belongs to
            total_installments: Number of installments (1..MAX_INSTALLMENTS)
            payment_plan: weekly, monthly or quarterly
            start_date: First due date, defaults to one period from today

        Returns:
            The new plan
        """
        max_installments = current_app.config.get('MAX_INSTALLMENTS', 12)
        total_installments = parse_int(total_installments, 'Number of installments',
                                       min_value=1, max_value=max_installments)
        validate_choice(payment_plan, PAYMENT_PLANS, 'Payment plan')
        if start_date is not None and start_date < today():
            raise ValidationError("Start date cannot be in the past")

        course = db.session.get(Course, course_id)
        if not course:
            raise NotFoundError("Course not found")

        registration = Registration.query.filter_by(user_id=user.id, course_id=course.id).first()
        if not registration or registration.status not in ('pending', 'approved'):
            raise ValidationError("You must have an active application for this course")

        existing = InstallmentService.get_plan(user.id, course.id)
        if existing is not None:
            # A cancelled plan with nothing paid may be replaced
            if existing.status == 'cancelled' and Decimal(existing.amount_paid or 0) == 0:
                db.session.delete(existing)
                db.session.flush()
            else:
                raise ConflictError("An installment plan already exists for this course")

        total_fee = Decimal(course.price or 0).quantize(CENT)
        if total_fee <= 0:
            raise ValidationError("This course has no course fee to pay")

        application_payment = Payment.query.filter_by(
            user_id=user.id, course_id=course.id,
            payment_type='application_fee', status='success'
        ).first()

        plan = InstallmentPlan(
            user_id=user.id,
            course_id=course.id,
            total_course_fee=total_fee,
            total_installments=total_installments,
            installment_amount=compute_installment_amount(total_fee, total_installments),
            paid_installments=0,
            amount_paid=Decimal('0.00'),
            remaining_balance=total_fee,
            next_due_date=start_date or add_plan_period(today(), payment_plan),
            payment_plan=payment_plan,
            status='active',
            application_fee_paid=application_payment is not None,
            application_fee_reference=application_payment.reference if application_payment else None
        )
        db.session.add(plan)
        db.session.commit()
        current_app.logger.info(
            f"Installment plan {plan.id} created for user {user.id} course {course.id}: "
            f"{total_installments} x {plan.installment_amount} {payment_plan}"
        )
        return plan

    @staticmethod
    def ensure_payable(plan: InstallmentPlan) -> None:
        if plan.status not in PAYABLE_STATUSES:
            raise PaymentError(f"Installment plan is {plan.status}")
        if Decimal(plan.remaining_balance) <= 0:
            raise PaymentError("Installment plan has no outstanding balance")

    @staticmethod
    def apply_payment(plan: InstallmentPlan, payment: Payment) -> InstallmentPlan:
        """
        Book a successful installment or course fee payment against the plan.

        Does not commit; the caller owns the transaction.
        """
        amount = Decimal(payment.amount)
        remaining = Decimal(plan.remaining_balance)
        if plan.status == 'cancelled':
            # Money the gateway already took reopens the plan
            current_app.logger.warning(
                f"Payment {payment.reference} settled after plan {plan.id} was cancelled, reactivating"
            )
            plan.status = 'active'
        if remaining <= 0:
            current_app.logger.warning(
                f"Payment {payment.reference} applied to settled plan {plan.id}"
            )

        plan.amount_paid = (Decimal(plan.amount_paid or 0) + amount).quantize(CENT)
        plan.remaining_balance = max(Decimal('0.00'), remaining - amount).quantize(CENT)

        if payment.payment_type == 'course_fee':
            plan.paid_installments = plan.total_installments
        else:
            plan.paid_installments = min(plan.paid_installments + 1, plan.total_installments)

        if plan.remaining_balance <= 0:
            plan.paid_installments = plan.total_installments
            plan.status = 'completed'
            plan.next_due_date = None
        else:
            plan.next_due_date = add_plan_period(plan.next_due_date or today(), plan.payment_plan)
            if plan.status == 'defaulted':
                plan.status = 'active'

        current_app.logger.info(
            f"Plan {plan.id}: applied {amount} from {payment.reference}, "
            f"remaining {plan.remaining_balance}, status {plan.status}"
        )
        return plan

    @staticmethod
    def settle_course_fee(payment: Payment) -> InstallmentPlan:
        """
        Apply a full course fee payment, opening a single-installment plan
        when the student never created one. Does not commit.
        """
        plan = InstallmentService.get_plan(payment.user_id, payment.course_id)
        if plan is None:
            application_payment = Payment.query.filter_by(
                user_id=payment.user_id, course_id=payment.course_id,
                payment_type='application_fee', status='success'
            ).first()
            plan = InstallmentPlan(
                user_id=payment.user_id,
                course_id=payment.course_id,
                total_course_fee=Decimal(payment.amount),
                total_installments=1,
                installment_amount=Decimal(payment.amount),
                paid_installments=0,
                amount_paid=Decimal('0.00'),
                remaining_balance=Decimal(payment.amount),
                payment_plan='monthly',
                status='active',
                application_fee_paid=application_payment is not None,
                application_fee_reference=application_payment.reference if application_payment else None
            )
            db.session.add(plan)
        return InstallmentService.apply_payment(plan, payment)

    @staticmethod
    def mark_application_fee_paid(user_id: int, course_id: int, reference: str) -> Optional[InstallmentPlan]:
        """Flag the plan (if any) once the application fee is settled. Does not commit."""
        plan = InstallmentService.get_plan(user_id, course_id)
        if plan is not None:
            plan.application_fee_paid = True
            plan.application_fee_reference = reference
        return plan

    @staticmethod
    def overdue_plans(as_of: Optional[date] = None) -> List[InstallmentPlan]:
        """Active plans whose next installment is past due"""
        as_of = as_of or today()
        return (InstallmentPlan.query
                .filter(InstallmentPlan.status == 'active',
                        InstallmentPlan.next_due_date.isnot(None),
                        InstallmentPlan.next_due_date < as_of)
                .order_by(InstallmentPlan.next_due_date.asc())
                .all())

    @staticmethod
    def flag_defaulted(grace_days: Optional[int] = None, as_of: Optional[date] = None) -> List[InstallmentPlan]:
        """Mark plans overdue past the grace period as defaulted"""
        if grace_days is None:
            grace_days = current_app.config.get('INSTALLMENT_GRACE_DAYS', 30)
        cutoff = (as_of or today()) - timedelta(days=grace_days)
        plans = [plan for plan in InstallmentService.overdue_plans(as_of) if plan.next_due_date < cutoff]
        for plan in plans:
            plan.status = 'defaulted'
        db.session.commit()
        if plans:
            current_app.logger.info(f"Flagged {len(plans)} installment plan(s) as defaulted")
        return plans

    @staticmethod
    def cancel_plan(plan: InstallmentPlan, acting_user: User) -> InstallmentPlan:
        """
        Cancel a plan. Admins may cancel any unfinished plan, students only
        their own plan before anything has been paid.
        """
        if plan.status in ('completed', 'cancelled'):
            raise ValidationError(f"Installment plan is already {plan.status}")

        if acting_user.role != 'admin':
            if plan.user_id != acting_user.id:
                raise AuthorizationError("You can only cancel your own installment plan")
            if plan.paid_installments > 0 or Decimal(plan.amount_paid or 0) > 0:
                raise ValidationError("Installment plans with payments can only be cancelled by an administrator")

        pending = Payment.query.filter(
            Payment.user_id == plan.user_id,
            Payment.course_id == plan.course_id,
            Payment.payment_type.in_(('installment', 'course_fee')),
            Payment.status == 'pending'
        ).count()
        if pending:
            raise ValidationError("Installment plan has a payment in progress and cannot be cancelled yet")

        plan.status = 'cancelled'
        plan.next_due_date = None
        db.session.commit()
        current_app.logger.info(f"Installment plan {plan.id} cancelled by user {acting_user.id}")
        return plan

    @staticmethod
    def outstanding_balance(user_id: Optional[int] = None) -> Decimal:
        """Sum of remaining balances on payable plans"""
        query = InstallmentPlan.query.filter(InstallmentPlan.status.in_(PAYABLE_STATUSES))
        if user_id is not None:
            query = query.filter_by(user_id=user_id)
        return sum((Decimal(plan.remaining_balance) for plan in query.all()), Decimal('0.00'))
