"""
Payment service: application fees, course fees and installments
"""

import json
from datetime import datetime, timedelta, date
from decimal import Decimal
from typing import Any, Dict, List, Optional
from flask import current_app
from kmmedia.models import db, Course, Payment, Registration, User
from kmmedia.models.payment import PAYMENT_STATUSES, PAYMENT_TYPES, PAYMENT_METHODS
from kmmedia.services.installment_service import InstallmentService, CENT
from kmmedia.services.notification_service import NotificationService
from kmmedia.services.paystack_client import (
    PaystackClient, from_minor_units, verify_webhook_signature
)
from kmmedia.services.registration_service import RegistrationService
from kmmedia.utils.exceptions import (
    ValidationError, AuthenticationError, AuthorizationError, NotFoundError,
    ConflictError, PaymentError
)
from kmmedia.utils.helpers import generate_payment_reference, to_money, utcnow
from kmmedia.utils.validators import validate_choice, parse_amount

# Offline payment methods an administrator may record
MANUAL_METHODS = tuple(method for method in PAYMENT_METHODS if method != 'paystack')

# Gateway statuses that end a transaction without money changing hands
FAILED_GATEWAY_STATUSES = ('failed', 'abandoned', 'reversed')


class PaymentService:
    """Payment service class"""

    @staticmethod
    def _get_active_course(course_id: int) -> Course:
        course = db.session.get(Course, course_id) if course_id else None
        if not course or not course.is_active:
            raise NotFoundError("Course not found or inactive")
        return course

    @staticmethod
    def _start_checkout(user: User, course: Course, amount: Decimal, payment_type: str,
                        metadata: Dict[str, Any], **fields) -> Dict[str, Any]:
        """
        Open a hosted checkout and record the pending payment.

        The gateway is called first so a failed initialisation leaves no row behind.
        """
        amount = Decimal(amount).quantize(CENT)
        if amount <= 0:
            raise PaymentError("Nothing to pay")

        reference = generate_payment_reference()
        currency = current_app.config.get('CURRENCY', 'GHS')
        callback_url = f"{current_app.config['CLIENT_URL'].rstrip('/')}/payment/callback"
        metadata = dict(metadata, user_id=user.id, course_id=course.id, payment_type=payment_type)

        client = PaystackClient.from_config()
        gateway = client.initialize_transaction(
            user.email, amount, reference, callback_url, currency, metadata
        )

        payment = Payment(
            user_id=user.id,
            course_id=course.id,
            reference=reference,
            amount=amount,
            currency=currency,
            status='pending',
            payment_method='paystack',
            payment_type=payment_type,
            payment_metadata=metadata,
            **fields
        )
        db.session.add(payment)
        db.session.commit()
        current_app.logger.info(
            f"Initialized {payment_type} payment {reference} for user {user.id} course {course.id}: "
            f"{amount} {currency}"
        )
        return {
            'payment': payment.to_dict(),
            'reference': reference,
            'authorization_url': gateway.get('authorization_url'),
            'access_code': gateway.get('access_code')
        }

    @staticmethod
    def initialize_application_fee(user: User, course_id: int, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Start the application fee checkout for a course

        Args:
            user: Paying student
            course_id: Course applied for
            data: Optional contact details forwarded to the gateway

        Returns:
            Payment record plus the gateway authorization URL
        """
        data = data or {}
        course = PaymentService._get_active_course(course_id)

        already_paid = Payment.query.filter_by(
            user_id=user.id, course_id=course.id,
            payment_type='application_fee', status='success'
        ).first()
        if already_paid:
            raise ConflictError("You have already paid the application fee for this course")

        metadata = {
            'application_type': 'course_registration',
            'first_name': data.get('first_name') or user.first_name,
            'last_name': data.get('last_name') or user.last_name,
            'phone': data.get('phone') or user.phone
        }
        amount = Decimal(str(current_app.config['APPLICATION_FEE']))
        return PaymentService._start_checkout(user, course, amount, 'application_fee', metadata)

    @staticmethod
    def initialize_course_fee(user: User, course_id: int) -> Dict[str, Any]:
        """Start a checkout for the whole outstanding course fee"""
        course = PaymentService._get_active_course(course_id)

        registration = Registration.query.filter_by(user_id=user.id, course_id=course.id).first()
        if not registration or registration.status not in ('pending', 'approved'):
            raise ValidationError("You must have an active application for this course")

        plan = InstallmentService.get_plan(user.id, course.id)
        if plan is not None:
            InstallmentService.ensure_payable(plan)
            amount = Decimal(plan.remaining_balance)
            total_installments = plan.total_installments
        else:
            already_paid = Payment.query.filter_by(
                user_id=user.id, course_id=course.id,
                payment_type='course_fee', status='success'
            ).first()
            if already_paid:
                raise ConflictError("The course fee has already been paid")
            amount = Decimal(course.price or 0)
            total_installments = 1

        return PaymentService._start_checkout(
            user, course, amount, 'course_fee', {},
            total_installments=total_installments,
            remaining_balance=Decimal('0.00')
        )

    @staticmethod
    def initialize_installment(user: User, plan_id: int) -> Dict[str, Any]:
        """
        Start a checkout for the next installment of a plan

        Args:
            user: Plan owner
            plan_id: Installment plan id

        Returns:
            Payment record plus the gateway authorization URL
        """
        plan = InstallmentService.get_plan_or_404(plan_id)
        if plan.user_id != user.id:
            raise AuthorizationError("You can only pay your own installment plan")
        InstallmentService.ensure_payable(plan)

        amount = InstallmentService.next_installment_amount(plan)
        installment_number = min(plan.paid_installments + 1, plan.total_installments)
        metadata = {
            'installment_plan_id': plan.id,
            'installment_number': installment_number
        }
        return PaymentService._start_checkout(
            user, plan.course, amount, 'installment', metadata,
            installment_number=installment_number,
            total_installments=plan.total_installments,
            installment_amount=plan.installment_amount,
            remaining_balance=(Decimal(plan.remaining_balance) - amount).quantize(CENT)
        )

    @staticmethod
    def get_by_reference(reference: str, user: User) -> Payment:
        payment = Payment.query.filter_by(reference=reference).first()
        if not payment:
            raise NotFoundError("Payment not found")
        if user.role != 'admin' and payment.user_id != user.id:
            raise AuthorizationError("You do not have access to this payment")
        return payment

    @staticmethod
    def verify_payment(reference: str, user: User) -> Payment:
        """
        Confirm a payment with the gateway and apply the result.

        Payments already out of pending are returned as-is without a gateway call.
        """
        if not reference:
            raise ValidationError("Payment reference is required")
        payment = PaymentService.get_by_reference(reference, user)
        if payment.status != 'pending':
            return payment

        data = PaystackClient.from_config().verify_transaction(reference)
        PaymentService._settle(payment, data)
        db.session.commit()
        return payment

    @staticmethod
    def handle_webhook(raw_body: bytes, signature: Optional[str]) -> Optional[Payment]:
        """
        Process a gateway event

        Args:
            raw_body: Request body exactly as received
            signature: Value of the x-paystack-signature header

        Returns:
            The affected payment, or None when the event is ignored
        """
        secret = current_app.config.get('PAYSTACK_WEBHOOK_SECRET') or current_app.config.get('PAYSTACK_SECRET_KEY')
        if not verify_webhook_signature(raw_body, signature, secret):
            current_app.logger.warning("Rejected webhook with invalid signature")
            raise AuthenticationError("Invalid webhook signature")

        try:
            event = json.loads(raw_body or b'{}')
        except ValueError:
            raise ValidationError("Malformed webhook payload")

        event_type = event.get('event')
        if event_type != 'charge.success':
            current_app.logger.info(f"Ignoring webhook event {event_type}")
            return None

        data = event.get('data') or {}
        reference = data.get('reference')
        payment = Payment.query.filter_by(reference=reference).first() if reference else None
        if payment is None:
            current_app.logger.warning(f"Webhook for unknown payment reference {reference}")
            return None

        if payment.status == 'pending':
            PaymentService._settle(payment, data)
            db.session.commit()
        return payment

    @staticmethod
    def _settle(payment: Payment, data: Dict[str, Any]) -> None:
        """Move a pending payment to its final state from gateway data. Does not commit."""
        gateway_status = data.get('status')
        metadata = dict(payment.payment_metadata or {})
        metadata['gateway_status'] = gateway_status
        if data.get('id') is not None:
            metadata['transaction_id'] = data.get('id')
        if data.get('channel'):
            metadata['channel'] = data.get('channel')

        if gateway_status == 'success':
            received = from_minor_units(data.get('amount'))
            if received is not None and received < Decimal(payment.amount):
                payment.status = 'failed'
                metadata['failure_reason'] = 'amount_mismatch'
                metadata['amount_received'] = str(received)
                current_app.logger.error(
                    f"Payment {payment.reference} underpaid: expected {payment.amount}, got {received}"
                )
            else:
                payment.status = 'success'
                payment.paid_at = utcnow()
                PaymentService._apply_success(payment)
        elif gateway_status in FAILED_GATEWAY_STATUSES:
            payment.status = 'failed'
            metadata['failure_reason'] = data.get('gateway_response') or gateway_status

        payment.payment_metadata = metadata
        current_app.logger.info(f"Payment {payment.reference} is {payment.status} (gateway: {gateway_status})")

    @staticmethod
    def _apply_success(payment: Payment) -> None:
        """Book a successful payment against registrations and plans"""
        if payment.payment_type == 'application_fee':
            InstallmentService.mark_application_fee_paid(payment.user_id, payment.course_id, payment.reference)
            RegistrationService.ensure_from_payment(payment)
        elif payment.payment_type == 'installment':
            plan = InstallmentService.get_plan(payment.user_id, payment.course_id)
            if plan is None:
                current_app.logger.error(f"Installment payment {payment.reference} has no plan to apply to")
            else:
                InstallmentService.apply_payment(plan, payment)
                payment.remaining_balance = plan.remaining_balance
        else:
            plan = InstallmentService.settle_course_fee(payment)
            payment.remaining_balance = plan.remaining_balance

        label = payment.payment_type.replace('_', ' ')
        course_name = payment.course.name if payment.course else 'your course'
        NotificationService.notify(
            payment.user,
            'payment',
            'Payment received',
            f"Your {label} payment of {payment.currency} {Decimal(payment.amount):,.2f} for "
            f"{course_name} was successful. Reference: {payment.reference}",
            send_email=False
        )
        NotificationService.send_payment_receipt(payment.user, payment)

    @staticmethod
    def record_manual_payment(plan_id: int, data: Dict[str, Any], admin: User) -> Payment:
        """
        Record an offline payment against an installment plan

        Args:
            plan_id: Installment plan id
            data: amount, optional payment_method, reference and notes
            admin: Administrator recording the payment

        Returns:
            The successful payment
        """
        plan = InstallmentService.get_plan_or_404(plan_id)
        InstallmentService.ensure_payable(plan)

        amount = parse_amount(data.get('amount'), 'Amount', min_value=CENT)
        if amount > Decimal(plan.remaining_balance):
            raise ValidationError(
                f"Amount exceeds the remaining balance of {Decimal(plan.remaining_balance):,.2f}"
            )
        method = validate_choice(data.get('payment_method') or 'manual', MANUAL_METHODS, 'Payment method')

        reference = (data.get('reference') or '').strip() or generate_payment_reference()
        if Payment.query.filter_by(reference=reference).first():
            raise ConflictError("A payment with this reference already exists")

        payment = Payment(
            user_id=plan.user_id,
            course_id=plan.course_id,
            reference=reference,
            amount=amount,
            currency=current_app.config.get('CURRENCY', 'GHS'),
            status='success',
            payment_method=method,
            payment_type='installment',
            installment_number=min(plan.paid_installments + 1, plan.total_installments),
            total_installments=plan.total_installments,
            installment_amount=plan.installment_amount,
            payment_metadata={'recorded_by': admin.id, 'notes': data.get('notes')},
            paid_at=utcnow()
        )
        db.session.add(payment)
        db.session.flush()

        InstallmentService.apply_payment(plan, payment)
        payment.remaining_balance = plan.remaining_balance
        NotificationService.notify(
            plan.user,
            'payment',
            'Payment recorded',
            f"A {method.replace('_', ' ')} payment of {payment.currency} {amount:,.2f} was recorded "
            f"for {plan.course.name}. Remaining balance: {payment.currency} {Decimal(plan.remaining_balance):,.2f}"
        )
        db.session.commit()
        current_app.logger.info(f"Admin {admin.id} recorded {method} payment {reference} on plan {plan.id}")
        return payment

    @staticmethod
    def get_user_payments(user: User) -> List[Payment]:
        return (Payment.query
                .filter_by(user_id=user.id)
                .order_by(Payment.created_at.desc(), Payment.id.desc())
                .all())

    @staticmethod
    def list_payments(filters: Dict[str, Any], page: int = 1, per_page: int = 20) -> Dict[str, Any]:
        """Filtered, paginated payment list for administrators"""
        query = Payment.query
        if filters.get('status'):
            validate_choice(filters['status'], PAYMENT_STATUSES, 'Status')
            query = query.filter(Payment.status == filters['status'])
        if filters.get('payment_type'):
            validate_choice(filters['payment_type'], PAYMENT_TYPES, 'Payment type')
            query = query.filter(Payment.payment_type == filters['payment_type'])
        if filters.get('course_id'):
            query = query.filter(Payment.course_id == filters['course_id'])
        if filters.get('user_id'):
            query = query.filter(Payment.user_id == filters['user_id'])
        if filters.get('search'):
            term = f"%{filters['search'].strip()}%"
            query = query.join(User, Payment.user_id == User.id).filter(db.or_(
                Payment.reference.ilike(term),
                User.email.ilike(term),
                User.first_name.ilike(term),
                User.last_name.ilike(term)
            ))

        pagination = (query.order_by(Payment.created_at.desc(), Payment.id.desc())
                      .paginate(page=page, per_page=per_page, error_out=False))
        return {
            'payments': [payment.to_dict() for payment in pagination.items],
            'pagination': {
                'page': pagination.page,
                'per_page': pagination.per_page,
                'total': pagination.total,
                'pages': pagination.pages
            }
        }

    @staticmethod
    def total_revenue(start: Optional[date] = None, end: Optional[date] = None) -> Decimal:
        """Sum of successful payments, optionally within an inclusive date range"""
        query = db.session.query(db.func.coalesce(db.func.sum(Payment.amount), 0)).filter(
            Payment.status == 'success'
        )
        if start is not None:
            query = query.filter(Payment.paid_at >= datetime.combine(start, datetime.min.time()))
        if end is not None:
            query = query.filter(Payment.paid_at < datetime.combine(end + timedelta(days=1), datetime.min.time()))
        return Decimal(str(query.scalar() or 0)).quantize(CENT)

    @staticmethod
    def monthly_revenue(year: int) -> List[Dict[str, Any]]:
        """Successful payment totals for each month of a year"""
        payments = Payment.query.filter(
            Payment.status == 'success',
            Payment.paid_at >= datetime(year, 1, 1),
            Payment.paid_at < datetime(year + 1, 1, 1)
        ).all()

        months = {month: {'month': month, 'revenue': Decimal('0.00'), 'count': 0} for month in range(1, 13)}
        for payment in payments:
            bucket = months[payment.paid_at.month]
            bucket['revenue'] += Decimal(payment.amount)
            bucket['count'] += 1
        return [
            {'month': bucket['month'], 'revenue': to_money(bucket['revenue']), 'count': bucket['count']}
            for bucket in months.values()
        ]

    @staticmethod
    def revenue_by_type() -> Dict[str, float]:
        rows = (db.session.query(Payment.payment_type, db.func.sum(Payment.amount))
                .filter(Payment.status == 'success')
                .group_by(Payment.payment_type)
                .all())
        totals = {payment_type: 0.0 for payment_type in PAYMENT_TYPES}
        for payment_type, total in rows:
            totals[payment_type] = to_money(Decimal(str(total or 0)))
        return totals

    @staticmethod
    def analytics() -> Dict[str, Any]:
        """Overview of payments by type and status"""
        status_rows = (db.session.query(Payment.status, db.func.count(Payment.id))
                       .group_by(Payment.status)
                       .all())
        by_status = {status: 0 for status in PAYMENT_STATUSES}
        for status, count in status_rows:
            by_status[status] = count

        type_rows = (db.session.query(Payment.payment_type, db.func.count(Payment.id))
                     .filter(Payment.status == 'success')
                     .group_by(Payment.payment_type)
                     .all())
        count_by_type = {payment_type: 0 for payment_type in PAYMENT_TYPES}
        for payment_type, count in type_rows:
            count_by_type[payment_type] = count

        return {
            'total_revenue': to_money(PaymentService.total_revenue()),
            'revenue_by_type': PaymentService.revenue_by_type(),
            'successful_by_type': count_by_type,
            'by_status': by_status,
            'total_payments': sum(by_status.values()),
            'outstanding_balance': to_money(InstallmentService.outstanding_balance()),
            'overdue_plans': len(InstallmentService.overdue_plans())
        }
