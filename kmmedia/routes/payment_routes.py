"""
Payment and installment plan routes
"""

from datetime import datetime
from flask import Blueprint, request, jsonify
from kmmedia.models import db, InstallmentPlan
from kmmedia.models.payment import PLAN_STATUSES
from kmmedia.services import AuthService, PaymentService, InstallmentService
from kmmedia.utils import (
    KMMediaException, validate_choice, parse_int, parse_date, to_money, log_error, log_info,
    create_response
)

payments_bp = Blueprint('payments', __name__)


@payments_bp.route('/application-fee/initialize', methods=['POST'])
def initialize_application_fee():
    """Start the application fee checkout"""
    try:
        user = AuthService.require_role('student')
        data = request.get_json(silent=True) or {}
        course_id = parse_int(data.get('course_id'), 'Course')
        result = PaymentService.initialize_application_fee(user, course_id, data)
        return jsonify(create_response(True, "Payment initialized", result)), 201
    except KMMediaException as e:
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        db.session.rollback()
        log_error("Application fee initialization error", e)
        return jsonify(create_response(False, "Failed to initialize payment")), 500


@payments_bp.route('/course-fee/initialize', methods=['POST'])
def initialize_course_fee():
    """Start a checkout for the full outstanding course fee"""
    try:
        user = AuthService.require_role('student')
        data = request.get_json(silent=True) or {}
        course_id = parse_int(data.get('course_id'), 'Course')
        result = PaymentService.initialize_course_fee(user, course_id)
        return jsonify(create_response(True, "Payment initialized", result)), 201
    except KMMediaException as e:
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        db.session.rollback()
        log_error("Course fee initialization error", e)
        return jsonify(create_response(False, "Failed to initialize payment")), 500


@payments_bp.route('/verify/<reference>', methods=['GET'])
@payments_bp.route('/verify', methods=['POST'], defaults={'reference': None})
def verify_payment(reference):
    """Confirm a payment after the gateway redirects back"""
    try:
        user = AuthService.require_auth()
        if reference is None:
            reference = ((request.get_json(silent=True) or {}).get('reference') or '').strip()
        payment = PaymentService.verify_payment(reference, user)
        if payment.status == 'success':
            message = "Payment verified successfully"
        elif payment.status == 'failed':
            message = "Payment failed"
        else:
            message = "Payment is still pending"
        return jsonify(create_response(True, message, payment.to_dict()))
    except KMMediaException as e:
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        db.session.rollback()
        log_error("Payment verification error", e)
        return jsonify(create_response(False, "Failed to verify payment")), 500


@payments_bp.route('/webhook', methods=['POST'])
def webhook():
    """Gateway event callback, authenticated by the x-paystack-signature header"""
    try:
        payment = PaymentService.handle_webhook(
            request.get_data(),
            request.headers.get('x-paystack-signature')
        )
        data = {'reference': payment.reference, 'status': payment.status} if payment else None
        return jsonify(create_response(True, "Webhook received", data))
    except KMMediaException as e:
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        db.session.rollback()
        log_error("Webhook processing error", e)
        return jsonify(create_response(False, "Webhook processing failed")), 500


@payments_bp.route('/history', methods=['GET'])
def payment_history():
    try:
        user = AuthService.require_auth()
        payments = PaymentService.get_user_payments(user)
        return jsonify(create_response(True, "Payment history", [p.to_dict() for p in payments]))
    except KMMediaException as e:
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        log_error("Payment history error", e)
        return jsonify(create_response(False, "Failed to load payments")), 500


@payments_bp.route('/reference/<reference>', methods=['GET'])
def get_payment(reference):
    try:
        user = AuthService.require_auth()
        payment = PaymentService.get_by_reference(reference, user)
        return jsonify(create_response(True, "Payment retrieved", payment.to_dict()))
    except KMMediaException as e:
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        log_error("Get payment error", e)
        return jsonify(create_response(False, "Failed to load payment")), 500


# Installment plans

@payments_bp.route('/installment-plans', methods=['POST'])
def create_installment_plan():
    try:
        user = AuthService.require_role('student')
        data = request.get_json(silent=True) or {}
        plan = InstallmentService.create_plan(
            user,
            parse_int(data.get('course_id'), 'Course'),
            data.get('total_installments'),
            data.get('payment_plan') or 'monthly',
            parse_date(data.get('start_date'), 'Start date')
        )
        return jsonify(create_response(True, "Installment plan created", plan.to_dict())), 201
    except KMMediaException as e:
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        db.session.rollback()
        log_error("Create installment plan error", e)
        return jsonify(create_response(False, "Failed to create installment plan")), 500


@payments_bp.route('/installment-plans/my', methods=['GET'])
def my_installment_plans():
    try:
        user = AuthService.require_auth()
        plans = InstallmentPlan.query.filter_by(user_id=user.id).order_by(InstallmentPlan.created_at.desc()).all()
        return jsonify(create_response(True, "Installment plans retrieved", [p.to_dict() for p in plans]))
    except KMMediaException as e:
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        log_error("My installment plans error", e)
        return jsonify(create_response(False, "Failed to load installment plans")), 500


@payments_bp.route('/installment-plans/course/<int:course_id>', methods=['GET'])
def my_plan_for_course(course_id):
    try:
        user = AuthService.require_auth()
        plan = InstallmentService.get_plan(user.id, course_id)
        return jsonify(create_response(True, "Installment plan", plan.to_dict() if plan else None))
    except KMMediaException as e:
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        log_error("Get installment plan error", e)
        return jsonify(create_response(False, "Failed to load installment plan")), 500


@payments_bp.route('/installment-plans', methods=['GET'])
def list_installment_plans():
    """All plans, filtered by status or overdue only (admin)"""
    try:
        AuthService.require_role('admin')
        if request.args.get('overdue', '').lower() in ('true', '1'):
            plans = InstallmentService.overdue_plans()
        else:
            query = InstallmentPlan.query
            status = request.args.get('status')
            if status:
                validate_choice(status, PLAN_STATUSES, 'Status')
                query = query.filter_by(status=status)
            plans = query.order_by(InstallmentPlan.created_at.desc()).all()
        return jsonify(create_response(True, "Installment plans retrieved", [p.to_dict() for p in plans]))
    except KMMediaException as e:
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        log_error("List installment plans error", e)
        return jsonify(create_response(False, "Failed to load installment plans")), 500


@payments_bp.route('/installment-plans/<int:plan_id>/pay', methods=['POST'])
def pay_installment(plan_id):
    """Start a checkout for the plan's next installment"""
    try:
        user = AuthService.require_role('student')
        result = PaymentService.initialize_installment(user, plan_id)
        return jsonify(create_response(True, "Payment initialized", result)), 201
    except KMMediaException as e:
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        db.session.rollback()
        log_error("Installment payment initialization error", e)
        return jsonify(create_response(False, "Failed to initialize payment")), 500


@payments_bp.route('/installment-plans/<int:plan_id>/cancel', methods=['POST'])
def cancel_installment_plan(plan_id):
    try:
        user = AuthService.require_auth()
        plan = InstallmentService.cancel_plan(InstallmentService.get_plan_or_404(plan_id), user)
        return jsonify(create_response(True, "Installment plan cancelled", plan.to_dict()))
    except KMMediaException as e:
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        db.session.rollback()
        log_error("Cancel installment plan error", e)
        return jsonify(create_response(False, "Failed to cancel installment plan")), 500


@payments_bp.route('/installment-plans/<int:plan_id>/manual', methods=['POST'])
def record_manual_payment(plan_id):
    """Record a cash or bank transfer payment against a plan (admin)"""
    try:
        admin = AuthService.require_role('admin')
        payment = PaymentService.record_manual_payment(plan_id, request.get_json(silent=True) or {}, admin)
        return jsonify(create_response(True, "Payment recorded", payment.to_dict())), 201
    except KMMediaException as e:
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        db.session.rollback()
        log_error("Record manual payment error", e)
        return jsonify(create_response(False, "Failed to record payment")), 500


@payments_bp.route('/installment-plans/flag-defaulted', methods=['POST'])
def flag_defaulted():
    try:
        admin = AuthService.require_role('admin')
        data = request.get_json(silent=True) or {}
        grace_days = data.get('grace_days')
        if grace_days is not None:
            grace_days = parse_int(grace_days, 'Grace days', min_value=0)
        plans = InstallmentService.flag_defaulted(grace_days)
        log_info(f"Admin {admin.id} flagged {len(plans)} plan(s) as defaulted")
        return jsonify(create_response(True, f"{len(plans)} plan(s) flagged as defaulted",
                                       [p.to_dict() for p in plans]))
    except KMMediaException as e:
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        db.session.rollback()
        log_error("Flag defaulted plans error", e)
        return jsonify(create_response(False, "Failed to flag defaulted plans")), 500


# Admin reporting

@payments_bp.route('/admin', methods=['GET'])
def list_payments():
    try:
        AuthService.require_role('admin')
        filters = {
            'status': request.args.get('status'),
            'payment_type': request.args.get('payment_type'),
            'course_id': request.args.get('course_id', type=int),
            'user_id': request.args.get('user_id', type=int),
            'search': request.args.get('search')
        }
        page = request.args.get('page', 1, type=int)
        per_page = min(request.args.get('per_page', 20, type=int), 100)
        result = PaymentService.list_payments(filters, page=page, per_page=per_page)
        return jsonify(create_response(True, "Payments retrieved", result))
    except KMMediaException as e:
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        log_error("List payments error", e)
        return jsonify(create_response(False, "Failed to load payments")), 500


@payments_bp.route('/admin/revenue', methods=['GET'])
def total_revenue():
    try:
        AuthService.require_role('admin')
        start = parse_date(request.args.get('start_date'), 'Start date')
        end = parse_date(request.args.get('end_date'), 'End date')
        revenue = PaymentService.total_revenue(start, end)
        return jsonify(create_response(True, "Total revenue", {
            'start_date': start.isoformat() if start else None,
            'end_date': end.isoformat() if end else None,
            'total_revenue': to_money(revenue)
        }))
    except KMMediaException as e:
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        log_error("Total revenue error", e)
        return jsonify(create_response(False, "Failed to load revenue")), 500


@payments_bp.route('/admin/revenue/monthly', methods=['GET'])
def monthly_revenue():
    try:
        AuthService.require_role('admin')
        year = parse_int(request.args.get('year', datetime.utcnow().year), 'Year', min_value=2000, max_value=9999)
        return jsonify(create_response(True, "Monthly revenue", {
            'year': year,
            'months': PaymentService.monthly_revenue(year)
        }))
    except KMMediaException as e:
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        log_error("Monthly revenue error", e)
        return jsonify(create_response(False, "Failed to load revenue")), 500


@payments_bp.route('/admin/analytics', methods=['GET'])
def payment_analytics():
    try:
        AuthService.require_role('admin')
        return jsonify(create_response(True, "Payment analytics", PaymentService.analytics()))
    except KMMediaException as e:
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        log_error("Payment analytics error", e)
        return jsonify(create_response(False, "Failed to load analytics")), 500
