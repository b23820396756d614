from datetime import timedelta
from decimal import Decimal

import pytest

from kmmedia.models import db, User, Payment, InstallmentPlan
from kmmedia.services.installment_service import InstallmentService, compute_installment_amount
from kmmedia.utils.exceptions import ValidationError, ConflictError, PaymentError
from kmmedia.utils.helpers import add_plan_period, today


def _installment(amount, reference, payment_type='installment'):
    return Payment(amount=Decimal(amount), reference=reference, payment_type=payment_type)


@pytest.mark.parametrize('total, count, expected', [
    ('1200.00', 4, '300.00'),
    ('1000.00', 3, '334.00'),
    ('999.50', 2, '500.00'),
    ('750.00', 1, '750.00'),
])
def test_compute_installment_amount_rounds_up(total, count, expected):
    assert compute_installment_amount(Decimal(total), count) == Decimal(expected)


def test_compute_installment_amount_rejects_zero():
    with pytest.raises(ValidationError):
        compute_installment_amount(Decimal('100'), 0)


def test_add_plan_period():
    start = today().replace(day=15)
    assert add_plan_period(start, 'weekly') == start + timedelta(days=7)
    assert add_plan_period(start, 'monthly').day == 15
    assert add_plan_period(start, 'quarterly').month == (start.month + 2) % 12 + 1


def test_create_plan_requires_registration(app, student, make_course):
    course_id = make_course(price='1000.00')
    with app.app_context():
        user = db.session.get(User, student.id)
        with pytest.raises(ValidationError):
            InstallmentService.create_plan(user, course_id, 3)


def test_create_plan_defaults(app, student, make_course, make_registration):
    course_id = make_course(price='1000.00')
    make_registration(student.id, course_id)
    with app.app_context():
        user = db.session.get(User, student.id)
        plan = InstallmentService.create_plan(user, course_id, 3)
        assert plan.installment_amount == Decimal('334.00')
        assert plan.remaining_balance == Decimal('1000.00')
        assert plan.next_due_date == add_plan_period(today(), 'monthly')
        assert plan.status == 'active'
        assert plan.application_fee_paid is False

        with pytest.raises(ConflictError):
            InstallmentService.create_plan(user, course_id, 2)


def test_create_plan_limits(app, student, make_course, make_registration):
    course_id = make_course(price='1000.00')
    make_registration(student.id, course_id)
    with app.app_context():
        user = db.session.get(User, student.id)
        with pytest.raises(ValidationError):
            InstallmentService.create_plan(user, course_id, 13)
        with pytest.raises(ValidationError):
            InstallmentService.create_plan(user, course_id, 3, 'yearly')
        with pytest.raises(ValidationError):
            InstallmentService.create_plan(user, course_id, 3, 'monthly', today() - timedelta(days=1))


def test_payments_reduce_balance_until_completed(app, student, make_course, make_registration):
    course_id = make_course(price='1000.00')
    make_registration(student.id, course_id)
    with app.app_context():
        user = db.session.get(User, student.id)
        plan = InstallmentService.create_plan(user, course_id, 3, 'weekly', today())

        InstallmentService.apply_payment(plan, _installment('334.00', 'KM_MEDIA_A1'))
        assert plan.paid_installments == 1
        assert plan.remaining_balance == Decimal('666.00')
        assert plan.next_due_date == today() + timedelta(days=7)

        InstallmentService.apply_payment(plan, _installment('334.00', 'KM_MEDIA_A2'))
        assert InstallmentService.next_installment_amount(plan) == Decimal('332.00')

        InstallmentService.apply_payment(plan, _installment('332.00', 'KM_MEDIA_A3'))
        assert plan.status == 'completed'
        assert plan.paid_installments == 3
        assert plan.remaining_balance == Decimal('0.00')
        assert plan.amount_paid == Decimal('1000.00')
        assert plan.next_due_date is None

        with pytest.raises(PaymentError):
            InstallmentService.ensure_payable(plan)


def test_defaulted_plan_becomes_active_when_paid(app, student, make_course, make_registration):
    course_id = make_course(price='900.00')
    make_registration(student.id, course_id)
    with app.app_context():
        user = db.session.get(User, student.id)
        plan = InstallmentService.create_plan(user, course_id, 3)
        plan.status = 'defaulted'
        InstallmentService.ensure_payable(plan)

        InstallmentService.apply_payment(plan, _installment('300.00', 'KM_MEDIA_D1'))
        assert plan.status == 'active'


def test_course_fee_without_plan_opens_completed_plan(app, student, make_course):
    course_id = make_course(price='800.00')
    with app.app_context():
        payment = Payment(user_id=student.id, course_id=course_id, reference='KM_MEDIA_CF1',
                          amount=Decimal('800.00'), payment_type='course_fee', status='success')
        db.session.add(payment)
        plan = InstallmentService.settle_course_fee(payment)
        db.session.commit()
        assert plan.status == 'completed'
        assert plan.total_installments == 1
        assert plan.paid_installments == 1


def _plan(user_id, course_id, due, status='active'):
    plan = InstallmentPlan(
        user_id=user_id, course_id=course_id,
        total_course_fee=Decimal('600.00'), total_installments=3,
        installment_amount=Decimal('200.00'), paid_installments=0,
        amount_paid=Decimal('0.00'), remaining_balance=Decimal('600.00'),
        next_due_date=due, payment_plan='monthly', status=status
    )
    db.session.add(plan)
    return plan


def test_overdue_and_flag_defaulted(app, make_user, make_course):
    first, second, third = make_user(), make_user(), make_user()
    course_id = make_course()
    with app.app_context():
        long_overdue = _plan(first.id, course_id, today() - timedelta(days=45))
        recently_overdue = _plan(second.id, course_id, today() - timedelta(days=5))
        _plan(third.id, course_id, today() + timedelta(days=5))
        db.session.commit()

        overdue_ids = {p.id for p in InstallmentService.overdue_plans()}
        assert overdue_ids == {long_overdue.id, recently_overdue.id}

        flagged = InstallmentService.flag_defaulted(grace_days=30)
        assert [p.id for p in flagged] == [long_overdue.id]
        assert db.session.get(InstallmentPlan, recently_overdue.id).status == 'active'
        assert InstallmentService.outstanding_balance() == Decimal('1800.00')


def test_plan_routes(client, student, course_id, make_registration):
    make_registration(student.id, course_id)
    resp = client.post('/api/payments/installment-plans', headers=student.headers, json={
        'course_id': course_id, 'total_installments': 4, 'payment_plan': 'monthly'
    })
    assert resp.status_code == 201
    plan = resp.get_json()['data']
    assert plan['installment_amount'] == 300.0

    mine = client.get('/api/payments/installment-plans/my', headers=student.headers).get_json()['data']
    assert [p['id'] for p in mine] == [plan['id']]

    by_course = client.get(f"/api/payments/installment-plans/course/{course_id}", headers=student.headers)
    assert by_course.get_json()['data']['id'] == plan['id']


def test_student_cancels_unpaid_plan_and_recreates(client, student, course_id, make_registration):
    make_registration(student.id, course_id)
    plan = client.post('/api/payments/installment-plans', headers=student.headers, json={
        'course_id': course_id, 'total_installments': 4
    }).get_json()['data']

    resp = client.post(f"/api/payments/installment-plans/{plan['id']}/cancel", headers=student.headers)
    assert resp.status_code == 200
    assert resp.get_json()['data']['status'] == 'cancelled'

    again = client.post('/api/payments/installment-plans', headers=student.headers, json={
        'course_id': course_id, 'total_installments': 2
    })
    assert again.status_code == 201
    assert again.get_json()['data']['installment_amount'] == 600.0


def test_only_admin_cancels_paid_plan(client, admin, student, course_id, make_registration):
    make_registration(student.id, course_id)
    plan = client.post('/api/payments/installment-plans', headers=student.headers, json={
        'course_id': course_id, 'total_installments': 4
    }).get_json()['data']
    client.post(f"/api/payments/installment-plans/{plan['id']}/manual", headers=admin.headers,
                json={'amount': 300, 'payment_method': 'cash'})

    denied = client.post(f"/api/payments/installment-plans/{plan['id']}/cancel", headers=student.headers)
    assert denied.status_code == 400

    allowed = client.post(f"/api/payments/installment-plans/{plan['id']}/cancel", headers=admin.headers)
    assert allowed.status_code == 200


def test_admin_flags_defaulted_via_route(app, client, admin, student, course_id):
    with app.app_context():
        _plan(student.id, course_id, today() - timedelta(days=10))
        db.session.commit()

    resp = client.post('/api/payments/installment-plans/flag-defaulted', headers=admin.headers,
                       json={'grace_days': 3})
    assert resp.status_code == 200
    assert [p['status'] for p in resp.get_json()['data']] == ['defaulted']

    overdue = client.get('/api/payments/installment-plans?overdue=true', headers=admin.headers)
    assert overdue.get_json()['data'] == []
