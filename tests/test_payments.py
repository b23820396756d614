from datetime import datetime
from decimal import Decimal

from kmmedia.models import db, Payment, Registration, InstallmentPlan, Notification


def _charge_success(reference, amount):
    return {
        'event': 'charge.success',
        'data': {
            'id': 5005,
            'reference': reference,
            'status': 'success',
            'amount': int(Decimal(str(amount)) * 100),
            'channel': 'card'
        }
    }


def _create_plan(client, student, course_id, installments=4):
    resp = client.post('/api/payments/installment-plans', headers=student.headers, json={
        'course_id': course_id, 'total_installments': installments
    })
    assert resp.status_code == 201
    return resp.get_json()['data']


def test_application_fee_initialize(client, gateway, student, course_id):
    resp = client.post('/api/payments/application-fee/initialize', headers=student.headers,
                       json={'course_id': course_id, 'phone': '0240000000'})
    assert resp.status_code == 201
    data = resp.get_json()['data']
    assert data['reference'].startswith('KM_MEDIA_')
    assert data['authorization_url'].endswith(data['reference'])
    assert data['payment']['status'] == 'pending'
    assert data['payment']['amount'] == 100.0

    sent = gateway.initialized[0]
    assert sent['amount'] == Decimal('100.00')
    assert sent['email'] == student.email
    assert sent['callback_url'].endswith('/payment/callback')
    assert sent['metadata']['payment_type'] == 'application_fee'


def test_application_fee_verify_creates_registration(app, client, gateway, student, course_id):
    client.post('/api/payments/application-fee/initialize', headers=student.headers,
                json={'course_id': course_id})
    reference = gateway.last_reference
    gateway.succeed(reference, 100)

    resp = client.get(f"/api/payments/verify/{reference}", headers=student.headers)
    assert resp.status_code == 200
    body = resp.get_json()
    assert body['message'] == 'Payment verified successfully'
    assert body['data']['status'] == 'success'
    assert body['data']['paid_at'] is not None

    with app.app_context():
        registration = Registration.query.filter_by(user_id=student.id, course_id=course_id).one()
        assert registration.status == 'pending'
        assert reference in registration.notes
        assert Notification.query.filter_by(user_id=student.id, category='payment').count() == 1

    again = client.post('/api/payments/application-fee/initialize', headers=student.headers,
                        json={'course_id': course_id})
    assert again.status_code == 409


def test_verify_is_idempotent(app, client, gateway, student, course_id):
    client.post('/api/payments/application-fee/initialize', headers=student.headers,
                json={'course_id': course_id})
    reference = gateway.last_reference
    gateway.succeed(reference, 100)
    client.post('/api/payments/verify', headers=student.headers, json={'reference': reference})

    gateway.fail(reference)
    resp = client.post('/api/payments/verify', headers=student.headers, json={'reference': reference})
    assert resp.get_json()['data']['status'] == 'success'
    with app.app_context():
        assert Notification.query.filter_by(user_id=student.id).count() == 1


def test_verify_pending_and_failed(client, gateway, student, course_id):
    client.post('/api/payments/application-fee/initialize', headers=student.headers,
                json={'course_id': course_id})
    reference = gateway.last_reference

    pending = client.get(f"/api/payments/verify/{reference}", headers=student.headers).get_json()
    assert pending['data']['status'] == 'pending'
    assert pending['message'] == 'Payment is still pending'

    gateway.fail(reference)
    failed = client.get(f"/api/payments/verify/{reference}", headers=student.headers).get_json()
    assert failed['data']['status'] == 'failed'
    assert failed['data']['metadata']['failure_reason'] == 'Declined'


def test_other_students_payment_is_forbidden(client, gateway, make_user, course_id, admin):
    owner = make_user()
    other = make_user()
    client.post('/api/payments/application-fee/initialize', headers=owner.headers,
                json={'course_id': course_id})
    reference = gateway.last_reference

    assert client.get(f"/api/payments/reference/{reference}", headers=other.headers).status_code == 403
    assert client.get(f"/api/payments/verify/{reference}", headers=other.headers).status_code == 403
    assert client.get(f"/api/payments/reference/{reference}", headers=admin.headers).status_code == 200


def test_only_students_initialize(client, gateway, trainer, course_id):
    resp = client.post('/api/payments/application-fee/initialize', headers=trainer.headers,
                       json={'course_id': course_id})
    assert resp.status_code == 403
    assert gateway.initialized == []


def test_inactive_course_cannot_be_paid(client, gateway, student, make_course):
    course_id = make_course(is_active=False)
    resp = client.post('/api/payments/application-fee/initialize', headers=student.headers,
                       json={'course_id': course_id})
    assert resp.status_code == 404


def test_webhook_rejects_bad_signature(client):
    resp = client.post('/api/payments/webhook', data=b'{"event": "charge.success"}',
                       headers={'x-paystack-signature': 'bogus', 'Content-Type': 'application/json'})
    assert resp.status_code == 401


def test_webhook_ignores_other_events_and_unknown_references(client, sign_webhook):
    body, headers = sign_webhook({'event': 'transfer.success', 'data': {}})
    resp = client.post('/api/payments/webhook', data=body, headers=headers)
    assert resp.status_code == 200
    assert 'data' not in resp.get_json()

    body, headers = sign_webhook(_charge_success('KM_MEDIA_UNKNOWN', 100))
    resp = client.post('/api/payments/webhook', data=body, headers=headers)
    assert resp.status_code == 200
    assert 'data' not in resp.get_json()


def test_webhook_settles_installment_once(app, client, gateway, student, course_id,
                                         make_registration, sign_webhook):
    make_registration(student.id, course_id)
    plan = _create_plan(client, student, course_id)

    resp = client.post(f"/api/payments/installment-plans/{plan['id']}/pay", headers=student.headers)
    assert resp.status_code == 201
    payment = resp.get_json()['data']['payment']
    assert payment['amount'] == 300.0
    assert payment['installment_number'] == 1
    assert payment['remaining_balance'] == 900.0

    body, headers = sign_webhook(_charge_success(payment['reference'], 300))
    first = client.post('/api/payments/webhook', data=body, headers=headers)
    assert first.get_json()['data'] == {'reference': payment['reference'], 'status': 'success'}
    client.post('/api/payments/webhook', data=body, headers=headers)

    with app.app_context():
        stored = db.session.get(InstallmentPlan, plan['id'])
        assert stored.paid_installments == 1
        assert stored.amount_paid == Decimal('300.00')
        assert stored.remaining_balance == Decimal('900.00')


def test_underpaid_charge_fails(app, client, gateway, student, course_id, make_registration, sign_webhook):
    make_registration(student.id, course_id)
    plan = _create_plan(client, student, course_id)
    client.post(f"/api/payments/installment-plans/{plan['id']}/pay", headers=student.headers)
    reference = gateway.last_reference

    body, headers = sign_webhook(_charge_success(reference, 100))
    assert client.post('/api/payments/webhook', data=body, headers=headers).status_code == 200

    with app.app_context():
        payment = Payment.query.filter_by(reference=reference).one()
        assert payment.status == 'failed'
        assert payment.payment_metadata['failure_reason'] == 'amount_mismatch'
        assert db.session.get(InstallmentPlan, plan['id']).paid_installments == 0


def test_cannot_pay_someone_elses_plan(client, gateway, make_user, course_id, make_registration):
    owner = make_user()
    other = make_user()
    make_registration(owner.id, course_id)
    plan = _create_plan(client, owner, course_id)
    resp = client.post(f"/api/payments/installment-plans/{plan['id']}/pay", headers=other.headers)
    assert resp.status_code == 403


def test_course_fee_requires_application(client, gateway, student, course_id):
    resp = client.post('/api/payments/course-fee/initialize', headers=student.headers,
                       json={'course_id': course_id})
    assert resp.status_code == 400


def test_course_fee_without_plan(app, client, gateway, student, course_id, make_registration):
    make_registration(student.id, course_id, 'approved')
    resp = client.post('/api/payments/course-fee/initialize', headers=student.headers,
                       json={'course_id': course_id})
    assert resp.status_code == 201
    reference = resp.get_json()['data']['reference']
    assert gateway.initialized[-1]['amount'] == Decimal('1200.00')

    gateway.succeed(reference, 1200)
    verified = client.get(f"/api/payments/verify/{reference}", headers=student.headers).get_json()
    assert verified['data']['remaining_balance'] == 0.0

    with app.app_context():
        plan = InstallmentPlan.query.filter_by(user_id=student.id, course_id=course_id).one()
        assert plan.status == 'completed'

    again = client.post('/api/payments/course-fee/initialize', headers=student.headers,
                        json={'course_id': course_id})
    assert again.status_code == 400


def test_course_fee_pays_remaining_plan_balance(client, admin, gateway, student, course_id, make_registration):
    make_registration(student.id, course_id)
    plan = _create_plan(client, student, course_id)
    client.post(f"/api/payments/installment-plans/{plan['id']}/manual", headers=admin.headers,
                json={'amount': 300})

    resp = client.post('/api/payments/course-fee/initialize', headers=student.headers,
                       json={'course_id': course_id})
    assert resp.status_code == 201
    assert gateway.initialized[-1]['amount'] == Decimal('900.00')


def test_manual_payment_rules(app, client, admin, student, course_id, make_registration):
    make_registration(student.id, course_id)
    plan = _create_plan(client, student, course_id)
    url = f"/api/payments/installment-plans/{plan['id']}/manual"

    assert client.post(url, headers=admin.headers, json={'amount': 1500}).status_code == 400
    assert client.post(url, headers=admin.headers, json={'amount': 0}).status_code == 400
    assert client.post(url, headers=admin.headers,
                       json={'amount': 100, 'payment_method': 'cheque'}).status_code == 400

    resp = client.post(url, headers=admin.headers,
                       json={'amount': 300, 'payment_method': 'bank_transfer', 'reference': 'BANK-001'})
    assert resp.status_code == 201
    payment = resp.get_json()['data']
    assert payment['status'] == 'success'
    assert payment['remaining_balance'] == 900.0

    duplicate = client.post(url, headers=admin.headers, json={'amount': 300, 'reference': 'BANK-001'})
    assert duplicate.status_code == 409

    assert client.post(url, headers=student.headers, json={'amount': 300}).status_code == 403


def test_history_and_admin_listing(client, admin, gateway, student, course_id):
    client.post('/api/payments/application-fee/initialize', headers=student.headers,
                json={'course_id': course_id})

    history = client.get('/api/payments/history', headers=student.headers).get_json()['data']
    assert len(history) == 1

    listing = client.get('/api/payments/admin?status=pending', headers=admin.headers).get_json()['data']
    assert listing['pagination']['total'] == 1
    assert listing['payments'][0]['reference'] == gateway.last_reference

    bad = client.get('/api/payments/admin?status=refunded', headers=admin.headers)
    assert bad.status_code == 400


def test_revenue_reports(client, admin, student, course_id, make_registration):
    make_registration(student.id, course_id)
    plan = _create_plan(client, student, course_id)
    client.post(f"/api/payments/installment-plans/{plan['id']}/manual", headers=admin.headers,
                json={'amount': 300})

    revenue = client.get('/api/payments/admin/revenue', headers=admin.headers).get_json()['data']
    assert revenue['total_revenue'] == 300.0

    year = datetime.utcnow().year
    monthly = client.get(f"/api/payments/admin/revenue/monthly?year={year}",
                         headers=admin.headers).get_json()['data']
    assert monthly['year'] == year
    assert len(monthly['months']) == 12
    assert sum(m['revenue'] for m in monthly['months']) == 300.0

    analytics = client.get('/api/payments/admin/analytics', headers=admin.headers).get_json()['data']
    assert analytics['revenue_by_type']['installment'] == 300.0
    assert analytics['outstanding_balance'] == 900.0
    assert analytics['by_status']['success'] == 1


def test_plan_with_checkout_in_progress_cannot_be_cancelled(app, client, admin, gateway, student, course_id,
                                                           make_registration):
    make_registration(student.id, course_id)
    plan = _create_plan(client, student, course_id)
    client.post(f"/api/payments/installment-plans/{plan['id']}/pay", headers=student.headers)
    reference = gateway.last_reference

    url = f"/api/payments/installment-plans/{plan['id']}/cancel"
    assert client.post(url, headers=student.headers).status_code == 400
    assert client.post(url, headers=admin.headers).status_code == 400

    gateway.fail(reference)
    client.get(f"/api/payments/verify/{reference}", headers=student.headers)
    assert client.post(url, headers=student.headers).status_code == 200


def test_late_settlement_reopens_cancelled_plan(app, client, gateway, student, course_id, make_registration):
    make_registration(student.id, course_id)
    plan = _create_plan(client, student, course_id)
    client.post(f"/api/payments/installment-plans/{plan['id']}/pay", headers=student.headers)
    reference = gateway.last_reference

    with app.app_context():
        stored = db.session.get(InstallmentPlan, plan['id'])
        stored.status = 'cancelled'
        stored.next_due_date = None
        db.session.commit()

    gateway.succeed(reference, 300)
    verified = client.get(f"/api/payments/verify/{reference}", headers=student.headers)
    assert verified.get_json()['data']['status'] == 'success'

    with app.app_context():
        stored = db.session.get(InstallmentPlan, plan['id'])
        assert stored.status == 'active'
        assert stored.amount_paid == Decimal('300.00')
        assert stored.remaining_balance == Decimal('900.00')
        assert stored.next_due_date is not None

    resp = client.post('/api/payments/course-fee/initialize', headers=student.headers,
                       json={'course_id': course_id})
    assert resp.status_code == 201
    assert gateway.initialized[-1]['amount'] == Decimal('900.00')


def test_application_fee_marks_existing_plan(app, client, gateway, student, course_id, make_registration):
    make_registration(student.id, course_id)
    plan = _create_plan(client, student, course_id)
    assert plan['application_fee_paid'] is False

    client.post('/api/payments/application-fee/initialize', headers=student.headers,
                json={'course_id': course_id})
    reference = gateway.last_reference
    gateway.succeed(reference, 100)
    assert client.get(f"/api/payments/verify/{reference}", headers=student.headers).status_code == 200

    with app.app_context():
        stored = db.session.get(InstallmentPlan, plan['id'])
        assert stored.application_fee_paid is True
        assert stored.application_fee_reference == reference
