import hashlib
import hmac
import itertools
import json
from decimal import Decimal
from types import SimpleNamespace

import pytest

from kmmedia import create_app
from kmmedia.models import db, User, Course, Registration
from kmmedia.services import AuthService
from kmmedia.services.paystack_client import PaystackClient


@pytest.fixture
def app(tmp_path):
    """Fresh app and in-memory database per test."""
    app = create_app('testing')
    app.config['UPLOAD_FOLDER'] = str(tmp_path / 'uploads')
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


class FakeGateway:
    """Stands in for the Paystack API; tests decide what verification returns."""

    def __init__(self):
        self.initialized = []
        self.transactions = {}

    def initialize(self, email, amount, reference, callback_url, currency='GHS', metadata=None):
        self.initialized.append({
            'email': email, 'amount': Decimal(amount), 'reference': reference,
            'callback_url': callback_url, 'currency': currency, 'metadata': metadata
        })
        return {
            'authorization_url': f"https://checkout.paystack.com/{reference}",
            'access_code': f"ac_{reference[-6:]}",
            'reference': reference
        }

    def verify(self, reference):
        return self.transactions.get(reference, {'reference': reference, 'status': 'ongoing'})

    def succeed(self, reference, amount):
        self.transactions[reference] = {
            'id': 1001,
            'reference': reference,
            'status': 'success',
            'amount': int(Decimal(str(amount)) * 100),
            'channel': 'mobile_money'
        }

    def fail(self, reference):
        self.transactions[reference] = {
            'id': 1002,
            'reference': reference,
            'status': 'failed',
            'gateway_response': 'Declined'
        }

    @property
    def last_reference(self):
        return self.initialized[-1]['reference']


@pytest.fixture
def gateway(monkeypatch):
    fake = FakeGateway()

    def fake_initialize(self, email, amount, reference, callback_url, currency='GHS', metadata=None):
        return fake.initialize(email, amount, reference, callback_url, currency, metadata)

    def fake_verify(self, reference):
        return fake.verify(reference)

    monkeypatch.setattr(PaystackClient, 'initialize_transaction', fake_initialize)
    monkeypatch.setattr(PaystackClient, 'verify_transaction', fake_verify)
    return fake


@pytest.fixture
def make_user(app):
    counter = itertools.count(1)

    def _make(role='student', email=None, password='secret123', first_name='Ama',
              last_name='Mensah', is_active=True):
        with app.app_context():
            user = User(
                email=email or f"{role}{next(counter)}@example.com",
                first_name=first_name,
                last_name=last_name,
                role=role,
                is_active=is_active
            )
            user.set_password(password)
            db.session.add(user)
            db.session.commit()
            token = AuthService.issue_token(user)
            return SimpleNamespace(
                id=user.id,
                email=user.email,
                password=password,
                token=token,
                headers={'Authorization': f"Bearer {token}"}
            )

    return _make


@pytest.fixture
def student(make_user):
    return make_user('student')


@pytest.fixture
def admin(make_user):
    return make_user('admin', first_name='Kofi', last_name='Admin')


@pytest.fixture
def trainer(make_user):
    return make_user('trainer', first_name='Efua', last_name='Trainer')


@pytest.fixture
def make_course(app):
    def _make(name='Video Production', price='1200.00', max_students=30, is_active=True,
              instructor_id=None, category='Media', level='beginner'):
        with app.app_context():
            course = Course(
                name=name,
                description='Hands-on training in camera work and editing.',
                duration='12 weeks',
                price=Decimal(price),
                max_students=max_students,
                level=level,
                category=category,
                is_active=is_active,
                instructor_id=instructor_id
            )
            db.session.add(course)
            db.session.commit()
            return course.id

    return _make


@pytest.fixture
def course_id(make_course):
    return make_course()


@pytest.fixture
def make_registration(app):
    def _make(user_id, course_id, status='pending'):
        with app.app_context():
            registration = Registration(user_id=user_id, course_id=course_id, status=status,
                                        declaration='I agree')
            db.session.add(registration)
            db.session.commit()
            return registration.id

    return _make


@pytest.fixture
def sign_webhook(app):
    def _sign(payload):
        body = json.dumps(payload).encode('utf-8')
        secret = app.config['PAYSTACK_WEBHOOK_SECRET'].encode('utf-8')
        signature = hmac.new(secret, body, hashlib.sha512).hexdigest()
        return body, {'x-paystack-signature': signature, 'Content-Type': 'application/json'}

    return _sign
