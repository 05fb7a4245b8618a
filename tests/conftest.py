"""
Test Configuration and Fixtures
"""
import hashlib
import hmac
import json
import time
from datetime import datetime, timezone
from decimal import Decimal
from types import SimpleNamespace

import pytest
from svix.webhooks import Webhook

from app import create_app, db, ratelimit
from app.models import User, Course


@pytest.fixture(scope='session')
def app():
    """Create application for testing"""
    app = create_app('testing')

    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.drop_all()


@pytest.fixture(autouse=True)
def clean_state(app):
    """Empty every table and the rate-limit storage after each test"""
    yield
    with app.app_context():
        db.session.rollback()
        for table in reversed(db.metadata.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
    ratelimit.reset()


@pytest.fixture(scope='function')
def client(app):
    """Create test client"""
    return app.test_client()


@pytest.fixture(scope='function')
def test_user(app):
    """Create test user"""
    with app.app_context():
        user = User(
            clerk_id='user_2abcTEST',
            email='test@example.com',
            name='Test User',
            stripe_customer_id='cus_test123',
        )
        db.session.add(user)
        db.session.commit()
        return SimpleNamespace(
            id=user.id,
            clerk_id=user.clerk_id,
            email=user.email,
            stripe_customer_id=user.stripe_customer_id,
        )


@pytest.fixture(scope='function')
def test_course(app):
    """Create test course"""
    with app.app_context():
        course = Course(
            title='Cooking Fundamentals',
            description='Knife skills and sauces',
            image_url='https://images.masterclass.test/cooking.jpg',
            price=Decimal('49.99'),
        )
        db.session.add(course)
        db.session.commit()
        return SimpleNamespace(id=course.id, title=course.title, image_url=course.image_url)


@pytest.fixture(scope='function')
def fake_identity(monkeypatch):
    """Accept bearer tokens of the form 'token-<clerk id>' without hitting Clerk"""
    def verify(token):
        if token and token.startswith('token-'):
            return {'sub': token[len('token-'):]}
        return None

    monkeypatch.setattr('app.auth.verify_session_token', verify)
    return verify


@pytest.fixture(scope='function')
def auth_headers(fake_identity, test_user):
    """Authorization header for the test user"""
    return {'Authorization': f'Bearer token-{test_user.clerk_id}'}


@pytest.fixture(scope='function')
def stripe_calls(monkeypatch):
    """Record Stripe API calls and return canned objects"""
    import stripe

    calls = {'customers': [], 'sessions': []}

    def create_customer(**kwargs):
        calls['customers'].append(kwargs)
        return SimpleNamespace(id=f"cus_{len(calls['customers'])}")

    def create_session(**kwargs):
        calls['sessions'].append(kwargs)
        n = len(calls['sessions'])
        return SimpleNamespace(id=f'cs_test_{n}', url=f'https://checkout.stripe.com/c/pay/cs_test_{n}')

    monkeypatch.setattr(stripe.Customer, 'create', create_customer)
    monkeypatch.setattr(stripe.checkout.Session, 'create', create_session)
    return calls


@pytest.fixture(scope='function')
def sent_emails(monkeypatch):
    """Capture Resend sends"""
    import resend

    sent = []

    def send(params):
        sent.append(params)
        return {'id': f'email_{len(sent)}'}

    monkeypatch.setattr(resend.Emails, 'send', send)
    return sent


def svix_headers(secret, payload, msg_id='msg_2testEvent'):
    """Headers Clerk would send for this payload"""
    timestamp = datetime.now(timezone.utc)
    signature = Webhook(secret).sign(msg_id, timestamp, payload)
    return {
        'svix-id': msg_id,
        'svix-timestamp': str(int(timestamp.timestamp())),
        'svix-signature': signature,
    }


def stripe_signature(secret, payload):
    """Stripe-Signature header value for this payload"""
    timestamp = int(time.time())
    signed = f'{timestamp}.{payload}'.encode()
    digest = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f't={timestamp},v1={digest}'


def stripe_event(event_type, obj):
    return json.dumps({
        'id': 'evt_test',
        'object': 'event',
        'type': event_type,
        'data': {'object': obj},
    })
