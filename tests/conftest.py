from unittest.mock import patch

import pytest

from config import TestConfig
from hubsystem import create_app
from hubsystem.models import db, Hub
from hubsystem.services.membership_service import MembershipService
from hubsystem.services.user_service import UserService

PASSWORD = 'password123'


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def ctx(app):
    """App context for tests that call services directly."""
    with app.app_context():
        yield


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def new_client(app):
    """Extra clients so several users can be signed in at once."""
    return app.test_client


@pytest.fixture
def mail_outbox():
    sent = []

    def fake_send(receiver_email, subject, body):
        sent.append({"to": receiver_email, "subject": subject, "body": body})
        return True

    with patch('hubsystem.services.otp_service.OTPService.send_email', side_effect=fake_send):
        yield sent


@pytest.fixture
def make_user(app):
    def _make(email, role='student', password=PASSWORD, **kwargs):
        kwargs.setdefault('first_name', email.split('@')[0].title())
        kwargs.setdefault('last_name', 'Tester')
        with app.app_context():
            user = UserService.create_user(email, password, role=role, welcome=False, **kwargs)
            return user.id
    return _make


@pytest.fixture
def make_hub(app):
    def _make(name='Innovation Hub', leader_id=None, members=(), supervisors=()):
        with app.app_context():
            hub = Hub(name=name, description='Students building prototypes together')
            db.session.add(hub)
            db.session.flush()
            if leader_id:
                MembershipService.add_hub_member(hub.id, leader_id, 'HUB_LEADER')
            for user_id in members:
                MembershipService.add_hub_member(hub.id, user_id, 'MEMBER')
            for user_id in supervisors:
                MembershipService.add_hub_member(hub.id, user_id, 'SUPERVISOR')
            db.session.commit()
            return hub.id
    return _make


@pytest.fixture
def login():
    def _login(client, email, password=PASSWORD):
        response = client.post('/api/auth/signin', json={"email": email, "password": password})
        assert response.status_code == 200, response.get_json()
        return client
    return _login
