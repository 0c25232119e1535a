from datetime import datetime, timedelta

from hubsystem.models import db, AuditLog, Notification, OTP, User


def otp_code(app, email):
    with app.app_context():
        otp = OTP.query.filter_by(email=email).first()
        return otp.code if otp else None


class TestSignUpOTP:
    def test_send_otp_normalizes_email(self, app, client, mail_outbox):
        response = client.post('/api/auth/send-otp', json={"email": "  New.Student@UDSM.ac.tz "})

        assert response.status_code == 200
        assert response.get_json()["email_sent"] is True
        assert mail_outbox[0]["to"] == "new.student@udsm.ac.tz"
        code = otp_code(app, "new.student@udsm.ac.tz")
        assert code in mail_outbox[0]["body"]
        assert len(code) == 6

    def test_active_otp_is_not_resent(self, client, mail_outbox):
        client.post('/api/auth/send-otp', json={"email": "new@udsm.ac.tz"})
        response = client.post('/api/auth/send-otp', json={"email": "new@udsm.ac.tz"})

        assert response.get_json()["message"] == "OTP already sent"
        assert len(mail_outbox) == 1

    def test_registered_email_rejected(self, client, make_user, mail_outbox):
        make_user('amina@udsm.ac.tz')
        response = client.post('/api/auth/send-otp', json={"email": "amina@udsm.ac.tz"})

        assert response.status_code == 400
        assert mail_outbox == []

    def test_missing_email(self, client):
        response = client.post('/api/auth/send-otp', json={})
        assert response.status_code == 400
        assert response.get_json()["error"] == "Email is required"

    def test_verify_otp(self, app, client, mail_outbox):
        client.post('/api/auth/send-otp', json={"email": "new@udsm.ac.tz"})

        wrong = client.post('/api/auth/verify-otp', json={"email": "new@udsm.ac.tz", "otp": "000000"})
        assert wrong.status_code == 400

        code = otp_code(app, "new@udsm.ac.tz")
        response = client.post('/api/auth/verify-otp', json={"email": "new@udsm.ac.tz", "otp": code})
        assert response.status_code == 200
        assert otp_code(app, "new@udsm.ac.tz") is None

    def test_expired_otp_rejected(self, app, client, mail_outbox):
        client.post('/api/auth/send-otp', json={"email": "new@udsm.ac.tz"})
        with app.app_context():
            otp = OTP.query.filter_by(email="new@udsm.ac.tz").first()
            otp.expires_at = datetime.utcnow() - timedelta(minutes=1)
            code = otp.code
            db.session.commit()

        response = client.post('/api/auth/verify-otp', json={"email": "new@udsm.ac.tz", "otp": code})
        assert response.status_code == 400
        assert response.get_json()["error"] == "Invalid or expired OTP"


class TestSignUp:
    payload = {
        "first_name": "Amina",
        "last_name": "Juma",
        "email": "Amina@udsm.ac.tz",
        "password": "password123",
        "degree_programme": "BSc Computer Science",
    }

    def test_signup_creates_user_and_welcome_notification(self, app, client):
        response = client.post('/api/auth/signup', json=self.payload)
        body = response.get_json()

        assert response.status_code == 201
        assert body["user"]["email"] == "amina@udsm.ac.tz"
        assert body["redirect_url"] == f"/dashboard/{body['user']['id']}"

        with app.app_context():
            user = User.query.filter_by(email="amina@udsm.ac.tz").one()
            assert user.password_hash != "password123"
            assert Notification.query.filter_by(user_id=user.id, type='SYSTEM').count() == 1
            assert AuditLog.query.filter_by(action='USER_SIGNUP', user_id=user.id).count() == 1

    def test_duplicate_email(self, client):
        client.post('/api/auth/signup', json=self.payload)
        response = client.post('/api/auth/signup', json=self.payload)
        assert response.status_code == 400

    def test_password_needs_a_number(self, client):
        response = client.post('/api/auth/signup', json={**self.payload, "password": "passwordonly"})
        body = response.get_json()

        assert response.status_code == 400
        assert "password" in body["details"]

    def test_short_names_rejected(self, client):
        response = client.post('/api/auth/signup', json={**self.payload, "first_name": "A"})
        assert response.status_code == 400
        assert "first_name" in response.get_json()["details"]


class TestSignIn:
    def test_signin_and_me(self, client, make_user):
        user_id = make_user('amina@udsm.ac.tz')

        response = client.post('/api/auth/signin', json={"email": "AMINA@udsm.ac.tz", "password": "password123"})
        assert response.status_code == 200
        assert response.get_json()["redirect_url"] == f"/dashboard/{user_id}"

        me = client.get('/api/auth/me')
        assert me.get_json()["user"]["id"] == user_id
        assert me.get_json()["user"]["last_login_at"] is not None

    def test_admin_redirect(self, client, make_user):
        make_user('admin@udsm.ac.tz', role='admin')
        response = client.post('/api/auth/signin', json={"email": "admin@udsm.ac.tz", "password": "password123"})
        assert response.get_json()["redirect_url"] == "/admin/dashboard"

    def test_wrong_password_is_audited(self, app, client, make_user):
        make_user('amina@udsm.ac.tz')
        response = client.post('/api/auth/signin', json={"email": "amina@udsm.ac.tz", "password": "nope12345"})

        assert response.status_code == 401
        assert response.get_json()["error"] == "Invalid password"
        with app.app_context():
            entry = AuditLog.query.filter_by(action='USER_LOGIN').one()
            assert entry.success is False
            assert entry.user_email == "amina@udsm.ac.tz"
            assert entry.details["reason"] == "Invalid password"

    def test_deactivated_account(self, app, client, make_user):
        user_id = make_user('amina@udsm.ac.tz')
        with app.app_context():
            db.session.get(User, user_id).is_active = False
            db.session.commit()

        response = client.post('/api/auth/signin', json={"email": "amina@udsm.ac.tz", "password": "password123"})
        assert response.status_code == 401
        assert "deactivated" in response.get_json()["error"]

    def test_me_requires_login(self, client):
        assert client.get('/api/auth/me').status_code == 401

    def test_signout(self, client, make_user, login):
        make_user('amina@udsm.ac.tz')
        login(client, 'amina@udsm.ac.tz')

        assert client.post('/api/auth/signout').status_code == 200
        assert client.get('/api/auth/me').status_code == 401


class TestPasswordReset:
    def test_reset_flow(self, app, client, make_user, mail_outbox):
        make_user('amina@udsm.ac.tz')

        response = client.post('/api/auth/forgot-password', json={"email": "amina@udsm.ac.tz"})
        assert response.status_code == 200
        assert mail_outbox[0]["subject"] == "Your OTP Code for Password Reset"

        code = otp_code(app, "amina@udsm.ac.tz")
        response = client.post('/api/auth/reset-password', json={
            "email": "amina@udsm.ac.tz", "otp": code, "new_password": "newpass456",
        })
        assert response.status_code == 200

        old = client.post('/api/auth/signin', json={"email": "amina@udsm.ac.tz", "password": "password123"})
        new = client.post('/api/auth/signin', json={"email": "amina@udsm.ac.tz", "password": "newpass456"})
        assert old.status_code == 401
        assert new.status_code == 200

    def test_unknown_email(self, client, mail_outbox):
        response = client.post('/api/auth/forgot-password', json={"email": "ghost@udsm.ac.tz"})
        assert response.status_code == 400
        assert mail_outbox == []

    def test_weak_new_password(self, app, client, make_user, mail_outbox):
        make_user('amina@udsm.ac.tz')
        client.post('/api/auth/forgot-password', json={"email": "amina@udsm.ac.tz"})

        response = client.post('/api/auth/reset-password', json={
            "email": "amina@udsm.ac.tz", "otp": otp_code(app, "amina@udsm.ac.tz"), "new_password": "short",
        })
        assert response.status_code == 400
        assert "new_password" in response.get_json()["details"]


class TestProfile:
    def test_update_profile_skills(self, client, make_user, login):
        make_user('amina@udsm.ac.tz')
        login(client, 'amina@udsm.ac.tz')

        response = client.patch('/api/auth/me', json={
            "first_name": "Amina", "last_name": "Juma", "skills": [" Python ", "Design", ""],
        })
        assert response.status_code == 200
        assert response.get_json()["user"]["skills"] == ["Python", "Design"]

    def test_skills_must_be_strings(self, client, make_user, login):
        make_user('amina@udsm.ac.tz')
        login(client, 'amina@udsm.ac.tz')

        response = client.patch('/api/auth/me', json={"first_name": "Amina", "last_name": "Juma", "skills": [1]})
        assert response.status_code == 400

    def test_patch_only_changes_sent_fields(self, client, make_user, login):
        make_user('amina@udsm.ac.tz', first_name='Amina', degree_programme='BSc Computer Science')
        login(client, 'amina@udsm.ac.tz')

        response = client.patch('/api/auth/me', json={"skills": ["Python"]})
        user = response.get_json()["user"]

        assert response.status_code == 200
        assert user["skills"] == ["Python"]
        assert user["first_name"] == "Amina"
        assert user["degree_programme"] == "BSc Computer Science"

        response = client.patch('/api/auth/me', json={"last_name": "Juma"})
        assert response.get_json()["user"]["degree_programme"] == "BSc Computer Science"

    def test_names_cannot_be_blanked(self, client, make_user, login):
        make_user('amina@udsm.ac.tz')
        login(client, 'amina@udsm.ac.tz')

        response = client.patch('/api/auth/me', json={"first_name": ""})
        assert response.status_code == 400
        assert "first_name" in response.get_json()["details"]
