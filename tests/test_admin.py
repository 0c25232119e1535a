import json

import pytest

from hubsystem.models import db, AuditLog, Project, User

ADMIN_EMAIL = 'admin@udsm.ac.tz'


@pytest.fixture
def admin(client, make_user, login):
    admin_id = make_user(ADMIN_EMAIL, role='admin')
    login(client, ADMIN_EMAIL)
    client.admin_id = admin_id
    return client


class TestAccess:
    @pytest.mark.parametrize("method, url", [
        ('get', '/api/admin/dashboard'),
        ('get', '/api/admin/users'),
        ('get', '/api/admin/audit-logs'),
        ('get', '/api/admin/system-health'),
        ('get', '/api/admin/system-settings'),
    ])
    def test_students_forbidden(self, client, make_user, login, method, url):
        make_user('amina@udsm.ac.tz')
        login(client, 'amina@udsm.ac.tz')
        assert getattr(client, method)(url).status_code == 403

    def test_anonymous_unauthorized(self, client):
        assert client.get('/api/admin/users').status_code == 401


class TestDashboard:
    def test_dashboard_shape(self, admin):
        body = admin.get('/api/admin/dashboard').get_json()

        assert body["stats"]["totalUsers"] == 1
        assert body["stats"]["activeUsers"] == 1
        assert set(body["chartData"]) == {"userGrowth", "hubActivity", "projectCompletion"}
        assert [a["title"] for a in body["recentActivity"]] == ["User Logged In"]
        assert isinstance(body["aiInsights"], list)

    def test_invalid_date(self, admin):
        response = admin.get('/api/admin/dashboard?start=yesterday')
        assert response.status_code == 400
        assert response.get_json()["error"] == "Invalid date for 'start'"

    def test_start_after_end(self, admin):
        response = admin.get('/api/admin/dashboard?start=2024-02-01&end=2024-01-01')
        assert response.status_code == 400


class TestUserManagement:
    def test_list_with_filters(self, admin, make_user):
        make_user('amina@udsm.ac.tz')
        make_user('baraka@udsm.ac.tz', is_active=False)

        body = admin.get('/api/admin/users?role=student').get_json()
        assert body["pagination"]["total"] == 2

        body = admin.get('/api/admin/users?status=inactive').get_json()
        assert [u["email"] for u in body["users"]] == ['baraka@udsm.ac.tz']

    def test_create_user(self, app, admin):
        response = admin.post('/api/admin/users', json={
            "first_name": "Neema", "last_name": "Mushi",
            "email": "Neema@udsm.ac.tz", "password": "password123",
        })
        assert response.status_code == 201
        assert response.get_json()["user"]["role"] == "student"

        with app.app_context():
            entry = AuditLog.query.filter_by(action='USER_CREATED').one()
            assert entry.user_email == ADMIN_EMAIL
            assert entry.details == {"email": "neema@udsm.ac.tz", "role": "student"}

    def test_create_user_validation(self, admin):
        response = admin.post('/api/admin/users', json={"first_name": "Neema", "email": "not-an-email"})
        details = response.get_json()["details"]

        assert response.status_code == 400
        assert {"last_name", "email", "password"} <= set(details)

    def test_update_user(self, admin, make_user):
        user_id = make_user('amina@udsm.ac.tz')

        response = admin.patch(f'/api/admin/users/{user_id}', json={"role": "admin", "is_active": False})
        user = response.get_json()["user"]

        assert response.status_code == 200
        assert user["role"] == "admin"
        assert user["is_active"] is False
        assert user["first_name"] == "Amina"

    def test_is_active_must_be_boolean(self, admin, make_user):
        user_id = make_user('amina@udsm.ac.tz')
        response = admin.patch(f'/api/admin/users/{user_id}', json={"is_active": "no"})
        assert response.status_code == 400

    def test_cannot_deactivate_self(self, admin):
        response = admin.patch(f'/api/admin/users/{admin.admin_id}', json={"is_active": False})
        assert response.status_code == 403

    def test_cannot_delete_self(self, admin):
        assert admin.delete(f'/api/admin/users/{admin.admin_id}').status_code == 403

    def test_delete_user(self, app, admin, make_user):
        user_id = make_user('amina@udsm.ac.tz')

        assert admin.delete(f'/api/admin/users/{user_id}').status_code == 200
        assert admin.get(f'/api/admin/users/{user_id}').status_code == 404
        with app.app_context():
            assert db.session.get(User, user_id).is_active is False


class TestBulkActions:
    def test_missing_parameters(self, admin):
        response = admin.post('/api/admin/bulk-actions', json={"action": "deactivate"})
        assert response.status_code == 400
        assert response.get_json()["error"] == "Missing required parameters: action, entity_type, entity_ids"

    def test_unsupported_entity(self, admin):
        response = admin.post('/api/admin/bulk-actions', json={
            "action": "delete", "entity_type": "widgets", "entity_ids": [1],
        })
        assert response.status_code == 400

    def test_deactivate_users(self, app, admin, make_user):
        ids = [make_user('amina@udsm.ac.tz'), make_user('baraka@udsm.ac.tz')]

        response = admin.post('/api/admin/bulk-actions', json={
            "action": "deactivate", "entity_type": "users", "entity_ids": ids,
        })
        assert response.status_code == 200
        assert response.get_json()["updated"] == 2

        with app.app_context():
            assert User.query.filter(User.id.in_(ids), User.is_active.is_(False)).count() == 2
            entry = AuditLog.query.filter_by(action='BULK_ACTION').one()
            assert entry.entity_type == 'USER'

    def test_own_account_excluded(self, admin, make_user):
        other_id = make_user('amina@udsm.ac.tz')
        response = admin.post('/api/admin/bulk-actions', json={
            "action": "delete", "entity_type": "users", "entity_ids": [other_id, admin.admin_id],
        })
        assert response.status_code == 403

    def test_project_status_change(self, app, admin, make_hub):
        hub_id = make_hub()
        with app.app_context():
            project = Project(hub_id=hub_id, title='Solar dryer', description='Drying crops with the sun')
            db.session.add(project)
            db.session.commit()
            project_id = project.id

        bad = admin.post('/api/admin/bulk-actions', json={
            "action": "change_status", "entity_type": "projects", "entity_ids": [project_id],
            "data": {"status": "FINISHED"},
        })
        assert bad.status_code == 400

        response = admin.post('/api/admin/bulk-actions', json={
            "action": "change_status", "entity_type": "projects", "entity_ids": [project_id],
            "data": {"status": "COMPLETED"},
        })
        assert response.get_json()["updated"] == 1
        with app.app_context():
            project = db.session.get(Project, project_id)
            assert project.status == 'COMPLETED'
            assert project.completed_at is not None


class TestAuditLogs:
    def test_filter_by_action(self, admin):
        body = admin.get('/api/admin/audit-logs?action=USER_LOGIN&success=true').get_json()

        assert body["pagination"]["total"] == 1
        assert body["logs"][0]["user_email"] == ADMIN_EMAIL

    def test_manual_entry(self, admin):
        response = admin.post('/api/admin/audit-logs', json={
            "action": "MANUAL_REVIEW", "entity_type": "USER", "entity_id": 5, "details": {"note": "checked"},
        })
        entry = response.get_json()["audit_log"]

        assert response.status_code == 201
        assert entry["entity_id"] == "5"
        assert entry["user_email"] == ADMIN_EMAIL

    def test_manual_entry_needs_action(self, admin):
        assert admin.post('/api/admin/audit-logs', json={}).status_code == 400

    def test_export_csv(self, admin):
        response = admin.get('/api/admin/audit-logs/export?format=csv')
        lines = response.get_data(as_text=True).splitlines()

        assert response.status_code == 200
        assert response.mimetype == 'text/csv'
        assert lines[0] == "Timestamp,User Email,Action,Entity Type,Entity ID,Success,IP Address,User Agent"
        assert ",USER_LOGIN," in lines[1]
        assert "attachment" in response.headers["Content-Disposition"]

    def test_export_json(self, admin):
        response = admin.get('/api/admin/audit-logs/export?format=json')
        logs = json.loads(response.get_data(as_text=True))
        assert [log["action"] for log in logs] == ["USER_LOGIN"]

    def test_export_xlsx(self, admin):
        response = admin.get('/api/admin/audit-logs/export?format=xlsx')

        assert response.status_code == 200
        assert response.mimetype == 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
        assert response.data[:2] == b'PK'

    def test_export_unknown_format(self, admin):
        response = admin.get('/api/admin/audit-logs/export?format=pdf')
        assert response.status_code == 400
        assert response.get_json()["details"]["allowed"] == ["csv", "json", "xlsx"]


class TestSystemHealth:
    def test_health_report(self, admin):
        body = admin.get('/api/admin/system-health').get_json()

        assert body["overallStatus"] in ("healthy", "warning", "error")
        assert body["health"]["database"]["counts"]["users"] == 1
        assert body["health"]["integrations"]["email"] is False

    def test_run_diagnostics(self, app, admin):
        response = admin.post('/api/admin/system-health', json={"action": "run_diagnostics"})
        diagnostics = response.get_json()["diagnostics"]

        assert response.status_code == 200
        assert diagnostics["tests"]["database_connectivity"] is True
        assert "Configure MAIL_SERVER so OTP codes can be emailed" in diagnostics["recommendations"]
        with app.app_context():
            assert AuditLog.query.filter_by(action='SYSTEM_ACTION').count() == 1

    def test_clear_cache(self, admin):
        response = admin.post('/api/admin/system-health', json={"action": "clear_cache"})
        assert response.get_json()["message"] == "System cache cleared successfully"

    def test_invalid_action(self, app, admin):
        response = admin.post('/api/admin/system-health', json={"action": "reboot"})
        assert response.status_code == 400
        with app.app_context():
            assert AuditLog.query.filter_by(action='SYSTEM_ACTION').count() == 0


class TestSystemSettings:
    def test_defaults(self, admin):
        settings = admin.get('/api/admin/system-settings').get_json()["settings"]

        assert settings["general"]["siteName"] == "UDSM Hub Management System"
        assert settings["security"]["passwordMinLength"] == 8
        assert settings["integrations"]["emailEnabled"] is False

    @pytest.mark.parametrize("changes", [
        {"security": {"passwordMinLength": 5}},
        {"limits": {"maxFileSizePerUpload": 200 * 1024 * 1024}},
        {"billing": {"currency": "TZS"}},
        {"general": "closed"},
        {},
    ])
    def test_invalid_updates(self, admin, changes):
        response = admin.put('/api/admin/system-settings', json={"settings": changes})
        assert response.status_code == 400

    def test_update_merges_and_reset_restores(self, admin):
        response = admin.put('/api/admin/system-settings', json={"settings": {"security": {"passwordMinLength": 10}}})
        security = response.get_json()["settings"]["security"]

        assert response.status_code == 200
        assert security["passwordMinLength"] == 10
        assert security["maxLoginAttempts"] == 5

        stored = admin.get('/api/admin/system-settings').get_json()["settings"]
        assert stored["security"]["passwordMinLength"] == 10

        reset = admin.post('/api/admin/system-settings', json={"action": "reset_to_defaults"}).get_json()
        assert reset["settings"]["security"]["passwordMinLength"] == 8

    def test_backup_and_integration_check(self, admin):
        backup = admin.post('/api/admin/system-settings', json={"action": "backup_settings"}).get_json()
        assert backup["backup"]["createdBy"] == ADMIN_EMAIL
        assert "general" in backup["backup"]["settings"]

        tests = admin.post('/api/admin/system-settings', json={"action": "test_integrations"}).get_json()["tests"]
        assert tests["database"] is True
        assert tests["email"] is False

    def test_unknown_action(self, admin):
        assert admin.post('/api/admin/system-settings', json={"action": "explode"}).status_code == 400
