from hubsystem.models import db, AuditLog, Hub, HubMember, Notification
from hubsystem.services.membership_service import MembershipService


class TestHubCatalogue:
    def test_list_and_search(self, client, make_hub):
        make_hub('Innovation Hub')
        make_hub('Entrepreneurship Hub')

        body = client.get('/api/hubs').get_json()
        assert body["pagination"]["total"] == 2

        body = client.get('/api/hubs?search=entre').get_json()
        assert [h["name"] for h in body["hubs"]] == ["Entrepreneurship Hub"]

    def test_unknown_hub(self, client):
        response = client.get('/api/hubs/999')
        assert response.status_code == 404
        assert response.get_json()["error"] == "Hub not found"

    def test_hub_detail_lists_leaders(self, client, make_user, make_hub):
        leader_id = make_user('leader@udsm.ac.tz')
        hub_id = make_hub(leader_id=leader_id)

        hub = client.get(f'/api/hubs/{hub_id}').get_json()["hub"]
        assert [l["id"] for l in hub["leaders"]] == [leader_id]
        assert hub["counts"]["members"] == 1


class TestHubAdministration:
    def test_students_cannot_create_hubs(self, client, make_user, login):
        make_user('amina@udsm.ac.tz')
        login(client, 'amina@udsm.ac.tz')

        response = client.post('/api/hubs', json={"name": "New Hub", "description": "A brand new hub for all"})
        assert response.status_code == 403

    def test_admin_creates_hub_with_categories(self, app, client, make_user, login):
        make_user('admin@udsm.ac.tz', role='admin')
        login(client, 'admin@udsm.ac.tz')

        response = client.post('/api/hubs', json={
            "name": "AI Hub",
            "description": "Machine learning reading group and projects",
            "categories": ["Technology", "Research"],
        })
        assert response.status_code == 201
        assert sorted(response.get_json()["hub"]["categories"]) == ["Research", "Technology"]

        duplicate = client.post('/api/hubs', json={"name": "AI Hub", "description": "Another one with same name"})
        assert duplicate.status_code == 400
        with app.app_context():
            assert AuditLog.query.filter_by(action='HUB_CREATED').count() == 1

    def test_leader_patches_single_field(self, client, make_user, make_hub, login):
        leader_id = make_user('leader@udsm.ac.tz')
        hub_id = make_hub('Innovation Hub', leader_id=leader_id)
        login(client, 'leader@udsm.ac.tz')

        response = client.patch(f'/api/hubs/{hub_id}', json={"card_bio": "Build things together"})
        hub = response.get_json()["hub"]

        assert response.status_code == 200
        assert hub["card_bio"] == "Build things together"
        assert hub["name"] == "Innovation Hub"

    def test_members_cannot_patch(self, client, make_user, make_hub, login):
        member_id = make_user('amina@udsm.ac.tz')
        hub_id = make_hub(members=[member_id])
        login(client, 'amina@udsm.ac.tz')

        assert client.patch(f'/api/hubs/{hub_id}', json={"card_bio": "x"}).status_code == 403

    def test_soft_delete_hides_hub(self, app, client, make_user, make_hub, login):
        make_user('admin@udsm.ac.tz', role='admin')
        hub_id = make_hub()
        login(client, 'admin@udsm.ac.tz')

        assert client.delete(f'/api/hubs/{hub_id}').status_code == 200
        assert client.get(f'/api/hubs/{hub_id}').status_code == 404
        with app.app_context():
            assert db.session.get(Hub, hub_id).deleted_at is not None

    def test_admin_assigns_leader(self, app, client, make_user, make_hub, login):
        make_user('admin@udsm.ac.tz', role='admin')
        user_id = make_user('amina@udsm.ac.tz')
        hub_id = make_hub()
        login(client, 'admin@udsm.ac.tz')

        response = client.post(f'/api/admin/hubs/{hub_id}/members', json={"user_id": user_id, "role": "HUB_LEADER"})
        assert response.status_code == 201
        assert response.get_json()["membership"]["role"] == "HUB_LEADER"

        bad_role = client.post(f'/api/admin/hubs/{hub_id}/members', json={"user_id": user_id, "role": "OWNER"})
        assert bad_role.status_code == 400
        with app.app_context():
            assert Notification.query.filter_by(user_id=user_id).count() == 1


class TestMembershipRequests:
    def test_request_and_approve(self, app, new_client, make_user, make_hub, login):
        leader_id = make_user('leader@udsm.ac.tz')
        student_id = make_user('amina@udsm.ac.tz')
        hub_id = make_hub(leader_id=leader_id)
        student = login(new_client(), 'amina@udsm.ac.tz')
        leader = login(new_client(), 'leader@udsm.ac.tz')

        response = student.post(f'/api/hubs/{hub_id}/join', json={"message": "I build robots"})
        assert response.status_code == 201
        request_id = response.get_json()["request"]["id"]

        again = student.post(f'/api/hubs/{hub_id}/join', json={})
        assert again.status_code == 400
        assert again.get_json()["error"] == "Membership request already pending"

        status = student.get(f'/api/hubs/{hub_id}/membership').get_json()
        assert status["is_member"] is False
        assert status["has_pending_request"] is True

        pending = leader.get(f'/api/hub-leader/membership-requests?hub_id={hub_id}').get_json()["requests"]
        assert [r["id"] for r in pending] == [request_id]

        response = leader.patch(f'/api/hub-leader/membership-requests/{request_id}', json={"action": "approve"})
        assert response.status_code == 200
        assert response.get_json()["request"]["status"] == "APPROVED"

        status = student.get(f'/api/hubs/{hub_id}/membership').get_json()
        assert status == {"success": True, "is_member": True, "role": "MEMBER", "has_pending_request": False}

        with app.app_context():
            titles = [n.title for n in Notification.query.filter_by(user_id=student_id)]
            assert "Hub Membership Approved" in titles
            assert Notification.query.filter_by(user_id=leader_id, title="New Hub Membership Request").count() == 1

    def test_members_cannot_rejoin(self, client, make_user, make_hub, login):
        member_id = make_user('amina@udsm.ac.tz')
        hub_id = make_hub(members=[member_id])
        login(client, 'amina@udsm.ac.tz')

        response = client.post(f'/api/hubs/{hub_id}/join', json={})
        assert response.get_json()["error"] == "Already a member of this hub"

    def test_only_leaders_respond(self, new_client, make_user, make_hub, login):
        leader_id = make_user('leader@udsm.ac.tz')
        make_user('amina@udsm.ac.tz')
        outsider_id = make_user('baraka@udsm.ac.tz')
        hub_id = make_hub(leader_id=leader_id, members=[outsider_id])

        student = login(new_client(), 'amina@udsm.ac.tz')
        request_id = student.post(f'/api/hubs/{hub_id}/join', json={}).get_json()["request"]["id"]

        outsider = login(new_client(), 'baraka@udsm.ac.tz')
        response = outsider.patch(f'/api/hub-leader/membership-requests/{request_id}', json={"action": "approve"})
        assert response.status_code == 403

    def test_reject_then_respond_again(self, app, new_client, make_user, make_hub, login):
        leader_id = make_user('leader@udsm.ac.tz')
        student_id = make_user('amina@udsm.ac.tz')
        hub_id = make_hub(leader_id=leader_id)
        student = login(new_client(), 'amina@udsm.ac.tz')
        leader = login(new_client(), 'leader@udsm.ac.tz')

        request_id = student.post(f'/api/hubs/{hub_id}/join', json={}).get_json()["request"]["id"]
        assert leader.patch(f'/api/hub-leader/membership-requests/{request_id}',
                            json={"action": "reject"}).status_code == 200

        again = leader.patch(f'/api/hub-leader/membership-requests/{request_id}', json={"action": "approve"})
        assert again.status_code == 400
        with app.app_context():
            assert HubMember.query.filter_by(hub_id=hub_id, user_id=student_id).count() == 0

    def test_approving_old_request_keeps_granted_role(self, app, new_client, make_user, make_hub, login):
        """A student made supervisor while their request waited stays supervisor."""
        leader_id = make_user('leader@udsm.ac.tz')
        student_id = make_user('amina@udsm.ac.tz')
        hub_id = make_hub(leader_id=leader_id)
        student = login(new_client(), 'amina@udsm.ac.tz')
        leader = login(new_client(), 'leader@udsm.ac.tz')

        request_id = student.post(f'/api/hubs/{hub_id}/join', json={}).get_json()["request"]["id"]
        with app.app_context():
            MembershipService.add_hub_member(hub_id, student_id, 'SUPERVISOR')
            db.session.commit()

        response = leader.patch(f'/api/hub-leader/membership-requests/{request_id}', json={"action": "approve"})
        assert response.status_code == 200
        with app.app_context():
            membership = HubMember.query.filter_by(hub_id=hub_id, user_id=student_id).one()
            assert membership.role == 'SUPERVISOR'

    def test_invalid_action(self, client, make_user, make_hub, login):
        make_user('leader@udsm.ac.tz')
        login(client, 'leader@udsm.ac.tz')
        assert client.patch('/api/hub-leader/membership-requests/1', json={"action": "maybe"}).status_code == 400

    def test_hub_id_required(self, client, make_user, login):
        make_user('leader@udsm.ac.tz')
        login(client, 'leader@udsm.ac.tz')

        response = client.get('/api/hub-leader/membership-requests')
        assert response.status_code == 400
        assert response.get_json()["error"] == "Hub ID required"

    def test_membership_of_other_users_forbidden(self, client, make_user, make_hub, login):
        make_user('amina@udsm.ac.tz')
        other_id = make_user('baraka@udsm.ac.tz')
        hub_id = make_hub()
        login(client, 'amina@udsm.ac.tz')

        response = client.get(f'/api/hubs/{hub_id}/membership?user_id={other_id}')
        assert response.status_code == 403
