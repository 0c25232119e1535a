import pytest


class TestAnalyticsInsightsRoute:
    def test_supplied_analytics(self, client, make_user, login):
        make_user('amina@udsm.ac.tz')
        login(client, 'amina@udsm.ac.tz')

        analytics = {"userEngagement": {"totalUsers": 100, "activeUsers": 10, "engagementRate": 10, "trend": 0}}
        body = client.post('/api/ai/analytics-insights', json={"analytics_data": analytics}).get_json()

        assert body["success"] is True
        assert body["insights"][0]["id"] == "critical-engagement"
        assert body["analyticsData"] == analytics

    def test_analytics_must_be_object(self, client, make_user, login):
        make_user('amina@udsm.ac.tz')
        login(client, 'amina@udsm.ac.tz')

        response = client.post('/api/ai/analytics-insights', json={"analytics_data": [1, 2]})
        assert response.status_code == 400

    def test_hub_id_must_be_integer(self, client, make_user, login):
        make_user('amina@udsm.ac.tz')
        login(client, 'amina@udsm.ac.tz')

        response = client.post('/api/ai/analytics-insights', json={"hub_id": "1"})
        assert response.status_code == 400
        assert response.get_json()["error"] == "hub_id must be an integer"

    def test_students_need_a_hub(self, client, make_user, login):
        make_user('amina@udsm.ac.tz')
        login(client, 'amina@udsm.ac.tz')

        assert client.post('/api/ai/analytics-insights', json={}).status_code == 403

    def test_hub_scoped_insights(self, client, make_user, make_hub, login):
        leader_id = make_user('leader@udsm.ac.tz')
        member_id = make_user('amina@udsm.ac.tz')
        hub_id = make_hub(leader_id=leader_id, members=[member_id])
        login(client, 'leader@udsm.ac.tz')

        body = client.post('/api/ai/analytics-insights', json={"hub_id": hub_id}).get_json()

        assert body["analyticsData"]["userEngagement"]["totalUsers"] == 2
        assert set(body["analyticsData"]) == {"userEngagement", "hubPerformance", "projectMetrics", "eventMetrics"}

    def test_unknown_hub(self, client, make_user, login):
        make_user('amina@udsm.ac.tz')
        login(client, 'amina@udsm.ac.tz')

        assert client.post('/api/ai/analytics-insights', json={"hub_id": 999}).status_code == 404

    def test_hub_insights_need_leader_or_supervisor(self, client, new_client, make_user, make_hub, login):
        leader_id = make_user('leader@udsm.ac.tz')
        member_id = make_user('amina@udsm.ac.tz')
        make_user('outsider@udsm.ac.tz')
        hub_id = make_hub(leader_id=leader_id, members=[member_id])

        login(client, 'outsider@udsm.ac.tz')
        response = client.post('/api/ai/analytics-insights', json={"hub_id": hub_id})
        assert response.status_code == 403
        assert "analyticsData" not in response.get_json()

        member = new_client()
        login(member, 'amina@udsm.ac.tz')
        assert member.post('/api/ai/analytics-insights', json={"hub_id": hub_id}).status_code == 403

    def test_hub_check_applies_to_supplied_data(self, client, make_user, make_hub, login):
        leader_id = make_user('leader@udsm.ac.tz')
        make_user('outsider@udsm.ac.tz')
        hub_id = make_hub(leader_id=leader_id)
        login(client, 'outsider@udsm.ac.tz')

        response = client.post('/api/ai/analytics-insights', json={"hub_id": hub_id, "analytics_data": {}})
        assert response.status_code == 403

    @pytest.mark.parametrize("analytics, message", [
        ({"userEngagement": {"totalUsers": None}}, "userEngagement.totalUsers must be a number"),
        ({"hubPerformance": {"averageMembers": "12"}}, "hubPerformance.averageMembers must be a number"),
        ({"projectMetrics": {"completionRate": True}}, "projectMetrics.completionRate must be a number"),
        ({"eventMetrics": [1, 2]}, "eventMetrics must be an object"),
        ({"eventMetrics": {"popularEventTypes": "Workshop"}}, "eventMetrics.popularEventTypes must be a list"),
    ])
    def test_malformed_analytics_sections(self, client, make_user, login, analytics, message):
        make_user('amina@udsm.ac.tz')
        login(client, 'amina@udsm.ac.tz')

        response = client.post('/api/ai/analytics-insights', json={"analytics_data": analytics})
        assert response.status_code == 400
        assert response.get_json()["error"] == message

    def test_user_role_must_be_text(self, client, make_user, login):
        make_user('amina@udsm.ac.tz')
        login(client, 'amina@udsm.ac.tz')

        analytics = {"hubPerformance": {"totalHubs": 1, "activeHubs": 1, "averageMembers": 20,
                                        "topPerformingHubs": ["Innovation Hub"]}}
        response = client.post('/api/ai/analytics-insights', json={"analytics_data": analytics, "user_role": 1})
        assert response.status_code == 400
        assert response.get_json()["error"] == "user_role must be a string"

    def test_admin_platform_insights(self, client, make_user, login):
        make_user('admin@udsm.ac.tz', role='admin')
        login(client, 'admin@udsm.ac.tz')

        body = client.post('/api/ai/analytics-insights', json={}).get_json()

        assert body["analyticsData"]["userEngagement"]["totalUsers"] == 1
        assert isinstance(body["insights"], list)

    def test_requires_login(self, client):
        assert client.post('/api/ai/analytics-insights', json={}).status_code == 401
