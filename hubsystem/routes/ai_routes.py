from flask import Blueprint, jsonify, current_app
from flask_login import login_required, current_user

from hubsystem.errors import ForbiddenError, NotFoundError, ValidationError
from hubsystem.routes.helpers import json_body
from hubsystem.services.ai.chatbot import Chatbot
from hubsystem.services.ai.insights_engine import InsightsEngine
from hubsystem.services.ai.recommender import Recommender
from hubsystem.services.analytics_service import AnalyticsService
from hubsystem.services.hub_service import HubService
from hubsystem.services.membership_service import MembershipService
from hubsystem.services.user_service import UserService

ai_bp = Blueprint('ai', __name__, url_prefix='/api/ai')

# Counters each analytics section may carry; list-valued keys hold names
ANALYTICS_SECTIONS = {
    'userEngagement': (('totalUsers', 'activeUsers', 'engagementRate', 'trend'), ()),
    'hubPerformance': (('totalHubs', 'activeHubs', 'averageMembers'), ('topPerformingHubs',)),
    'projectMetrics': (('totalProjects', 'completionRate', 'averageCompletionTime'), ()),
    'eventMetrics': (('upcomingEvents', 'averageAttendance'), ('popularEventTypes',)),
}


def check_analytics_data(analytics_data):
    if not isinstance(analytics_data, dict):
        raise ValidationError("analytics_data must be an object")
    for section, (counters, lists) in ANALYTICS_SECTIONS.items():
        values = analytics_data.get(section)
        if values is None:
            continue
        if not isinstance(values, dict):
            raise ValidationError(f"{section} must be an object")
        for key in counters:
            value = values.get(key, 0)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValidationError(f"{section}.{key} must be a number")
        for key in lists:
            value = values.get(key)
            if value is not None and not isinstance(value, list):
                raise ValidationError(f"{section}.{key} must be a list")


@ai_bp.route('/analytics-insights', methods=['POST'])
@login_required
def analytics_insights():
    data = json_body()
    analytics_data = data.get('analytics_data')
    hub_id = data.get('hub_id')
    if hub_id is not None and not isinstance(hub_id, int):
        raise ValidationError("hub_id must be an integer")
    user_role = data.get('user_role')
    if user_role is not None and not isinstance(user_role, str):
        raise ValidationError("user_role must be a string")

    hub = None
    if hub_id is not None:
        hub = HubService.get_hub(hub_id)
        MembershipService.require_hub_analytics_access(hub.id, current_user)

    if analytics_data is None:
        if hub is not None:
            analytics_data = AnalyticsService.collect_analytics_data(hub_id=hub.id)
        elif current_user.role == 'admin':
            analytics_data = AnalyticsService.collect_analytics_data()
        else:
            raise ForbiddenError("Only admins can view platform-wide insights")
    else:
        check_analytics_data(analytics_data)

    insights = InsightsEngine.generate(analytics_data, user_role=user_role or current_user.role)
    current_app.logger.debug("Generated %d insights", len(insights))
    return jsonify({"success": True, "insights": insights, "analyticsData": analytics_data})


@ai_bp.route('/recommendations', methods=['POST'])
@login_required
def recommendations():
    data = json_body()
    user_id = data.get('user_id') or current_user.id
    if user_id != current_user.id and current_user.role != 'admin':
        raise ForbiddenError("You can only view your own recommendations")

    limit = data.get('limit', 5)
    if not isinstance(limit, int) or limit < 1:
        raise ValidationError("limit must be a positive integer")

    user = UserService.get_user_by_id(user_id)
    if user is None or user.deleted_at is not None:
        raise NotFoundError("User not found")

    return jsonify({"success": True, "recommendations": Recommender.recommend(user, limit=min(limit, 50))})


@ai_bp.route('/chatbot', methods=['POST'])
@login_required
def chatbot():
    message = json_body().get('message')
    if not isinstance(message, str) or not message.strip():
        raise ValidationError("Message is required")
    return jsonify({"success": True, **Chatbot.reply(message)})
