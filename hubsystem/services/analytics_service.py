import logging
from datetime import datetime, timedelta

from flask import current_app
from sqlalchemy import func

from hubsystem.models import (
    db, User, Hub, HubMember, Project, Event, EventRegistration,
    HubMembershipRequest, ProjectJoinRequest, ProgrammeJoinRequest, PENDING, APPROVED,
)
from hubsystem.services.audit_service import AuditService
from hubsystem.services.ai.insights_engine import InsightsEngine

logger = logging.getLogger(__name__)

ACTIVITY_ACTIONS = ['USER_LOGIN', 'PROJECT_CREATED', 'EVENT_REGISTRATION_CREATED', 'HUB_MEMBERSHIP_REQUESTED']
CHART_COLORS = ["#1976d2", "#388e3c", "#f57c00", "#7b1fa2", "#0288d1", "#d81b60", "#fbc02d", "#455a64"]
CHART_HUB_LIMIT = 10


def _pct(part, whole):
    return round(part / whole * 100, 1) if whole else 0


def _count(query):
    return query.scalar() or 0


class AnalyticsService:

    @staticmethod
    def _active_since(now):
        return now - timedelta(days=current_app.config['ACTIVE_USER_WINDOW_DAYS'])

    # --- Admin dashboard ---

    @staticmethod
    def get_dashboard_stats(now=None):
        now = now or datetime.utcnow()
        since = AnalyticsService._active_since(now)
        live_users = db.session.query(func.count(User.id)).filter(User.deleted_at.is_(None), User.is_active.is_(True))

        # 1. Headline counts
        total_users = _count(live_users)
        active_users = _count(live_users.filter(User.last_login_at >= since))
        total_hubs = _count(db.session.query(func.count(Hub.id)).filter(
            Hub.deleted_at.is_(None), Hub.is_active.is_(True)))
        total_projects = _count(db.session.query(func.count(Project.id)).filter(
            Project.deleted_at.is_(None), Project.publish_status == 'PUBLISHED'))
        total_events = _count(db.session.query(func.count(Event.id)).filter(
            Event.deleted_at.is_(None), Event.publish_status == 'PUBLISHED'))

        # 2. Everything awaiting a decision
        pending = 0
        for model in (HubMembershipRequest, ProjectJoinRequest, ProgrammeJoinRequest):
            pending += _count(db.session.query(func.count(model.id)).filter(
                model.status == PENDING, model.deleted_at.is_(None)))
        pending += _count(db.session.query(func.count(EventRegistration.id)).filter(
            EventRegistration.status == PENDING, EventRegistration.deleted_at.is_(None)))

        # 3. Growth against the user base as it stood one window ago
        previous_users = _count(live_users.filter(User.created_at <= since))
        growth_rate = _pct(total_users - previous_users, previous_users)

        return {
            "totalUsers": total_users,
            "activeUsers": active_users,
            "totalHubs": total_hubs,
            "totalProjects": total_projects,
            "totalEvents": total_events,
            "pendingRequests": pending,
            "engagementRate": _pct(active_users, total_users),
            "growthRate": growth_rate,
        }

    @staticmethod
    def get_user_growth(start, end):
        days = min((end - start).days, 30)
        labels, data = [], []
        for i in range(max(days, 0)):
            day = start + timedelta(days=i)
            labels.append(day.strftime('%b %d'))
            data.append(_count(db.session.query(func.count(User.id)).filter(
                User.deleted_at.is_(None), User.is_active.is_(True), User.created_at <= day)))
        return {
            "labels": labels,
            "datasets": [{"label": "Users", "data": data, "borderColor": CHART_COLORS[0], "fill": False}],
        }

    @staticmethod
    def get_hub_charts():
        hubs = Hub.query.filter(Hub.deleted_at.is_(None), Hub.is_active.is_(True)) \
            .order_by(Hub.name.asc()).limit(CHART_HUB_LIMIT).all()

        labels, activity, completion = [], [], []
        for hub in hubs:
            projects = [p for p in hub.projects if p.deleted_at is None and p.publish_status == 'PUBLISHED']
            events = [e for e in hub.events if e.deleted_at is None and e.publish_status == 'PUBLISHED']
            completed = [p for p in projects if p.status == 'COMPLETED']

            labels.append(hub.name)
            activity.append(len(projects) + len(events))
            completion.append(_pct(len(completed), len(projects)))

        return {
            "hubActivity": {
                "labels": labels,
                "datasets": [{"data": activity, "backgroundColor": CHART_COLORS}],
            },
            "projectCompletion": {
                "labels": labels,
                "datasets": [{"label": "Completion %", "data": completion, "backgroundColor": CHART_COLORS[0]}],
            },
        }

    @staticmethod
    def _describe_activity(log):
        details = log.details if isinstance(log.details, dict) else {}
        if log.action == 'USER_LOGIN':
            return "User Logged In", f"User {details.get('email') or log.user_email or 'Unknown'} logged into the system"
        if log.action == 'PROJECT_CREATED':
            return "Project Created", f"New project \"{details.get('title', 'Unknown')}\" created"
        if log.action == 'EVENT_REGISTRATION_CREATED':
            return "Event Registration", f"User registered for event \"{details.get('event_title', 'Unknown')}\""
        if log.action == 'HUB_MEMBERSHIP_REQUESTED':
            return "Hub Membership Requested", f"User requested to join hub \"{details.get('hub_name', 'Unknown')}\""
        return log.action, details.get('message', 'Activity occurred')

    @staticmethod
    def get_recent_activity(start, end):
        activity = []
        for log in AuditService.recent_activity(start, end, ACTIVITY_ACTIONS):
            title, description = AnalyticsService._describe_activity(log)
            activity.append({"title": title, "description": description, "created_at": log.timestamp.isoformat()})
        return activity

    @staticmethod
    def get_admin_dashboard(start=None, end=None):
        end = end or datetime.utcnow()
        start = start or end - timedelta(days=30)

        stats = AnalyticsService.get_dashboard_stats(now=end)
        logger.debug("Dashboard stats %s", stats)
        chart_data = {"userGrowth": AnalyticsService.get_user_growth(start, end)}
        chart_data.update(AnalyticsService.get_hub_charts())

        return {
            "stats": stats,
            "recentActivity": AnalyticsService.get_recent_activity(start, end),
            "aiInsights": InsightsEngine.system_insights(stats),
            "chartData": chart_data,
        }

    # --- Insights input ---

    @staticmethod
    def _user_engagement(now, hub_id=None):
        since = AnalyticsService._active_since(now)
        if hub_id is None:
            stats = AnalyticsService.get_dashboard_stats(now=now)
            return {
                "totalUsers": stats["totalUsers"],
                "activeUsers": stats["activeUsers"],
                "engagementRate": stats["engagementRate"],
                "trend": stats["growthRate"],
            }

        members = HubMember.query.filter_by(hub_id=hub_id, is_active=True) \
            .filter(HubMember.deleted_at.is_(None)).all()
        total = len(members)
        active = len([m for m in members if m.user.last_login_at and m.user.last_login_at >= since])
        previous = len([m for m in members if m.joined_at and m.joined_at <= since])
        return {
            "totalUsers": total,
            "activeUsers": active,
            "engagementRate": _pct(active, total),
            "trend": _pct(total - previous, previous),
        }

    @staticmethod
    def _hub_score(hub):
        projects = len([p for p in hub.projects if p.deleted_at is None])
        events = len([e for e in hub.events if e.deleted_at is None])
        return len(hub.active_members()) + projects + events

    @staticmethod
    def _hub_performance(now, hub_id=None):
        since = AnalyticsService._active_since(now)
        query = Hub.query.filter(Hub.deleted_at.is_(None))
        if hub_id is not None:
            query = query.filter(Hub.id == hub_id)
        hubs = query.all()

        def is_active(hub):
            # Active means something new happened inside the window
            recent_project = any(p.created_at and p.created_at >= since for p in hub.projects if p.deleted_at is None)
            recent_event = any(e.created_at and e.created_at >= since for e in hub.events if e.deleted_at is None)
            return hub.is_active and (recent_project or recent_event)

        member_counts = [len(h.active_members()) for h in hubs]
        ranked = sorted((h for h in hubs if AnalyticsService._hub_score(h) > 0),
                        key=AnalyticsService._hub_score, reverse=True)

        return {
            "totalHubs": len(hubs),
            "activeHubs": len([h for h in hubs if is_active(h)]),
            "averageMembers": round(sum(member_counts) / len(member_counts), 1) if member_counts else 0,
            "topPerformingHubs": [h.name for h in ranked[:3]] if hub_id is None else [],
        }

    @staticmethod
    def _project_metrics(hub_id=None):
        query = Project.query.filter(Project.deleted_at.is_(None), Project.publish_status == 'PUBLISHED')
        if hub_id is not None:
            query = query.filter(Project.hub_id == hub_id)
        projects = query.all()

        completed = [p for p in projects if p.status == 'COMPLETED']
        durations = [
            (p.completed_at - (p.start_date or p.created_at)).days
            for p in completed if p.completed_at and (p.start_date or p.created_at)
        ]
        return {
            "totalProjects": len(projects),
            "completedProjects": len(completed),
            "completionRate": _pct(len(completed), len(projects)),
            "averageCompletionTime": round(sum(durations) / len(durations), 1) if durations else 0,
        }

    @staticmethod
    def _event_metrics(now, hub_id=None):
        query = Event.query.filter(Event.deleted_at.is_(None), Event.publish_status == 'PUBLISHED')
        if hub_id is not None:
            query = query.filter(Event.hub_id == hub_id)
        events = query.all()

        past_registrations = [
            r for e in events if e.start_date < now for r in e.approved_registrations()
        ]
        attended = [r for r in past_registrations if r.attended]

        type_counts = {}
        for event in events:
            type_counts[event.event_type] = type_counts.get(event.event_type, 0) + len(event.approved_registrations())
        popular = sorted((t for t, c in type_counts.items() if c > 0), key=lambda t: (-type_counts[t], t))

        return {
            "totalEvents": len(events),
            "upcomingEvents": len([e for e in events if e.start_date >= now]),
            # No past registrations means no evidence of low attendance
            "averageAttendance": _pct(len(attended), len(past_registrations)) if past_registrations else 100,
            "popularEventTypes": popular,
        }

    @staticmethod
    def collect_analytics_data(hub_id=None, now=None):
        """
        Builds the counters the insights engine reads, either platform wide
        or scoped to a single hub.
        """
        now = now or datetime.utcnow()
        return {
            "userEngagement": AnalyticsService._user_engagement(now, hub_id),
            "hubPerformance": AnalyticsService._hub_performance(now, hub_id),
            "projectMetrics": AnalyticsService._project_metrics(hub_id),
            "eventMetrics": AnalyticsService._event_metrics(now, hub_id),
        }

    # --- Hub scoped view ---

    @staticmethod
    def get_hub_analytics(hub, now=None):
        now = now or datetime.utcnow()
        data = AnalyticsService.collect_analytics_data(hub_id=hub.id, now=now)

        projects = [p for p in hub.projects if p.deleted_at is None]
        status_breakdown = {}
        for project in projects:
            status_breakdown[project.status] = status_breakdown.get(project.status, 0) + 1

        programmes = [p for p in hub.programmes if p.deleted_at is None]
        pending = 0
        for model in (HubMembershipRequest, ProjectJoinRequest, ProgrammeJoinRequest):
            pending += _count(db.session.query(func.count(model.id)).filter(
                model.hub_id == hub.id, model.status == PENDING, model.deleted_at.is_(None)))

        registrations = db.session.query(func.count(EventRegistration.id)) \
            .join(Event, EventRegistration.event_id == Event.id) \
            .filter(Event.hub_id == hub.id, EventRegistration.status == APPROVED,
                    EventRegistration.deleted_at.is_(None))

        metrics = {
            "memberCount": data["userEngagement"]["totalUsers"],
            "activeMembers": data["userEngagement"]["activeUsers"],
            "engagementRate": data["userEngagement"]["engagementRate"],
            "projectCount": len(projects),
            "programmeCount": len(programmes),
            "eventCount": data["eventMetrics"]["totalEvents"],
            "upcomingEvents": data["eventMetrics"]["upcomingEvents"],
            "eventRegistrations": _count(registrations),
            "pendingRequests": pending,
            "projectStatus": status_breakdown,
        }

        return {
            "hub": hub.to_summary(),
            "metrics": metrics,
            "analyticsData": data,
            "insights": InsightsEngine.generate(data, now=now),
            "recommendations": InsightsEngine.hub_recommendations(metrics),
        }
