from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import and_, or_, select

from hubsystem.models import (
    Event, EventRegistration, Hub, HubMember, Project, ProjectMember,
    Programme, ProgrammeMember, User,
)

MAX_CONFIDENCE = 0.95
TRAINING_KEYWORDS = ('workshop', 'training')


def _matches(a, b):
    a, b = a.lower(), b.lower()
    return a in b or b in a


def _count_matches(candidates, skills):
    return len([c for c in candidates if any(_matches(c, s) for s in skills)])


def _excerpt(text, length=100):
    text = text or ''
    return text[:length] + "..." if len(text) > length else text


def _recommendation(type, obj_id, title, description, confidence, reason, data):
    return {
        "id": f"{type}-{obj_id}",
        "type": type,
        "title": title,
        "description": description,
        "confidence": round(min(confidence, MAX_CONFIDENCE), 2),
        "reason": reason,
        "data": data,
    }


class Recommender:
    """
    Scores events, projects, programmes, hubs and collaborators for a user.

    The score_* methods are pure; recommend() does the querying.
    """

    @staticmethod
    def score_event(event, skills: List[str], hub_ids, now: Optional[datetime] = None):
        confidence = 0.3
        reason = "Upcoming event in your area of interest"

        if event.hub_id in hub_ids:
            confidence += 0.4
            reason = "Event from your hub community"

        matches = _count_matches(event.tags or [], skills)
        if matches:
            confidence += matches * 0.15
            reason = f"Matches your skills: {', '.join(skills[:2])}"

        event_type = (event.event_type or '').lower()
        if any(k in event_type for k in TRAINING_KEYWORDS):
            confidence += 0.1

        return confidence, reason

    @staticmethod
    def score_project(project, skills: List[str], now: Optional[datetime] = None):
        now = now or datetime.utcnow()
        confidence = 0.4
        reason = "Project from your hub community"

        matches = _count_matches(project.skills or [], skills)
        if matches:
            confidence += matches * 0.2
            reason = f"Perfect match for your skills: {', '.join(skills[:2])}"

        if len(project.active_members()) < 5:
            confidence += 0.1
            reason += " - Looking for team members"

        if project.created_at and (now - project.created_at).days < 30:
            confidence += 0.1

        return confidence, reason

    @staticmethod
    def score_programme(programme, skills: List[str], now: Optional[datetime] = None):
        now = now or datetime.utcnow()
        confidence = 0.3
        reason = "Available learning programme"

        text = f"{programme.title} {programme.description}".lower()
        relevant = [s for s in skills if s.lower() in text]
        if relevant:
            confidence += len(relevant) * 0.25
            reason = f"Builds on your {', '.join(relevant[:2])} skills"

        if len(programme.active_members()) < 10:
            confidence += 0.15
            reason += " - Small cohort, more personalized attention"

        if programme.start_date:
            days_until_start = (programme.start_date - now).days
            if 0 < days_until_start < 30:
                confidence += 0.1
                reason += " - Starting soon"

        return confidence, reason

    @staticmethod
    def score_hub(hub, skills: List[str]):
        confidence = 0.3
        reason = "Active hub community"

        categories = [c.name for c in hub.categories]
        overlap = _count_matches(categories, skills)
        if overlap:
            confidence += overlap * 0.2
            reason = f"Matches your interests in {', '.join(c.lower() for c in categories[:2])}"

        if len(hub.active_members()) >= 10:
            confidence += 0.1
            reason += " - Very active community"

        return confidence, reason

    @staticmethod
    def score_collaborator(other, skills: List[str], hub_ids):
        confidence = 0.1
        reason = "Member of your hub community"

        common = [s for s in skills if any(_matches(s, o) for o in (other.skills or []))]
        if common:
            confidence += len(common) * 0.2
            reason = f"Shares your skills: {', '.join(common[:2])}"

        if len([m for m in other.project_memberships if m.deleted_at is None]) > 2:
            confidence += 0.2
            reason += " - Active project contributor"

        shared = {m.hub_id for m in other.hub_memberships if m.is_active and m.deleted_at is None} & set(hub_ids)
        if len(shared) > 1:
            confidence += 0.15
            reason += f" - Active in {len(shared)} shared hubs"

        return confidence, reason

    # --- Querying ---

    @staticmethod
    def _hub_ids(user):
        return sorted({m.hub_id for m in user.hub_memberships if m.is_active and m.deleted_at is None})

    @staticmethod
    def event_recommendations(user, skills, hub_ids, now):
        registered = select(EventRegistration.event_id).where(
            EventRegistration.user_id == user.id,
            EventRegistration.deleted_at.is_(None),
        )
        visible = or_(
            Event.visibility.in_(('PUBLIC', 'AUTHENTICATED')),
            and_(Event.visibility == 'HUB_MEMBERS', Event.hub_id.in_(hub_ids or [-1])),
        )
        events = Event.query.filter(
            Event.start_date >= now,
            Event.publish_status == 'PUBLISHED',
            Event.deleted_at.is_(None),
            visible,
            ~Event.id.in_(registered),
        ).order_by(Event.start_date.asc()).limit(20).all()

        results = []
        for event in events:
            confidence, reason = Recommender.score_event(event, skills, hub_ids, now)
            if confidence > 0.4:
                results.append(_recommendation(
                    'event', event.id, event.title, _excerpt(event.description),
                    confidence, reason, event.to_summary(),
                ))
        return results

    @staticmethod
    def project_recommendations(user, skills, hub_ids, now):
        if not hub_ids:
            return []
        joined = select(ProjectMember.project_id).where(
            ProjectMember.user_id == user.id,
            ProjectMember.deleted_at.is_(None),
        )
        projects = Project.query.filter(
            Project.hub_id.in_(hub_ids),
            Project.publish_status == 'PUBLISHED',
            Project.deleted_at.is_(None),
            Project.status.in_(('PLANNING', 'IN_PROGRESS')),
            ~Project.id.in_(joined),
        ).limit(15).all()

        results = []
        for project in projects:
            confidence, reason = Recommender.score_project(project, skills, now)
            if confidence > 0.5:
                results.append(_recommendation(
                    'project', project.id, project.title, _excerpt(project.description),
                    confidence, reason, project.to_summary(),
                ))
        return results

    @staticmethod
    def programme_recommendations(user, skills, now):
        joined = select(ProgrammeMember.programme_id).where(
            ProgrammeMember.user_id == user.id,
            ProgrammeMember.deleted_at.is_(None),
        )
        programmes = Programme.query.filter(
            Programme.publish_status == 'PUBLISHED',
            Programme.deleted_at.is_(None),
            Programme.start_date >= now,
            ~Programme.id.in_(joined),
        ).limit(10).all()

        results = []
        for programme in programmes:
            confidence, reason = Recommender.score_programme(programme, skills, now)
            if confidence > 0.4:
                results.append(_recommendation(
                    'programme', programme.id, programme.title, _excerpt(programme.description),
                    confidence, reason, programme.to_summary(),
                ))
        return results

    @staticmethod
    def hub_recommendations(user, skills, hub_ids):
        hubs = Hub.query.filter(
            Hub.deleted_at.is_(None),
            Hub.is_active.is_(True),
            ~Hub.id.in_(hub_ids or [-1]),
        ).limit(10).all()

        results = []
        for hub in hubs:
            confidence, reason = Recommender.score_hub(hub, skills)
            if confidence > 0.4:
                results.append(_recommendation(
                    'hub', hub.id, hub.name, hub.card_bio or _excerpt(hub.description),
                    confidence, reason, hub.to_summary(),
                ))
        return results

    @staticmethod
    def collaborator_recommendations(user, skills, hub_ids):
        if not hub_ids:
            return []
        others = User.query.join(HubMember, HubMember.user_id == User.id).filter(
            User.id != user.id,
            User.deleted_at.is_(None),
            HubMember.hub_id.in_(hub_ids),
            HubMember.is_active.is_(True),
            HubMember.deleted_at.is_(None),
        ).distinct().limit(20).all()

        results = []
        for other in others:
            confidence, reason = Recommender.score_collaborator(other, skills, hub_ids)
            if confidence > 0.4:
                expertise = ', '.join((other.skills or [])[:2])
                results.append(_recommendation(
                    'user', other.id, other.full_name,
                    f"{other.degree_programme or 'Student'} with expertise in {expertise}",
                    confidence, reason, other.to_summary(),
                ))
        return results

    @staticmethod
    def recommend(user, limit=5, now: Optional[datetime] = None) -> List[Dict]:
        now = now or datetime.utcnow()
        skills = [s for s in (user.skills or []) if s]
        hub_ids = Recommender._hub_ids(user)

        recommendations = []
        recommendations.extend(Recommender.event_recommendations(user, skills, hub_ids, now))
        recommendations.extend(Recommender.project_recommendations(user, skills, hub_ids, now))
        recommendations.extend(Recommender.programme_recommendations(user, skills, now))
        recommendations.extend(Recommender.hub_recommendations(user, skills, hub_ids))
        recommendations.extend(Recommender.collaborator_recommendations(user, skills, hub_ids))

        recommendations.sort(key=lambda r: r["confidence"], reverse=True)
        return recommendations[:limit]
