import logging
from datetime import datetime

from sqlalchemy import or_

from hubsystem.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from hubsystem.models import db, Event, EventRegistration, EventFeedback, APPROVED
from hubsystem.services.audit_service import AuditService
from hubsystem.services.membership_service import MembershipService
from hubsystem.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


def _tags(value):
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(t, str) for t in value):
        raise ValidationError("Tags must be a list of strings")
    return [t.strip() for t in value if t.strip()]


class EventService:

    @staticmethod
    def get_event(event_id, published_only=True):
        event = db.session.get(Event, event_id)
        if event is None or event.deleted_at is not None:
            raise NotFoundError("Event not found")
        if published_only and event.publish_status != 'PUBLISHED':
            raise NotFoundError("Event not found")
        return event

    @staticmethod
    def search_events(user, search=None, hub_id=None, event_type=None, upcoming=None, now=None):
        query = Event.query.filter(
            Event.deleted_at.is_(None),
            Event.publish_status == 'PUBLISHED',
            MembershipService.visible_clause(Event, user),
        )
        if search:
            term = f"%{search}%"
            query = query.filter(or_(Event.title.ilike(term), Event.description.ilike(term)))
        if hub_id:
            query = query.filter(Event.hub_id == hub_id)
        if event_type:
            query = query.filter(Event.event_type == event_type)
        if upcoming:
            query = query.filter(Event.start_date >= (now or datetime.utcnow()))
        return query.order_by(Event.start_date.asc(), Event.id.asc())

    @staticmethod
    def registration_for(event_id, user_id):
        return EventRegistration.query.filter_by(event_id=event_id, user_id=user_id) \
            .filter(EventRegistration.deleted_at.is_(None)).first()

    # --- Registration ---

    @staticmethod
    def register(event_id, user):
        event = EventService.get_event(event_id)

        if event.capacity and len(event.approved_registrations()) >= event.capacity:
            raise ValidationError("Event is full")
        if EventService.registration_for(event.id, user.id):
            raise ConflictError("Already registered for this event")

        # Registrations are auto-approved
        registration = EventRegistration(event_id=event.id, user_id=user.id, status=APPROVED)
        db.session.add(registration)
        db.session.flush()

        NotificationService.notify(
            user.id,
            "Event Registration Confirmed",
            f'You have successfully registered for "{event.title}"',
            type='EVENT_REMINDER',
            action_url=f'/events/{event.id}',
            metadata={"event_id": event.id, "registration_id": registration.id},
        )
        AuditService.record('EVENT_REGISTRATION_CREATED', 'EVENT', event.id,
                            details={"event_title": event.title, "registration_id": registration.id},
                            user=user)
        db.session.commit()
        logger.info("User %s registered for event %s", user.id, event.id)
        return registration

    @staticmethod
    def cancel_registration(event_id, user):
        event = EventService.get_event(event_id, published_only=False)
        registration = EventService.registration_for(event.id, user.id)
        if registration is None:
            raise NotFoundError("Registration not found")

        registration.deleted_at = datetime.utcnow()
        AuditService.record('EVENT_REGISTRATION_CANCELLED', 'EVENT', event.id,
                            details={"event_title": event.title, "registration_id": registration.id},
                            user=user)
        db.session.commit()
        return registration

    @staticmethod
    def submit_feedback(user, event_id, rating, content=None, suggestions=None, would_recommend=None):
        attended = EventRegistration.query.filter_by(
            event_id=event_id, user_id=user.id, status=APPROVED, attended=True,
        ).filter(EventRegistration.deleted_at.is_(None)).first()
        if attended is None:
            raise ForbiddenError("You must have attended this event to provide feedback")

        if EventFeedback.query.filter_by(event_id=event_id, user_id=user.id).first():
            raise ConflictError("You have already provided feedback for this event")

        feedback = EventFeedback(
            event_id=event_id,
            user_id=user.id,
            rating=rating,
            content=content,
            suggestions=suggestions,
            would_recommend=would_recommend,
        )
        db.session.add(feedback)
        db.session.flush()
        AuditService.record('EVENT_FEEDBACK_SUBMITTED', 'EVENT', event_id,
                            details={"feedback_id": feedback.id, "rating": rating}, user=user)
        db.session.commit()
        return feedback

    # --- Hub leader management ---

    @staticmethod
    def events_for_hub(hub_id):
        return Event.query.filter_by(hub_id=hub_id).filter(Event.deleted_at.is_(None)) \
            .order_by(Event.start_date.desc()).all()

    @staticmethod
    def create_event(leader, hub_id, tags=None, **fields):
        MembershipService.require_hub_leader(hub_id, leader)
        EventService._check_dates(fields.get('start_date'), fields.get('end_date'))

        event = Event(hub_id=hub_id, tags=_tags(tags), publish_status='PUBLISHED', created_by=leader.id, **fields)
        db.session.add(event)
        db.session.flush()

        member_ids = [m.user_id for m in event.hub.active_members() if m.user_id != leader.id]
        NotificationService.notify_many(
            member_ids,
            "New Event",
            f'{event.hub.name} published "{event.title}"',
            type='EVENT_REMINDER',
            action_url=f'/events/{event.id}',
            metadata={"event_id": event.id},
        )
        AuditService.record('EVENT_CREATED', 'EVENT', event.id,
                            details={"title": event.title, "hub_id": hub_id}, user=leader)
        db.session.commit()
        return event

    @staticmethod
    def update_event(event, leader, tags=None, **fields):
        EventService.require_manager(event, leader)
        EventService._check_dates(fields.get('start_date', event.start_date), fields.get('end_date', event.end_date))
        if fields.get('capacity') and fields['capacity'] < len(event.approved_registrations()):
            raise ValidationError("Capacity cannot be lower than the number of registrations")

        for key, value in fields.items():
            setattr(event, key, value)
        if tags is not None:
            event.tags = _tags(tags)

        AuditService.record('EVENT_UPDATED', 'EVENT', event.id, details={"fields": sorted(fields)}, user=leader)
        db.session.commit()
        return event

    @staticmethod
    def delete_event(event, leader):
        EventService.require_manager(event, leader)
        event.deleted_at = datetime.utcnow()
        AuditService.record('EVENT_DELETED', 'EVENT', event.id, details={"title": event.title}, user=leader)
        db.session.commit()

    @staticmethod
    def mark_attendance(event, leader, user_id, attended):
        EventService.require_manager(event, leader)
        registration = EventService.registration_for(event.id, user_id)
        if registration is None or registration.status != APPROVED:
            raise NotFoundError("Registration not found")

        registration.attended = bool(attended)
        AuditService.record('EVENT_ATTENDANCE_MARKED', 'EVENT', event.id,
                            details={"user_id": user_id, "attended": registration.attended}, user=leader)
        db.session.commit()
        return registration

    @staticmethod
    def require_manager(event, user):
        if user.role != 'admin' and not MembershipService.is_hub_leader(event.hub_id, user.id):
            raise ForbiddenError("You must be a hub leader of this hub")

    @staticmethod
    def _check_dates(start_date, end_date):
        if start_date and end_date and end_date < start_date:
            raise ValidationError("End date must be after start date")
