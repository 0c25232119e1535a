from flask import Blueprint, jsonify, request
from flask_login import login_required, current_user

from hubsystem.errors import NotFoundError
from hubsystem.forms import FeedbackForm
from hubsystem.models import Event
from hubsystem.routes.helpers import json_body, get_pagination, paginated, validation_error, parse_bool_arg
from hubsystem.services.event_service import EventService
from hubsystem.services.membership_service import MembershipService

event_bp = Blueprint('events', __name__, url_prefix='/api/events')


def _visible_event(event_id):
    event = EventService.get_event(event_id)
    visible = Event.query.filter(Event.id == event.id,
                                 MembershipService.visible_clause(Event, current_user)).first()
    if visible is None:
        raise NotFoundError("Event not found")
    return event


@event_bp.route('', methods=['GET'])
def list_events():
    page, limit = get_pagination()
    query = EventService.search_events(
        current_user,
        search=request.args.get('search'),
        hub_id=request.args.get('hub_id', type=int),
        event_type=request.args.get('event_type'),
        upcoming=parse_bool_arg('upcoming'),
    )
    result = query.paginate(page=page, per_page=limit, error_out=False)
    return jsonify({"success": True, **paginated("events", result, lambda e: e.to_dict())})


@event_bp.route('/<int:event_id>', methods=['GET'])
def get_event(event_id):
    event = _visible_event(event_id)
    data = event.to_dict()
    if current_user.is_authenticated:
        registration = EventService.registration_for(event.id, current_user.id)
        data["registration"] = registration.to_dict() if registration else None
    return jsonify({"success": True, "event": data})


@event_bp.route('/<int:event_id>/register', methods=['POST'])
@login_required
def register(event_id):
    _visible_event(event_id)
    registration = EventService.register(event_id, current_user)
    return jsonify({
        "success": True,
        "message": "Successfully registered for event",
        "registration": registration.to_dict(),
    }), 201


@event_bp.route('/<int:event_id>/register', methods=['DELETE'])
@login_required
def cancel_registration(event_id):
    EventService.cancel_registration(event_id, current_user)
    return jsonify({"success": True, "message": "Registration cancelled"})


@event_bp.route('/feedback', methods=['POST'])
@login_required
def submit_feedback():
    form = FeedbackForm()
    if not form.validate_on_submit():
        return validation_error(form)

    feedback = EventService.submit_feedback(
        current_user,
        event_id=form.event_id.data,
        rating=form.rating.data,
        content=form.content.data or None,
        suggestions=form.suggestions.data or None,
        would_recommend=form.would_recommend.data if 'would_recommend' in json_body() else None,
    )
    return jsonify({"success": True, "feedback": feedback.to_dict()}), 201
