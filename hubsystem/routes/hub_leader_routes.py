from flask import Blueprint, jsonify, request
from flask_login import login_required, current_user

from hubsystem.errors import ValidationError
from hubsystem.forms import EventForm, ProjectForm, ProgrammeForm, SuggestionResponseForm
from hubsystem.models import HubMembershipRequest, ProjectJoinRequest
from hubsystem.routes.helpers import json_body, validation_error, patch_form
from hubsystem.services.event_service import EventService
from hubsystem.services.membership_service import MembershipService
from hubsystem.services.project_service import ProjectService

hub_leader_bp = Blueprint('hub_leader', __name__, url_prefix='/api/hub-leader')

EVENT_FIELDS = ('title', 'description', 'event_type', 'start_date', 'end_date', 'is_online', 'venue',
                'meeting_link', 'capacity', 'visibility', 'cover_image')
PROJECT_FIELDS = ('title', 'description', 'objectives', 'cover_image', 'start_date', 'end_date', 'visibility')


def _led_hub_id():
    """The hub_id query argument, checked against the caller's leadership."""
    hub_id = request.args.get('hub_id', type=int)
    if not hub_id:
        raise ValidationError("Hub ID required")
    MembershipService.require_hub_leader(hub_id, current_user)
    return hub_id


def _clean(value):
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def _form_values(form, fields):
    return {field: _clean(getattr(form, field).data) for field in fields}


# --- Membership requests ---

@hub_leader_bp.route('/membership-requests', methods=['GET'])
@login_required
def membership_requests():
    hub_id = _led_hub_id()
    requests = MembershipService.pending_requests(HubMembershipRequest, hub_id=hub_id)
    return jsonify({"success": True, "requests": [r.to_dict() for r in requests]})


@hub_leader_bp.route('/membership-requests/<int:request_id>', methods=['PATCH'])
@login_required
def respond_membership_request(request_id):
    join_request = MembershipService.respond_hub_request(request_id, json_body().get('action'), current_user)
    return jsonify({
        "success": True,
        "message": f"Request {join_request.status.lower()}",
        "request": join_request.to_dict(),
    })


# --- Events ---

@hub_leader_bp.route('/events', methods=['GET'])
@login_required
def list_events():
    hub_id = _led_hub_id()
    events = EventService.events_for_hub(hub_id)
    return jsonify({"success": True, "events": [e.to_dict() for e in events]})


@hub_leader_bp.route('/events', methods=['POST'])
@login_required
def create_event():
    form = EventForm()
    if not form.validate_on_submit():
        return validation_error(form)

    values = _form_values(form, EVENT_FIELDS)
    values['is_online'] = bool(values['is_online'])
    event = EventService.create_event(current_user, form.hub_id.data, tags=json_body().get('tags'), **values)
    return jsonify({"success": True, "event": event.to_dict()}), 201


@hub_leader_bp.route('/events/<int:event_id>', methods=['PATCH'])
@login_required
def update_event(event_id):
    event = EventService.get_event(event_id, published_only=False)
    EventService.require_manager(event, current_user)

    form, sent = patch_form(EventForm, event, ('hub_id',) + EVENT_FIELDS)
    if not form.validate_on_submit():
        return validation_error(form)

    values = _form_values(form, [f for f in sent if f != 'hub_id'])
    event = EventService.update_event(event, current_user, tags=json_body().get('tags'), **values)
    return jsonify({"success": True, "event": event.to_dict()})


@hub_leader_bp.route('/events/<int:event_id>', methods=['DELETE'])
@login_required
def delete_event(event_id):
    event = EventService.get_event(event_id, published_only=False)
    EventService.delete_event(event, current_user)
    return jsonify({"success": True, "message": "Event deleted successfully"})


@hub_leader_bp.route('/events/<int:event_id>/registrations', methods=['GET'])
@login_required
def event_registrations(event_id):
    event = EventService.get_event(event_id, published_only=False)
    EventService.require_manager(event, current_user)
    registrations = [r for r in event.registrations if r.deleted_at is None]
    return jsonify({"success": True, "registrations": [r.to_dict() for r in registrations]})


@hub_leader_bp.route('/events/<int:event_id>/attendance', methods=['PATCH'])
@login_required
def mark_attendance(event_id):
    data = json_body()
    user_id = data.get('user_id')
    if not isinstance(user_id, int) or not isinstance(data.get('attended'), bool):
        raise ValidationError("user_id and attended are required")

    event = EventService.get_event(event_id, published_only=False)
    registration = EventService.mark_attendance(event, current_user, user_id, data['attended'])
    return jsonify({"success": True, "registration": registration.to_dict()})


# --- Projects ---

@hub_leader_bp.route('/projects', methods=['GET'])
@login_required
def list_projects():
    hub_id = _led_hub_id()
    projects = []
    for project in ProjectService.projects_for_hub(hub_id):
        data = project.to_dict()
        data["pending_requests"] = len([r for r in project.join_requests
                                        if r.status == 'PENDING' and r.deleted_at is None])
        projects.append(data)
    return jsonify({"success": True, "projects": projects})


@hub_leader_bp.route('/projects', methods=['POST'])
@login_required
def create_project():
    form = ProjectForm()
    if not form.validate_on_submit():
        return validation_error(form)

    project = ProjectService.create_project(
        current_user,
        form.hub_id.data,
        skills=json_body().get('skills'),
        **_form_values(form, PROJECT_FIELDS),
    )
    return jsonify({"success": True, "project": project.to_dict()}), 201


@hub_leader_bp.route('/projects/<int:project_id>', methods=['PATCH'])
@login_required
def update_project(project_id):
    project = ProjectService.get_project(project_id, published_only=False)
    MembershipService.require_hub_leader(project.hub_id, current_user)

    form, sent = patch_form(ProjectForm, project, ('hub_id',) + PROJECT_FIELDS)
    if not form.validate_on_submit():
        return validation_error(form)

    body = json_body()
    values = _form_values(form, [f for f in sent if f != 'hub_id'])
    if 'skills' in body:
        values['skills'] = body['skills']
    project = ProjectService.update_project(project, current_user, status=body.get('status'), **values)
    return jsonify({"success": True, "project": project.to_dict()})


# --- Programmes ---

@hub_leader_bp.route('/programmes', methods=['GET'])
@login_required
def list_programmes():
    hub_id = _led_hub_id()
    programmes = ProjectService.programmes_for_hub(hub_id)
    return jsonify({"success": True, "programmes": [p.to_dict() for p in programmes]})


@hub_leader_bp.route('/programmes', methods=['POST'])
@login_required
def create_programme():
    form = ProgrammeForm()
    if not form.validate_on_submit():
        return validation_error(form)

    supervisor_ids = json_body().get('supervisor_ids')
    if supervisor_ids is not None and (
            not isinstance(supervisor_ids, list) or not all(isinstance(i, int) for i in supervisor_ids)):
        raise ValidationError("supervisor_ids must be a list of user ids")

    programme = ProjectService.create_programme(
        current_user,
        form.hub_id.data,
        supervisor_ids=supervisor_ids,
        **_form_values(form, ('title', 'description', 'start_date', 'end_date', 'cover_image')),
    )
    return jsonify({"success": True, "programme": programme.to_dict()}), 201


# --- Project join requests ---

@hub_leader_bp.route('/project-join-requests', methods=['GET'])
@login_required
def project_join_requests():
    hub_id = _led_hub_id()
    requests = MembershipService.pending_requests(ProjectJoinRequest, hub_id=hub_id)
    return jsonify({"success": True, "requests": [r.to_dict() for r in requests]})


@hub_leader_bp.route('/project-join-requests/<int:request_id>', methods=['PATCH'])
@login_required
def respond_project_join_request(request_id):
    join_request = MembershipService.respond_project_request(request_id, json_body().get('action'), current_user)
    return jsonify({
        "success": True,
        "message": f"Request {join_request.status.lower()}",
        "request": join_request.to_dict(),
    })


# --- Project suggestions ---

@hub_leader_bp.route('/project-suggestions', methods=['GET'])
@login_required
def project_suggestions():
    hub_id = _led_hub_id()
    suggestions = ProjectService.suggestions_for_hub(hub_id, status=request.args.get('status'))
    return jsonify({"success": True, "suggestions": [s.to_dict() for s in suggestions]})


@hub_leader_bp.route('/project-suggestions/<int:suggestion_id>', methods=['PATCH'])
@login_required
def respond_project_suggestion(suggestion_id):
    form = SuggestionResponseForm()
    if not form.validate_on_submit():
        return validation_error(form)

    suggestion, project = ProjectService.respond_to_suggestion(
        suggestion_id,
        form.action.data,
        current_user,
        message=_clean(form.message.data),
        edited_data=json_body().get('edited_data'),
    )
    return jsonify({
        "success": True,
        "suggestion": suggestion.to_dict(),
        "project": project.to_dict() if project else None,
    })
