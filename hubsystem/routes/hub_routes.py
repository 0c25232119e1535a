from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required, current_user

from hubsystem.errors import ForbiddenError, NotFoundError
from hubsystem.forms import HubForm
from hubsystem.models import db, User, Project, Programme, Event, HubMembershipRequest, PENDING
from hubsystem.routes.helpers import role_required, json_body, get_pagination, paginated, validation_error, patch_form
from hubsystem.services.hub_service import HubService
from hubsystem.services.membership_service import MembershipService

hub_bp = Blueprint('hubs', __name__, url_prefix='/api/hubs')

HUB_FIELDS = ('name', 'description', 'card_bio', 'logo', 'cover_image')


def _optional(value):
    return value.strip() if value and value.strip() else None


@hub_bp.route('', methods=['GET'])
def list_hubs():
    page, limit = get_pagination()
    query = HubService.search_hubs(search=request.args.get('search'), category=request.args.get('category'))
    result = query.paginate(page=page, per_page=limit, error_out=False)
    return jsonify({"success": True, **paginated("hubs", result, lambda h: h.to_dict())})


@hub_bp.route('', methods=['POST'])
@role_required('admin')
def create_hub():
    form = HubForm()
    if not form.validate_on_submit():
        return validation_error(form)

    hub = HubService.create_hub(
        name=form.name.data.strip(),
        description=form.description.data.strip(),
        card_bio=_optional(form.card_bio.data),
        logo=_optional(form.logo.data),
        cover_image=_optional(form.cover_image.data),
        categories=json_body().get('categories'),
    )
    return jsonify({"success": True, "hub": hub.to_dict()}), 201


@hub_bp.route('/<int:hub_id>', methods=['GET'])
def get_hub(hub_id):
    hub = HubService.get_hub(hub_id)
    data = hub.to_dict()
    data["leaders"] = [m.user.to_summary() for m in HubService.members_query(hub.id, role='HUB_LEADER')]
    return jsonify({"success": True, "hub": data})


@hub_bp.route('/<int:hub_id>', methods=['PATCH'])
@login_required
def update_hub(hub_id):
    hub = HubService.get_hub(hub_id, include_inactive=True)
    HubService.require_manager(hub, current_user)

    form, sent = patch_form(HubForm, hub, HUB_FIELDS)
    if not form.validate_on_submit():
        return validation_error(form)

    fields = {}
    for field in sent:
        value = getattr(form, field).data
        fields[field] = value.strip() if field in ('name', 'description') else _optional(value)

    hub = HubService.update_hub(hub, categories=json_body().get('categories'), **fields)
    return jsonify({"success": True, "hub": hub.to_dict()})


@hub_bp.route('/<int:hub_id>', methods=['DELETE'])
@role_required('admin')
def delete_hub(hub_id):
    hub = HubService.get_hub(hub_id, include_inactive=True)
    HubService.soft_delete(hub)
    current_app.logger.info("Hub %s deleted by %s", hub.id, current_user.email)
    return jsonify({"success": True, "message": "Hub deleted successfully"})


@hub_bp.route('/<int:hub_id>/join', methods=['POST'])
@login_required
def join_hub(hub_id):
    join_request = MembershipService.request_hub_membership(hub_id, current_user, json_body().get('message'))
    return jsonify({
        "success": True,
        "message": "Membership request sent",
        "request": join_request.to_dict(),
    }), 201


@hub_bp.route('/<int:hub_id>/membership', methods=['GET'])
@login_required
def membership_status(hub_id):
    hub = HubService.get_hub(hub_id)
    user_id = request.args.get('user_id', current_user.id, type=int)
    if user_id != current_user.id and current_user.role != 'admin':
        raise ForbiddenError("You can only view your own membership")
    if db.session.get(User, user_id) is None:
        raise NotFoundError("User not found")

    membership = MembershipService.active_hub_membership(hub.id, user_id)
    pending = HubMembershipRequest.query.filter_by(hub_id=hub.id, user_id=user_id, status=PENDING) \
        .filter(HubMembershipRequest.deleted_at.is_(None)).first()
    return jsonify({
        "success": True,
        "is_member": membership is not None,
        "role": membership.role if membership else None,
        "has_pending_request": pending is not None,
    })


@hub_bp.route('/<int:hub_id>/members', methods=['GET'])
def hub_members(hub_id):
    hub = HubService.get_hub(hub_id)
    page, limit = get_pagination(default_limit=20)
    result = HubService.members_query(hub.id, role=request.args.get('role')) \
        .paginate(page=page, per_page=limit, error_out=False)
    return jsonify({"success": True, **paginated("members", result, lambda m: m.to_dict())})


def _published(model, hub_id):
    return model.query.filter_by(hub_id=hub_id, publish_status='PUBLISHED').filter(model.deleted_at.is_(None))


@hub_bp.route('/<int:hub_id>/projects', methods=['GET'])
def hub_projects(hub_id):
    hub = HubService.get_hub(hub_id)
    projects = _published(Project, hub.id) \
        .filter(MembershipService.visible_clause(Project, current_user)) \
        .order_by(Project.created_at.desc()).all()
    return jsonify({"success": True, "projects": [p.to_dict() for p in projects]})


@hub_bp.route('/<int:hub_id>/programmes', methods=['GET'])
def hub_programmes(hub_id):
    hub = HubService.get_hub(hub_id)
    programmes = _published(Programme, hub.id).order_by(Programme.created_at.desc()).all()
    return jsonify({"success": True, "programmes": [p.to_dict() for p in programmes]})


@hub_bp.route('/<int:hub_id>/events', methods=['GET'])
def hub_events(hub_id):
    hub = HubService.get_hub(hub_id)
    events = _published(Event, hub.id) \
        .filter(MembershipService.visible_clause(Event, current_user)) \
        .order_by(Event.start_date.asc()).all()
    return jsonify({"success": True, "events": [e.to_dict() for e in events]})
