from flask import Blueprint, jsonify, request
from flask_login import login_required, current_user

from hubsystem.errors import ForbiddenError
from hubsystem.models import ProgrammeJoinRequest, PENDING
from hubsystem.routes.helpers import json_body
from hubsystem.services.analytics_service import AnalyticsService
from hubsystem.services.hub_service import HubService
from hubsystem.services.membership_service import MembershipService
from hubsystem.services.project_service import ProjectService

hub_supervisor_bp = Blueprint('hub_supervisor', __name__, url_prefix='/api/hub-supervisor')


@hub_supervisor_bp.route('/programme-requests', methods=['GET'])
@login_required
def programme_requests():
    programme_id = request.args.get('programme_id', type=int)
    if programme_id:
        programme = ProjectService.get_programme(programme_id, published_only=False)
        if not any(s.id == current_user.id for s in programme.supervisors):
            raise ForbiddenError("You must be a supervisor of this programme")
        programme_ids = [programme.id]
    else:
        programme_ids = [p.id for p in current_user.supervised_programmes if p.deleted_at is None]

    requests = ProgrammeJoinRequest.query.filter(
        ProgrammeJoinRequest.programme_id.in_(programme_ids or [-1]),
        ProgrammeJoinRequest.status == PENDING,
        ProgrammeJoinRequest.deleted_at.is_(None),
    ).order_by(ProgrammeJoinRequest.created_at.desc()).all()
    return jsonify({"success": True, "requests": [r.to_dict() for r in requests]})


@hub_supervisor_bp.route('/programme-requests/<int:request_id>', methods=['PATCH'])
@login_required
def respond_programme_request(request_id):
    join_request = MembershipService.respond_programme_request(request_id, json_body().get('action'), current_user)
    return jsonify({
        "success": True,
        "message": f"Application {join_request.status.lower()}",
        "request": join_request.to_dict(),
    })


@hub_supervisor_bp.route('/hubs/<int:hub_id>/analytics', methods=['GET'])
@login_required
def hub_analytics(hub_id):
    hub = HubService.get_hub(hub_id)
    MembershipService.require_hub_analytics_access(hub.id, current_user)

    return jsonify({"success": True, **AnalyticsService.get_hub_analytics(hub)})
