from flask import Blueprint, jsonify, request
from flask_login import login_required, current_user

from hubsystem.routes.helpers import json_body, get_pagination, paginated
from hubsystem.services.membership_service import MembershipService
from hubsystem.services.project_service import ProjectService

programme_bp = Blueprint('programmes', __name__, url_prefix='/api/programmes')


@programme_bp.route('', methods=['GET'])
def list_programmes():
    page, limit = get_pagination()
    query = ProjectService.search_programmes(
        search=request.args.get('search'),
        hub_id=request.args.get('hub_id', type=int),
    )
    result = query.paginate(page=page, per_page=limit, error_out=False)
    return jsonify({"success": True, **paginated("programmes", result, lambda p: p.to_dict())})


@programme_bp.route('/<int:programme_id>', methods=['GET'])
def get_programme(programme_id):
    programme = ProjectService.get_programme(programme_id)
    data = programme.to_dict()
    if current_user.is_authenticated:
        data["is_member"] = MembershipService.programme_member(programme.id, current_user.id) is not None
    return jsonify({"success": True, "programme": data})


@programme_bp.route('/<int:programme_id>/join', methods=['POST'])
@login_required
def join_programme(programme_id):
    join_request = MembershipService.request_programme_join(
        programme_id, current_user, json_body().get('message'))
    return jsonify({
        "success": True,
        "message": "Application submitted",
        "request": join_request.to_dict(),
    }), 201
