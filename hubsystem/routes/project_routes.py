from flask import Blueprint, jsonify, request
from flask_login import login_required, current_user

from hubsystem.errors import NotFoundError
from hubsystem.models import Project, ProjectMember
from hubsystem.routes.helpers import json_body, get_pagination, paginated
from hubsystem.services.membership_service import MembershipService
from hubsystem.services.project_service import ProjectService

project_bp = Blueprint('projects', __name__, url_prefix='/api/projects')


def _visible_project(project_id):
    project = ProjectService.get_project(project_id)
    visible = Project.query.filter(Project.id == project.id,
                                   MembershipService.visible_clause(Project, current_user)).first()
    if visible is None:
        raise NotFoundError("Project not found")
    return project


@project_bp.route('', methods=['GET'])
def list_projects():
    page, limit = get_pagination()
    query = ProjectService.search_projects(
        current_user,
        search=request.args.get('search'),
        hub_id=request.args.get('hub_id', type=int),
        status=request.args.get('status'),
    )
    result = query.paginate(page=page, per_page=limit, error_out=False)
    return jsonify({"success": True, **paginated("projects", result, lambda p: p.to_dict())})


@project_bp.route('/<int:project_id>', methods=['GET'])
def get_project(project_id):
    project = _visible_project(project_id)
    data = project.to_dict()
    if current_user.is_authenticated:
        data["is_member"] = MembershipService.project_member(project.id, current_user.id) is not None
    return jsonify({"success": True, "project": data})


@project_bp.route('/<int:project_id>/members', methods=['GET'])
def project_members(project_id):
    project = _visible_project(project_id)
    members = ProjectMember.query.filter_by(project_id=project.id) \
        .filter(ProjectMember.deleted_at.is_(None)) \
        .order_by(ProjectMember.joined_at.asc()).all()
    return jsonify({"success": True, "members": [m.to_dict() for m in members]})


@project_bp.route('/<int:project_id>/join', methods=['POST'])
@login_required
def join_project(project_id):
    _visible_project(project_id)
    join_request = MembershipService.request_project_join(project_id, current_user, json_body().get('message'))
    return jsonify({
        "success": True,
        "message": "Join request sent",
        "request": join_request.to_dict(),
    }), 201
