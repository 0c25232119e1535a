from flask import Blueprint, jsonify, request
from flask_login import login_required, current_user

from hubsystem.errors import ValidationError
from hubsystem.forms import ProjectSuggestionForm, ProgressReportForm
from hubsystem.routes.helpers import json_body, validation_error
from hubsystem.services.membership_service import MembershipService
from hubsystem.services.project_service import ProjectService

hub_member_bp = Blueprint('hub_member', __name__, url_prefix='/api/hub-member')


@hub_member_bp.route('/project-suggestions', methods=['POST'])
@login_required
def suggest_project():
    form = ProjectSuggestionForm()
    if not form.validate_on_submit():
        return validation_error(form)

    suggestion = ProjectService.suggest(
        current_user, form.project_id.data, form.title.data.strip(), form.content.data.strip())
    return jsonify({"success": True, "suggestion": suggestion.to_dict()}), 201


@hub_member_bp.route('/progress-reports', methods=['POST'])
@login_required
def submit_progress_report():
    form = ProgressReportForm()
    if not form.validate_on_submit():
        return validation_error(form)

    report = ProjectService.submit_progress_report(
        current_user,
        form.project_id.data,
        form.title.data.strip(),
        form.content.data.strip(),
        attachments=json_body().get('attachments'),
    )
    return jsonify({"success": True, "report": report.to_dict()}), 201


@hub_member_bp.route('/progress-reports', methods=['GET'])
@login_required
def list_progress_reports():
    project_id = request.args.get('project_id', type=int)
    if not project_id:
        raise ValidationError("Project ID required")
    reports = ProjectService.progress_reports(current_user, project_id)
    return jsonify({"success": True, "reports": [r.to_dict() for r in reports]})


@hub_member_bp.route('/programme-join', methods=['POST'])
@login_required
def join_programme():
    data = json_body()
    programme_id = data.get('programme_id')
    if not isinstance(programme_id, int):
        raise ValidationError("Programme ID required")

    join_request = MembershipService.request_programme_join(
        programme_id, current_user, data.get('message'), require_hub_member=True)
    return jsonify({
        "success": True,
        "message": "Application submitted",
        "request": join_request.to_dict(),
    }), 201
