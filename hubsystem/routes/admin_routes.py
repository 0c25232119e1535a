import io
from datetime import datetime

from flask import Blueprint, jsonify, request, send_file, current_app
from flask_login import current_user

from hubsystem.errors import ValidationError
from hubsystem.forms import AdminUserForm, AdminUserUpdateForm
from hubsystem.models import db
from hubsystem.routes.helpers import (
    role_required, json_body, get_pagination, paginated, validation_error, parse_bool_arg, parse_date_arg,
)
from hubsystem.services.admin_service import AdminService
from hubsystem.services.analytics_service import AnalyticsService
from hubsystem.services.audit_service import AuditService
from hubsystem.services.hub_service import HubService
from hubsystem.services.system_health_service import SystemHealthService
from hubsystem.services.user_service import UserService

admin_bp = Blueprint('admin', __name__, url_prefix='/api/admin')

USER_UPDATE_FIELDS = ('first_name', 'last_name', 'email', 'password', 'role', 'degree_programme')

EXPORT_FORMATS = {
    'csv': 'text/csv',
    'json': 'application/json',
    'xlsx': 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
}


def _audit_filters():
    return {
        "user_id": request.args.get('user_id', type=int),
        "action": request.args.get('action'),
        "entity_type": request.args.get('entity_type'),
        "start_date": parse_date_arg('start_date'),
        "end_date": parse_date_arg('end_date'),
        "success": parse_bool_arg('success'),
        "search": request.args.get('search'),
    }


# --- Dashboard ---

@admin_bp.route('/dashboard', methods=['GET'])
@role_required('admin')
def dashboard():
    start, end = parse_date_arg('start'), parse_date_arg('end')
    if start and end and start > end:
        raise ValidationError("Start date must be before end date")
    return jsonify({"success": True, **AnalyticsService.get_admin_dashboard(start, end)})


# --- Users ---

@admin_bp.route('/users', methods=['GET'])
@role_required('admin')
def list_users():
    page, limit = get_pagination()
    query = UserService.search_users(
        search=request.args.get('search'),
        role=request.args.get('role'),
        status=request.args.get('status'),
    )
    result = query.paginate(page=page, per_page=limit, error_out=False)
    return jsonify({"success": True, **paginated("users", result, lambda u: u.to_dict())})


@admin_bp.route('/users', methods=['POST'])
@role_required('admin')
def create_user():
    form = AdminUserForm()
    if not form.validate_on_submit():
        return validation_error(form)

    user = UserService.create_user(
        email=form.email.data,
        password=form.password.data,
        role=form.role.data or 'student',
        first_name=form.first_name.data.strip(),
        last_name=form.last_name.data.strip(),
        degree_programme=form.degree_programme.data or None,
    )
    AuditService.record('USER_CREATED', 'USER', user.id, details={"email": user.email, "role": user.role})
    db.session.commit()
    current_app.logger.info("Admin %s created user %s", current_user.email, user.email)
    return jsonify({"success": True, "user": user.to_dict()}), 201


@admin_bp.route('/users/<int:user_id>', methods=['GET'])
@role_required('admin')
def get_user(user_id):
    user = AdminService.get_user(user_id)
    data = user.to_dict()
    data["hubs"] = [m.to_dict() for m in user.hub_memberships if m.is_active and m.deleted_at is None]
    return jsonify({"success": True, "user": data})


@admin_bp.route('/users/<int:user_id>', methods=['PATCH'])
@role_required('admin')
def update_user(user_id):
    user = AdminService.get_user(user_id)
    form = AdminUserUpdateForm()
    if not form.validate_on_submit():
        return validation_error(form)

    body = json_body()
    fields = {}
    for field in USER_UPDATE_FIELDS:
        if field in body:
            value = getattr(form, field).data
            fields[field] = value.strip() if isinstance(value, str) and field != 'password' else value
    if 'is_active' in body:
        if not isinstance(body['is_active'], bool):
            raise ValidationError("is_active must be a boolean")
        fields['is_active'] = body['is_active']

    user = AdminService.update_user(user, current_user, **fields)
    return jsonify({"success": True, "user": user.to_dict()})


@admin_bp.route('/users/<int:user_id>', methods=['DELETE'])
@role_required('admin')
def delete_user(user_id):
    user = AdminService.get_user(user_id)
    AdminService.delete_user(user, current_user)
    return jsonify({"success": True, "message": f"User {user.email} deleted"})


# --- Hubs ---

@admin_bp.route('/hubs', methods=['GET'])
@role_required('admin')
def list_hubs():
    page, limit = get_pagination()
    query = HubService.search_hubs(search=request.args.get('search'), category=request.args.get('category'),
                                   include_inactive=True)
    result = query.paginate(page=page, per_page=limit, error_out=False)
    return jsonify({"success": True, **paginated("hubs", result, lambda h: h.to_dict())})


@admin_bp.route('/hubs/<int:hub_id>/members', methods=['POST'])
@role_required('admin')
def assign_hub_member(hub_id):
    data = json_body()
    if not isinstance(data.get('user_id'), int):
        raise ValidationError("user_id is required")

    hub = HubService.get_hub(hub_id, include_inactive=True)
    user = UserService.get_user_by_id(data['user_id'])
    membership = HubService.assign_member(hub, user, data.get('role') or 'MEMBER')
    return jsonify({"success": True, "membership": membership.to_dict()}), 201


# --- Bulk actions ---

@admin_bp.route('/bulk-actions', methods=['POST'])
@role_required('admin')
def bulk_actions():
    data = json_body()
    updated = AdminService.bulk_action(
        data.get('action'), data.get('entity_type'), data.get('entity_ids'), data.get('data'), current_user)
    return jsonify({
        "success": True,
        "updated": updated,
        "message": f"Bulk {data['action']} completed for {len(data['entity_ids'])} {data['entity_type']}",
    })


# --- Audit logs ---

@admin_bp.route('/audit-logs', methods=['GET'])
@role_required('admin')
def audit_logs():
    page, limit = get_pagination(default_limit=50, max_limit=500)
    result = AuditService.get_logs(_audit_filters(), page=page, per_page=limit)
    return jsonify({"success": True, **paginated("logs", result, lambda log: log.to_dict())})


@admin_bp.route('/audit-logs', methods=['POST'])
@role_required('admin')
def create_audit_log():
    data = json_body()
    if not data.get('action'):
        raise ValidationError("Action is required")

    entry = AuditService.record(
        data['action'],
        data.get('entity_type'),
        data.get('entity_id'),
        details=data.get('details'),
    )
    db.session.commit()
    return jsonify({"success": True, "audit_log": entry.to_dict()}), 201


@admin_bp.route('/audit-logs/export', methods=['GET'])
@role_required('admin')
def export_audit_logs():
    export_format = request.args.get('format', 'csv')
    if export_format not in EXPORT_FORMATS:
        raise ValidationError("Unsupported format", details={"allowed": sorted(EXPORT_FORMATS)})

    logs = AuditService.query_logs(_audit_filters()).all()
    if export_format == 'csv':
        buffer = io.BytesIO(AuditService.export_csv(logs).encode('utf-8'))
    elif export_format == 'json':
        buffer = io.BytesIO(AuditService.export_json(logs).encode('utf-8'))
    else:
        buffer = AuditService.export_xlsx(logs)

    return send_file(
        buffer,
        mimetype=EXPORT_FORMATS[export_format],
        as_attachment=True,
        download_name=AuditService.export_filename(export_format),
    )


# --- System health & settings ---

@admin_bp.route('/system-health', methods=['GET'])
@role_required('admin')
def system_health():
    return jsonify({"success": True, **SystemHealthService.get_health()})


@admin_bp.route('/system-health', methods=['POST'])
@role_required('admin')
def system_health_action():
    action = json_body().get('action')
    payload, message = SystemHealthService.perform_action(action)
    AuditService.record('SYSTEM_ACTION', 'SYSTEM', None, details={"action": action})
    db.session.commit()
    return jsonify({"success": True, "message": message, **payload})


@admin_bp.route('/system-settings', methods=['GET'])
@role_required('admin')
def system_settings():
    return jsonify({"success": True, "settings": SystemHealthService.get_settings()})


@admin_bp.route('/system-settings', methods=['PUT'])
@role_required('admin')
def update_system_settings():
    changes = json_body().get('settings')
    settings = SystemHealthService.update_settings(changes, current_user.id)
    AuditService.record('SYSTEM_SETTINGS_UPDATED', 'SYSTEM', None, details={"sections": sorted(changes)})
    db.session.commit()
    return jsonify({"success": True, "settings": settings, "message": "System settings updated successfully"})


@admin_bp.route('/system-settings', methods=['POST'])
@role_required('admin')
def system_settings_action():
    action = json_body().get('action')
    if action == 'reset_to_defaults':
        settings = SystemHealthService.reset_settings()
        AuditService.record('SYSTEM_SETTINGS_RESET', 'SYSTEM', None, details={"action": action})
        db.session.commit()
        return jsonify({"success": True, "settings": settings, "message": "System settings reset to defaults"})
    if action == 'backup_settings':
        return jsonify({
            "success": True,
            "backup": {
                "timestamp": datetime.utcnow().isoformat(),
                "settings": SystemHealthService.get_settings(),
                "createdBy": current_user.email,
            },
            "message": "Settings backup created successfully",
        })
    if action == 'test_integrations':
        tests = dict(SystemHealthService.integrations())
        tests["database"] = SystemHealthService.check_database()["status"] != 'error'
        return jsonify({"success": True, "tests": tests, "message": "Integration tests completed"})
    raise ValidationError("Invalid action")
