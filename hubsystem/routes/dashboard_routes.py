from datetime import datetime

from flask import Blueprint, jsonify
from flask_login import login_required, current_user

from hubsystem.errors import ForbiddenError, NotFoundError
from hubsystem.models import db, User, Notification
from hubsystem.routes.helpers import parse_bool_arg
from hubsystem.services.notification_service import NotificationService

dashboard_bp = Blueprint('dashboard', __name__, url_prefix='/api')


@dashboard_bp.route('/dashboard/<int:user_id>', methods=['GET'])
@login_required
def dashboard(user_id):
    if user_id != current_user.id and current_user.role != 'admin':
        raise ForbiddenError("You can only view your own dashboard")
    user = db.session.get(User, user_id)
    if user is None or user.deleted_at is not None:
        raise NotFoundError("User not found")

    now = datetime.utcnow()
    hubs = [
        {**m.hub.to_dict(), "role": m.role, "joined_at": m.joined_at.isoformat() if m.joined_at else None}
        for m in user.hub_memberships
        if m.is_active and m.deleted_at is None and m.hub.deleted_at is None
    ]
    projects = [
        {**m.project.to_dict(), "role": m.role}
        for m in user.project_memberships
        if m.deleted_at is None and m.project.deleted_at is None
    ]
    programmes = [
        {**m.programme.to_dict(), "role": m.role}
        for m in user.programme_memberships
        if m.deleted_at is None and m.programme.deleted_at is None
    ]
    registrations = sorted(
        (r for r in user.event_registrations if r.deleted_at is None and r.event.deleted_at is None),
        key=lambda r: r.event.start_date,
    )
    unread = NotificationService.list_for_user(user.id, unread_only=True, limit=10)

    return jsonify({
        "success": True,
        "user": user.to_dict(),
        "hubs": hubs,
        "projects": projects,
        "programmes": programmes,
        "events": {
            "upcoming": [r.to_dict() for r in registrations if r.event.start_date >= now],
            "past": [r.to_dict() for r in registrations if r.event.start_date < now],
        },
        "notifications": [n.to_dict() for n in unread],
        "stats": {
            "hubCount": len(hubs),
            "projectCount": len(projects),
            "programmeCount": len(programmes),
            "eventCount": len(registrations),
            "unreadNotifications": Notification.query.filter_by(user_id=user.id, is_read=False).count(),
        },
    })


@dashboard_bp.route('/notifications', methods=['GET'])
@login_required
def notifications():
    items = NotificationService.list_for_user(current_user.id, unread_only=bool(parse_bool_arg('unread')))
    return jsonify({"success": True, "notifications": [n.to_dict() for n in items]})


@dashboard_bp.route('/notifications/<int:notification_id>/read', methods=['PATCH'])
@login_required
def mark_read(notification_id):
    notification = db.session.get(Notification, notification_id)
    if notification is None or notification.user_id != current_user.id:
        raise NotFoundError("Notification not found")
    NotificationService.mark_read(notification)
    return jsonify({"success": True, "notification": notification.to_dict()})


@dashboard_bp.route('/notifications/read-all', methods=['POST'])
@login_required
def mark_all_read():
    count = NotificationService.mark_all_read(current_user.id)
    return jsonify({"success": True, "updated": count})
