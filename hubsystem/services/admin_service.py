import logging
from datetime import datetime

from hubsystem.errors import ForbiddenError, NotFoundError, ValidationError
from hubsystem.models import db, User, Hub, Event, Project, PROJECT_STATUSES
from hubsystem.services.audit_service import AuditService
from hubsystem.services.user_service import UserService

logger = logging.getLogger(__name__)

USER_ROLES = ('student', 'admin')

BULK_ENTITIES = {
    'users': User,
    'hubs': Hub,
    'events': Event,
    'projects': Project,
}

PUBLISH_CHANGES = {
    'publish': {'publish_status': 'PUBLISHED'},
    'unpublish': {'publish_status': 'DRAFT'},
    'archive': {'publish_status': 'ARCHIVED'},
}

BULK_ACTIONS = {
    'users': ('activate', 'deactivate', 'delete', 'change_role'),
    'hubs': ('activate', 'deactivate', 'delete'),
    'events': ('publish', 'unpublish', 'archive', 'delete'),
    'projects': ('publish', 'unpublish', 'archive', 'delete', 'change_status'),
}


class AdminService:

    @staticmethod
    def get_user(user_id):
        user = db.session.get(User, user_id)
        if user is None or user.deleted_at is not None:
            raise NotFoundError("User not found")
        return user

    @staticmethod
    def update_user(user, admin, **fields):
        if user.id == admin.id:
            if fields.get('is_active') is False:
                raise ForbiddenError("You cannot deactivate your own account")
            if fields.get('role') not in (None, 'admin'):
                raise ForbiddenError("You cannot change your own role")
        if 'role' in fields and fields['role'] not in USER_ROLES:
            raise ValidationError("Invalid role", details={"allowed": list(USER_ROLES)})
        if 'email' in fields:
            email = UserService.normalize_email(fields['email'])
            existing = UserService.get_user_by_email(email)
            if existing and existing.id != user.id:
                raise ValidationError("Email already in use")
            fields['email'] = email

        password = fields.pop('password', None)
        for key, value in fields.items():
            setattr(user, key, value)
        if password:
            UserService.set_password(user, password)

        AuditService.record('USER_UPDATED', 'USER', user.id,
                            details={"fields": sorted(fields) + (["password"] if password else [])}, user=admin)
        db.session.commit()
        return user

    @staticmethod
    def delete_user(user, admin):
        if user.id == admin.id:
            raise ForbiddenError("You cannot delete your own account")
        UserService.soft_delete(user)
        AuditService.record('USER_DELETED', 'USER', user.id, details={"email": user.email}, user=admin)
        db.session.commit()

    @staticmethod
    def _bulk_changes(entity_type, action, data, now):
        if action in PUBLISH_CHANGES:
            return PUBLISH_CHANGES[action]
        if action == 'activate':
            return {'is_active': True}
        if action == 'deactivate':
            return {'is_active': False}
        if action == 'delete':
            changes = {'deleted_at': now}
            if entity_type in ('users', 'hubs'):
                changes['is_active'] = False
            return changes
        if action == 'change_role':
            role = (data or {}).get('role')
            if role not in USER_ROLES:
                raise ValidationError("Role is required for role change action")
            return {'role': role}
        if action == 'change_status':
            status = (data or {}).get('status')
            if status not in PROJECT_STATUSES:
                raise ValidationError("Status is required for status change action")
            changes = {'status': status}
            if status == 'COMPLETED':
                changes['completed_at'] = now
            return changes
        raise ValidationError(f"Unsupported action: {action}")

    @staticmethod
    def bulk_action(action, entity_type, entity_ids, data, admin):
        if not action or not entity_type or not isinstance(entity_ids, list):
            raise ValidationError("Missing required parameters: action, entity_type, entity_ids")
        if entity_type not in BULK_ENTITIES:
            raise ValidationError(f"Unsupported entity type: {entity_type}")
        if action not in BULK_ACTIONS[entity_type]:
            raise ValidationError(f"Unsupported {entity_type[:-1]} action: {action}")
        if not all(isinstance(i, int) for i in entity_ids):
            raise ValidationError("Entity ids must be integers")
        if entity_type == 'users' and action != 'activate' and admin.id in entity_ids:
            raise ForbiddenError("You cannot apply this action to your own account")

        model = BULK_ENTITIES[entity_type]
        changes = AdminService._bulk_changes(entity_type, action, data, datetime.utcnow())
        updated = model.query.filter(model.id.in_(entity_ids or [-1]), model.deleted_at.is_(None)) \
            .update(changes, synchronize_session=False)

        AuditService.record('BULK_ACTION', entity_type.rstrip('s').upper(), None,
                            details={"action": action, "entity_ids": entity_ids, "updated": updated},
                            user=admin)
        db.session.commit()
        logger.info("Bulk %s on %d %s", action, updated, entity_type)
        return updated
