import logging
from datetime import datetime

from sqlalchemy import or_

from hubsystem.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from hubsystem.models import db, Hub, Category, HubMember, HUB_ROLES
from hubsystem.services.audit_service import AuditService
from hubsystem.services.membership_service import MembershipService
from hubsystem.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


class HubService:

    @staticmethod
    def get_hub(hub_id, include_inactive=False):
        hub = db.session.get(Hub, hub_id)
        if hub is None or hub.deleted_at is not None:
            raise NotFoundError("Hub not found")
        if not include_inactive and not hub.is_active:
            raise NotFoundError("Hub not found")
        return hub

    @staticmethod
    def search_hubs(search=None, category=None, include_inactive=False):
        query = Hub.query.filter(Hub.deleted_at.is_(None))
        if not include_inactive:
            query = query.filter(Hub.is_active.is_(True))
        if search:
            term = f"%{search}%"
            query = query.filter(or_(Hub.name.ilike(term), Hub.description.ilike(term)))
        if category:
            query = query.filter(Hub.categories.any(Category.name.ilike(category)))
        return query.order_by(Hub.created_at.desc(), Hub.id.desc())

    @staticmethod
    def resolve_categories(names):
        """Connect existing categories by name, creating the missing ones."""
        if names is None:
            return None
        if not isinstance(names, list) or not all(isinstance(n, str) for n in names):
            raise ValidationError("Categories must be a list of names")

        categories = []
        for name in dict.fromkeys(n.strip() for n in names if n.strip()):
            category = Category.query.filter(Category.name.ilike(name)).first()
            if category is None:
                category = Category(name=name)
                db.session.add(category)
            categories.append(category)
        return categories

    @staticmethod
    def _check_unique_name(name, hub_id=None):
        query = Hub.query.filter(Hub.name.ilike(name))
        if hub_id is not None:
            query = query.filter(Hub.id != hub_id)
        if query.first():
            raise ConflictError("A hub with this name already exists")

    @staticmethod
    def create_hub(name, description, card_bio=None, logo=None, cover_image=None, categories=None):
        HubService._check_unique_name(name)
        hub = Hub(
            name=name,
            description=description,
            card_bio=card_bio,
            logo=logo,
            cover_image=cover_image,
        )
        hub.categories = HubService.resolve_categories(categories) or []
        db.session.add(hub)
        db.session.flush()

        AuditService.record('HUB_CREATED', 'HUB', hub.id, details={"name": hub.name})
        db.session.commit()
        logger.info("Hub created: %s", hub.name)
        return hub

    @staticmethod
    def update_hub(hub, categories=None, **fields):
        if 'name' in fields and fields['name'] != hub.name:
            HubService._check_unique_name(fields['name'], hub.id)
        for key, value in fields.items():
            setattr(hub, key, value)
        resolved = HubService.resolve_categories(categories)
        if resolved is not None:
            hub.categories = resolved

        AuditService.record('HUB_UPDATED', 'HUB', hub.id, details={"fields": sorted(fields)})
        db.session.commit()
        return hub

    @staticmethod
    def soft_delete(hub):
        hub.deleted_at = datetime.utcnow()
        hub.is_active = False
        AuditService.record('HUB_DELETED', 'HUB', hub.id, details={"name": hub.name})
        db.session.commit()

    @staticmethod
    def require_manager(hub, user):
        if user.role != 'admin' and not MembershipService.is_hub_leader(hub.id, user.id):
            raise ForbiddenError("Only admins and hub leaders can update this hub")

    @staticmethod
    def assign_member(hub, user, role):
        """Admin assignment of a hub role, leader and supervisor included."""
        if role not in HUB_ROLES:
            raise ValidationError("Invalid role", details={"allowed": list(HUB_ROLES)})
        if user is None or user.deleted_at is not None:
            raise NotFoundError("User not found")

        membership = MembershipService.add_hub_member(hub.id, user.id, role=role)
        NotificationService.notify(
            user.id,
            "Hub Role Assigned",
            f"You have been added to {hub.name} as {role.replace('_', ' ').title()}",
            type='HUB_INVITATION',
            action_url=f'/dashboard/{user.id}/my-hubs/{hub.id}',
        )
        AuditService.record('HUB_MEMBER_ASSIGNED', 'HUB', hub.id,
                            details={"user_id": user.id, "role": role})
        db.session.commit()
        return membership

    @staticmethod
    def members_query(hub_id, role=None):
        query = HubMember.query.filter_by(hub_id=hub_id, is_active=True) \
            .filter(HubMember.deleted_at.is_(None))
        if role:
            query = query.filter(HubMember.role == role)
        return query.order_by(HubMember.joined_at.asc())
