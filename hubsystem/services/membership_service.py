import logging
from datetime import datetime

from sqlalchemy import and_, or_, true

from hubsystem.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from hubsystem.models import (
    db, Hub, HubMember, HubMembershipRequest, Project, ProjectMember, ProjectJoinRequest,
    Programme, ProgrammeMember, ProgrammeJoinRequest, PENDING, APPROVED, REJECTED,
)
from hubsystem.services.audit_service import AuditService
from hubsystem.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

RESPONSE_ACTIONS = ('approve', 'reject')


class MembershipService:
    """Hub, project and programme membership plus the join requests that lead to it."""

    # --- Lookups ---

    @staticmethod
    def active_hub_membership(hub_id, user_id, role=None):
        query = HubMember.query.filter_by(hub_id=hub_id, user_id=user_id, is_active=True) \
            .filter(HubMember.deleted_at.is_(None))
        if role:
            query = query.filter(HubMember.role == role)
        return query.first()

    @staticmethod
    def is_hub_leader(hub_id, user_id):
        return MembershipService.active_hub_membership(hub_id, user_id, role='HUB_LEADER') is not None

    @staticmethod
    def require_hub_leader(hub_id, user):
        if not MembershipService.is_hub_leader(hub_id, user.id):
            raise ForbiddenError("You must be a hub leader of this hub")

    @staticmethod
    def require_hub_analytics_access(hub_id, user):
        """Hub analytics are for admins and the hub's supervisors and leaders."""
        if user.role == 'admin':
            return
        membership = MembershipService.active_hub_membership(hub_id, user.id)
        if membership is None or membership.role not in ('SUPERVISOR', 'HUB_LEADER'):
            raise ForbiddenError("You must be a supervisor or hub leader of this hub")

    @staticmethod
    def require_hub_member(hub_id, user, message="You must be a hub member"):
        membership = MembershipService.active_hub_membership(hub_id, user.id)
        if membership is None:
            raise ForbiddenError(message)
        return membership

    @staticmethod
    def led_hub_ids(user_id):
        rows = HubMember.query.filter_by(user_id=user_id, role='HUB_LEADER', is_active=True) \
            .filter(HubMember.deleted_at.is_(None)).all()
        return [r.hub_id for r in rows]

    @staticmethod
    def hub_leader_ids(hub_id):
        rows = HubMember.query.filter_by(hub_id=hub_id, role='HUB_LEADER', is_active=True) \
            .filter(HubMember.deleted_at.is_(None)).all()
        return [r.user_id for r in rows]

    @staticmethod
    def member_hub_ids(user_id):
        rows = HubMember.query.filter_by(user_id=user_id, is_active=True) \
            .filter(HubMember.deleted_at.is_(None)).all()
        return sorted({r.hub_id for r in rows})

    @staticmethod
    def visible_clause(model, user):
        """Filter for the project/event rows `user` may see."""
        if user is None or not user.is_authenticated:
            return model.visibility == 'PUBLIC'
        if user.role == 'admin':
            return true()

        hub_ids = MembershipService.member_hub_ids(user.id)
        programme_hub_ids = {m.programme.hub_id for m in user.programme_memberships if m.deleted_at is None}
        return or_(
            model.visibility.in_(('PUBLIC', 'AUTHENTICATED')),
            and_(model.visibility == 'HUB_MEMBERS', model.hub_id.in_(hub_ids or [-1])),
            and_(model.visibility == 'PROGRAMME_MEMBERS',
                 model.hub_id.in_(sorted(set(hub_ids) | programme_hub_ids) or [-1])),
        )

    @staticmethod
    def project_member(project_id, user_id):
        return ProjectMember.query.filter_by(project_id=project_id, user_id=user_id) \
            .filter(ProjectMember.deleted_at.is_(None)).first()

    @staticmethod
    def programme_member(programme_id, user_id):
        return ProgrammeMember.query.filter_by(programme_id=programme_id, user_id=user_id) \
            .filter(ProgrammeMember.deleted_at.is_(None)).first()

    # --- Membership writes ---

    @staticmethod
    def add_hub_member(hub_id, user_id, role='MEMBER'):
        """Create or reactivate a hub membership with the given role."""
        membership = HubMember.query.filter_by(hub_id=hub_id, user_id=user_id).first()
        if membership:
            membership.role = role
            membership.is_active = True
            membership.deleted_at = None
        else:
            membership = HubMember(hub_id=hub_id, user_id=user_id, role=role)
            db.session.add(membership)
        return membership

    @staticmethod
    def add_project_member(project_id, user_id, role='MEMBER'):
        membership = ProjectMember.query.filter_by(project_id=project_id, user_id=user_id).first()
        if membership:
            membership.deleted_at = None
        else:
            membership = ProjectMember(project_id=project_id, user_id=user_id, role=role)
            db.session.add(membership)
        return membership

    @staticmethod
    def add_programme_member(programme_id, user_id, role='MEMBER'):
        membership = ProgrammeMember.query.filter_by(programme_id=programme_id, user_id=user_id).first()
        if membership:
            membership.deleted_at = None
        else:
            membership = ProgrammeMember(programme_id=programme_id, user_id=user_id, role=role)
            db.session.add(membership)
        return membership

    # --- Join requests ---

    @staticmethod
    def request_hub_membership(hub_id, user, message=None):
        hub = Hub.query.filter_by(id=hub_id, is_active=True).filter(Hub.deleted_at.is_(None)).first()
        if not hub:
            raise NotFoundError("Hub not found")

        if MembershipService.active_hub_membership(hub.id, user.id):
            raise ConflictError("Already a member of this hub")

        pending = HubMembershipRequest.query.filter_by(hub_id=hub.id, user_id=user.id, status=PENDING) \
            .filter(HubMembershipRequest.deleted_at.is_(None)).first()
        if pending:
            raise ConflictError("Membership request already pending")

        join_request = HubMembershipRequest(
            hub_id=hub.id,
            user_id=user.id,
            message=message or "I would like to join this hub",
        )
        db.session.add(join_request)
        db.session.flush()

        for leader_id in MembershipService.hub_leader_ids(hub.id):
            NotificationService.notify(
                leader_id,
                "New Hub Membership Request",
                f"{user.full_name} wants to join {hub.name}",
                type='HUB_INVITATION',
                action_url=f'/dashboard/{leader_id}/my-hubs/{hub.id}/hub-leader/requests',
                metadata={"request_id": join_request.id, "hub_id": hub.id, "requester_id": user.id},
            )

        AuditService.record('HUB_MEMBERSHIP_REQUESTED', 'HUB', hub.id,
                            details={"request_id": join_request.id, "hub_name": hub.name}, user=user)
        db.session.commit()
        logger.info("User %s requested to join hub %s", user.id, hub.id)
        return join_request

    @staticmethod
    def request_project_join(project_id, user, message=None):
        project = Project.query.filter_by(id=project_id, publish_status='PUBLISHED') \
            .filter(Project.deleted_at.is_(None)).first()
        if not project:
            raise NotFoundError("Project not found")

        if MembershipService.project_member(project.id, user.id):
            raise ConflictError("Already a member of this project")

        pending = ProjectJoinRequest.query.filter_by(project_id=project.id, user_id=user.id, status=PENDING) \
            .filter(ProjectJoinRequest.deleted_at.is_(None)).first()
        if pending:
            raise ConflictError("Join request already pending")

        join_request = ProjectJoinRequest(
            project_id=project.id,
            hub_id=project.hub_id,
            user_id=user.id,
            message=message or "I would like to join this project",
        )
        db.session.add(join_request)
        db.session.flush()

        recipients = {s.id for s in project.supervisors} | set(MembershipService.hub_leader_ids(project.hub_id))
        for recipient_id in sorted(recipients):
            NotificationService.notify(
                recipient_id,
                "New Project Join Request",
                f'{user.full_name} wants to join "{project.title}"',
                type='PROJECT_UPDATE',
                action_url=f'/dashboard/{recipient_id}/my-hubs/{project.hub_id}/hub-leader/requests',
                metadata={"request_id": join_request.id, "project_id": project.id, "requester_id": user.id},
            )

        AuditService.record('PROJECT_JOIN_REQUESTED', 'PROJECT', project.id,
                            details={"request_id": join_request.id}, user=user)
        db.session.commit()
        return join_request

    @staticmethod
    def request_programme_join(programme_id, user, message=None, require_hub_member=False):
        programme = Programme.query.filter_by(id=programme_id, publish_status='PUBLISHED') \
            .filter(Programme.deleted_at.is_(None)).first()
        if not programme:
            raise NotFoundError("Programme not found")

        if require_hub_member:
            MembershipService.require_hub_member(
                programme.hub_id, user, "You must be a hub member to join programmes")

        if programme.end_date and programme.end_date < datetime.utcnow():
            raise ValidationError("Application deadline has passed")

        if MembershipService.programme_member(programme.id, user.id):
            raise ConflictError("Already enrolled in this programme")

        pending = ProgrammeJoinRequest.query.filter_by(programme_id=programme.id, user_id=user.id, status=PENDING) \
            .filter(ProgrammeJoinRequest.deleted_at.is_(None)).first()
        if pending:
            raise ConflictError("Application already pending")

        join_request = ProgrammeJoinRequest(
            programme_id=programme.id,
            hub_id=programme.hub_id,
            user_id=user.id,
            message=message or "I would like to join this programme",
        )
        db.session.add(join_request)
        db.session.flush()

        for supervisor in programme.supervisors:
            NotificationService.notify(
                supervisor.id,
                "New Programme Application",
                f'{user.full_name} applied for "{programme.title}"',
                type='SYSTEM',
                action_url=f'/dashboard/{supervisor.id}/my-hubs/{programme.hub_id}/hub-supervisor',
                metadata={"request_id": join_request.id, "programme_id": programme.id, "requester_id": user.id},
            )

        AuditService.record('PROGRAMME_JOIN_REQUESTED', 'PROGRAMME', programme.id,
                            details={"request_id": join_request.id}, user=user)
        db.session.commit()
        return join_request

    # --- Responding ---

    @staticmethod
    def _mark_responded(join_request, action, responder):
        if join_request.status != PENDING:
            raise ValidationError(f"Request has already been {join_request.status.lower()}")

        join_request.status = APPROVED if action == 'approve' else REJECTED
        join_request.responded_by = responder.id
        join_request.responded_at = datetime.utcnow()

    @staticmethod
    def respond_hub_request(request_id, action, responder):
        if action not in RESPONSE_ACTIONS:
            raise ValidationError("Invalid action")
        join_request = db.session.get(HubMembershipRequest, request_id)
        if join_request is None or join_request.deleted_at is not None:
            raise NotFoundError("Request not found")
        MembershipService.require_hub_leader(join_request.hub_id, responder)
        MembershipService._mark_responded(join_request, action, responder)

        hub = join_request.hub
        if action == 'approve':
            # Keep a leader or supervisor role granted since the request was made
            if MembershipService.active_hub_membership(hub.id, join_request.user_id) is None:
                MembershipService.add_hub_member(hub.id, join_request.user_id)
            NotificationService.notify(
                join_request.user_id,
                "Hub Membership Approved",
                f"Your request to join {hub.name} has been approved!",
                type='HUB_INVITATION',
                action_url=f'/dashboard/{join_request.user_id}/my-hubs/{hub.id}/hub-member',
            )
        else:
            NotificationService.notify(
                join_request.user_id,
                "Hub Membership Request Declined",
                f"Your request to join {hub.name} was not approved.",
                type='HUB_INVITATION',
            )

        AuditService.record(f'HUB_MEMBERSHIP_{join_request.status}', 'HUB', hub.id,
                            details={"request_id": join_request.id, "user_id": join_request.user_id},
                            user=responder)
        db.session.commit()
        return join_request

    @staticmethod
    def respond_project_request(request_id, action, responder):
        if action not in RESPONSE_ACTIONS:
            raise ValidationError("Invalid action")
        join_request = db.session.get(ProjectJoinRequest, request_id)
        if join_request is None or join_request.deleted_at is not None:
            raise NotFoundError("Request not found")

        project = join_request.project
        is_supervisor = any(s.id == responder.id for s in project.supervisors)
        if not is_supervisor and not MembershipService.is_hub_leader(project.hub_id, responder.id):
            raise ForbiddenError("You must be a hub leader or project supervisor")
        MembershipService._mark_responded(join_request, action, responder)

        if action == 'approve':
            MembershipService.add_project_member(project.id, join_request.user_id)
            NotificationService.notify(
                join_request.user_id,
                "Project Join Request Approved",
                f'Your request to join "{project.title}" has been approved!',
                type='PROJECT_UPDATE',
                action_url=f'/dashboard/{join_request.user_id}/my-projects/{project.id}',
            )
        else:
            NotificationService.notify(
                join_request.user_id,
                "Project Join Request Declined",
                f'Your request to join "{project.title}" was not approved.',
                type='PROJECT_UPDATE',
            )

        AuditService.record(f'PROJECT_JOIN_{join_request.status}', 'PROJECT', project.id,
                            details={"request_id": join_request.id, "user_id": join_request.user_id},
                            user=responder)
        db.session.commit()
        return join_request

    @staticmethod
    def respond_programme_request(request_id, action, responder):
        if action not in RESPONSE_ACTIONS:
            raise ValidationError("Invalid action")
        join_request = db.session.get(ProgrammeJoinRequest, request_id)
        if join_request is None or join_request.deleted_at is not None:
            raise NotFoundError("Request not found")

        programme = join_request.programme
        if not any(s.id == responder.id for s in programme.supervisors):
            raise ForbiddenError("You must be a supervisor of this programme")
        MembershipService._mark_responded(join_request, action, responder)

        if action == 'approve':
            MembershipService.add_programme_member(programme.id, join_request.user_id)
            NotificationService.notify(
                join_request.user_id,
                "Programme Application Approved",
                f"Your application to join {programme.title} has been approved!",
                type='SYSTEM',
                action_url=f'/dashboard/{join_request.user_id}/my-programmes/{programme.id}',
            )
        else:
            NotificationService.notify(
                join_request.user_id,
                "Programme Application Declined",
                f"Your application to join {programme.title} was not approved.",
                type='SYSTEM',
            )

        AuditService.record(f'PROGRAMME_JOIN_{join_request.status}', 'PROGRAMME', programme.id,
                            details={"request_id": join_request.id, "user_id": join_request.user_id},
                            user=responder)
        db.session.commit()
        return join_request

    @staticmethod
    def pending_requests(model, **filters):
        return model.query.filter_by(status=PENDING, **filters) \
            .filter(model.deleted_at.is_(None)) \
            .order_by(model.created_at.desc()).all()
