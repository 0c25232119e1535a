import logging
from datetime import datetime

from sqlalchemy import or_

from hubsystem.errors import ForbiddenError, NotFoundError, ValidationError
from hubsystem.models import (
    db, Project, Programme, ProjectSuggestion, ProgressReport, PENDING, APPROVED, REJECTED,
    PROJECT_STATUSES,
)
from hubsystem.services.audit_service import AuditService
from hubsystem.services.membership_service import MembershipService
from hubsystem.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

# Allowed project status moves; COMPLETED and CANCELLED are final
STATUS_TRANSITIONS = {
    'PLANNING': ('IN_PROGRESS', 'ON_HOLD', 'CANCELLED'),
    'IN_PROGRESS': ('COMPLETED', 'ON_HOLD', 'CANCELLED'),
    'ON_HOLD': ('PLANNING', 'IN_PROGRESS', 'CANCELLED'),
    'COMPLETED': (),
    'CANCELLED': (),
}

SUGGESTION_TITLES = {'approve': "Approved", 'edit': "Edited", 'deny': "Denied"}


def _skills(value):
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(s, str) for s in value):
        raise ValidationError("Skills must be a list of strings")
    return [s.strip() for s in value if s.strip()]


class ProjectService:

    # --- Projects ---

    @staticmethod
    def get_project(project_id, published_only=True):
        project = db.session.get(Project, project_id)
        if project is None or project.deleted_at is not None:
            raise NotFoundError("Project not found")
        if published_only and project.publish_status != 'PUBLISHED':
            raise NotFoundError("Project not found")
        return project

    @staticmethod
    def search_projects(user, search=None, hub_id=None, status=None):
        query = Project.query.filter(
            Project.deleted_at.is_(None),
            Project.publish_status == 'PUBLISHED',
            MembershipService.visible_clause(Project, user),
        )
        if search:
            term = f"%{search}%"
            query = query.filter(or_(Project.title.ilike(term), Project.description.ilike(term)))
        if hub_id:
            query = query.filter(Project.hub_id == hub_id)
        if status:
            query = query.filter(Project.status == status)
        return query.order_by(Project.created_at.desc(), Project.id.desc())

    @staticmethod
    def create_project(leader, hub_id, title, description, objectives=None, visibility='HUB_MEMBERS',
                       start_date=None, end_date=None, cover_image=None, skills=None):
        MembershipService.require_hub_leader(hub_id, leader)
        if start_date and end_date and end_date < start_date:
            raise ValidationError("End date must be after start date")

        project = Project(
            hub_id=hub_id,
            title=title,
            description=description,
            objectives=objectives,
            visibility=visibility or 'HUB_MEMBERS',
            start_date=start_date,
            end_date=end_date,
            cover_image=cover_image,
            skills=_skills(skills),
            status='PLANNING',
            publish_status='PUBLISHED',
            created_by=leader.id,
        )
        db.session.add(project)
        db.session.flush()
        MembershipService.add_project_member(project.id, leader.id, role='LEAD')

        AuditService.record('PROJECT_CREATED', 'PROJECT', project.id,
                            details={"title": project.title, "hub_id": hub_id}, user=leader)
        db.session.commit()
        logger.info("Project %s created in hub %s", project.id, hub_id)
        return project

    @staticmethod
    def change_status(project, status):
        if status not in PROJECT_STATUSES:
            raise ValidationError("Invalid project status", details={"allowed": list(PROJECT_STATUSES)})
        if status == project.status:
            return
        if status not in STATUS_TRANSITIONS[project.status]:
            raise ValidationError(f"Cannot move project from {project.status} to {status}")

        project.status = status
        if status == 'COMPLETED':
            project.completed_at = datetime.utcnow()

    @staticmethod
    def update_project(project, leader, status=None, **fields):
        MembershipService.require_hub_leader(project.hub_id, leader)
        previous = project.status
        if status is not None:
            ProjectService.change_status(project, status)
        if 'skills' in fields:
            fields['skills'] = _skills(fields['skills'])
        for key, value in fields.items():
            setattr(project, key, value)

        details = {"fields": sorted(fields)}
        if project.status != previous:
            details.update({"from": previous, "to": project.status})
            for member in project.active_members():
                if member.user_id == leader.id:
                    continue
                NotificationService.notify(
                    member.user_id,
                    "Project Status Updated",
                    f'"{project.title}" is now {project.status.replace("_", " ").lower()}',
                    type='PROJECT_UPDATE',
                    action_url=f'/dashboard/{member.user_id}/my-projects/{project.id}',
                )
        AuditService.record('PROJECT_UPDATED', 'PROJECT', project.id, details=details, user=leader)
        db.session.commit()
        return project

    @staticmethod
    def projects_for_hub(hub_id):
        return Project.query.filter_by(hub_id=hub_id).filter(Project.deleted_at.is_(None)) \
            .order_by(Project.created_at.desc()).all()

    # --- Programmes ---

    @staticmethod
    def get_programme(programme_id, published_only=True):
        programme = db.session.get(Programme, programme_id)
        if programme is None or programme.deleted_at is not None:
            raise NotFoundError("Programme not found")
        if published_only and programme.publish_status != 'PUBLISHED':
            raise NotFoundError("Programme not found")
        return programme

    @staticmethod
    def search_programmes(search=None, hub_id=None):
        query = Programme.query.filter(Programme.deleted_at.is_(None), Programme.publish_status == 'PUBLISHED')
        if search:
            term = f"%{search}%"
            query = query.filter(or_(Programme.title.ilike(term), Programme.description.ilike(term)))
        if hub_id:
            query = query.filter(Programme.hub_id == hub_id)
        return query.order_by(Programme.created_at.desc(), Programme.id.desc())

    @staticmethod
    def create_programme(leader, hub_id, title, description, start_date=None, end_date=None,
                         cover_image=None, supervisor_ids=None):
        MembershipService.require_hub_leader(hub_id, leader)
        if start_date and end_date and end_date < start_date:
            raise ValidationError("End date must be after start date")

        supervisors = []
        for user_id in supervisor_ids or []:
            membership = MembershipService.active_hub_membership(hub_id, user_id)
            if membership is None or membership.role not in ('SUPERVISOR', 'HUB_LEADER'):
                raise ValidationError("Programme supervisors must be hub supervisors or leaders",
                                      details={"user_id": user_id})
            supervisors.append(membership.user)

        programme = Programme(
            hub_id=hub_id,
            title=title,
            description=description,
            start_date=start_date,
            end_date=end_date,
            cover_image=cover_image,
            publish_status='PUBLISHED',
        )
        programme.supervisors = supervisors
        db.session.add(programme)
        db.session.flush()

        AuditService.record('PROGRAMME_CREATED', 'PROGRAMME', programme.id,
                            details={"title": programme.title, "hub_id": hub_id}, user=leader)
        db.session.commit()
        return programme

    @staticmethod
    def programmes_for_hub(hub_id):
        return Programme.query.filter_by(hub_id=hub_id).filter(Programme.deleted_at.is_(None)) \
            .order_by(Programme.created_at.desc()).all()

    # --- Suggestions ---

    @staticmethod
    def suggest(user, project_id, title, content):
        project = ProjectService.get_project(project_id)
        MembershipService.require_hub_member(project.hub_id, user,
                                             "You must be a member of this project's hub")

        suggestion = ProjectSuggestion(project_id=project.id, user_id=user.id, title=title, content=content)
        db.session.add(suggestion)
        db.session.flush()

        for leader_id in MembershipService.hub_leader_ids(project.hub_id):
            NotificationService.notify(
                leader_id,
                "New Project Suggestion",
                f'{user.full_name} suggested "{title}" for {project.title}',
                type='PROJECT_UPDATE',
                action_url=f'/dashboard/{leader_id}/my-hubs/{project.hub_id}/hub-leader',
                metadata={"suggestion_id": suggestion.id, "project_id": project.id},
            )
        AuditService.record('PROJECT_SUGGESTION_CREATED', 'PROJECT', project.id,
                            details={"suggestion_id": suggestion.id}, user=user)
        db.session.commit()
        return suggestion

    @staticmethod
    def suggestions_for_hub(hub_id, status=None):
        query = ProjectSuggestion.query.join(Project).filter(
            Project.hub_id == hub_id,
            ProjectSuggestion.deleted_at.is_(None),
        )
        if status:
            query = query.filter(ProjectSuggestion.status == status)
        return query.order_by(ProjectSuggestion.created_at.desc()).all()

    @staticmethod
    def respond_to_suggestion(suggestion_id, action, leader, message=None, edited_data=None):
        """
        approve: turn the suggestion into a new hub project with the suggester as member.
        edit: rewrite title/content and leave it pending for the suggester.
        deny: reject it.
        Returns (suggestion, created_project_or_None).
        """
        if action not in SUGGESTION_TITLES:
            raise ValidationError("Invalid action")
        suggestion = db.session.get(ProjectSuggestion, suggestion_id)
        if suggestion is None or suggestion.deleted_at is not None:
            raise NotFoundError("Suggestion not found")
        hub_id = suggestion.project.hub_id
        MembershipService.require_hub_leader(hub_id, leader)
        if suggestion.status != PENDING:
            raise ValidationError(f"Suggestion has already been {suggestion.status.lower()}")

        project = None
        if action == 'edit':
            edited_data = edited_data or {}
            if not isinstance(edited_data, dict):
                raise ValidationError("edited_data must be an object")
            suggestion.title = edited_data.get('title') or suggestion.title
            suggestion.content = edited_data.get('content') or suggestion.content
        elif action == 'approve':
            suggestion.status = APPROVED
            project = Project(
                hub_id=hub_id,
                title=suggestion.title,
                description=suggestion.content,
                status='PLANNING',
                publish_status='PUBLISHED',
                visibility='HUB_MEMBERS',
                created_by=leader.id,
            )
            db.session.add(project)
            db.session.flush()
            MembershipService.add_project_member(project.id, suggestion.user_id)
        else:
            suggestion.status = REJECTED

        NotificationService.notify(
            suggestion.user_id,
            f"Project Suggestion {SUGGESTION_TITLES[action]}",
            message or f'Your project suggestion "{suggestion.title}" has been {SUGGESTION_TITLES[action].lower()} by the hub leader.',
            type='PROJECT_UPDATE',
            action_url=f'/dashboard/{suggestion.user_id}/my-projects',
        )
        AuditService.record(f'PROJECT_SUGGESTION_{SUGGESTION_TITLES[action].upper()}', 'PROJECT',
                            suggestion.project_id,
                            details={"suggestion_id": suggestion.id,
                                     "created_project_id": project.id if project else None},
                            user=leader)
        db.session.commit()
        return suggestion, project

    # --- Progress reports ---

    @staticmethod
    def submit_progress_report(user, project_id, title, content, attachments=None):
        project = ProjectService.get_project(project_id, published_only=False)
        if MembershipService.project_member(project.id, user.id) is None:
            raise ForbiddenError("You must be a member of this project")
        if attachments is not None and (
                not isinstance(attachments, list) or not all(isinstance(a, str) for a in attachments)):
            raise ValidationError("Attachments must be a list of URLs")

        report = ProgressReport(
            project_id=project.id,
            user_id=user.id,
            title=title,
            content=content,
            attachments=attachments or [],
        )
        db.session.add(report)
        db.session.flush()

        for supervisor in project.supervisors:
            NotificationService.notify(
                supervisor.id,
                "New Progress Report",
                f'{user.full_name} submitted "{title}" for {project.title}',
                type='PROJECT_UPDATE',
                metadata={"report_id": report.id, "project_id": project.id},
            )
        AuditService.record('PROGRESS_REPORT_SUBMITTED', 'PROJECT', project.id,
                            details={"report_id": report.id}, user=user)
        db.session.commit()
        return report

    @staticmethod
    def progress_reports(user, project_id):
        project = ProjectService.get_project(project_id, published_only=False)
        allowed = (
            MembershipService.project_member(project.id, user.id) is not None
            or MembershipService.is_hub_leader(project.hub_id, user.id)
            or any(s.id == user.id for s in project.supervisors)
        )
        if not allowed:
            raise ForbiddenError("You must be a member of this project")
        return ProgressReport.query.filter_by(project_id=project.id) \
            .filter(ProgressReport.deleted_at.is_(None)) \
            .order_by(ProgressReport.created_at.desc()).all()
