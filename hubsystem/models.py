from flask_sqlalchemy import SQLAlchemy
from flask_login import UserMixin
from datetime import datetime

# Initialize SQLAlchemy
db = SQLAlchemy()

# Request / membership state
PENDING = 'PENDING'
APPROVED = 'APPROVED'
REJECTED = 'REJECTED'

HUB_ROLES = ('MEMBER', 'HUB_LEADER', 'SUPERVISOR')
PROJECT_STATUSES = ('PLANNING', 'IN_PROGRESS', 'COMPLETED', 'ON_HOLD', 'CANCELLED')
PUBLISH_STATUSES = ('DRAFT', 'PUBLISHED', 'ARCHIVED')
VISIBILITIES = ('PUBLIC', 'AUTHENTICATED', 'HUB_MEMBERS', 'PROGRAMME_MEMBERS')


def _iso(value):
    return value.isoformat() if value else None


hub_categories = db.Table(
    'hub_categories',
    db.Column('hub_id', db.Integer, db.ForeignKey('hubs.id', ondelete='CASCADE'), primary_key=True),
    db.Column('category_id', db.Integer, db.ForeignKey('categories.id', ondelete='CASCADE'), primary_key=True),
)

project_supervisors = db.Table(
    'project_supervisors',
    db.Column('project_id', db.Integer, db.ForeignKey('projects.id', ondelete='CASCADE'), primary_key=True),
    db.Column('user_id', db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
)

programme_supervisors = db.Table(
    'programme_supervisors',
    db.Column('programme_id', db.Integer, db.ForeignKey('programmes.id', ondelete='CASCADE'), primary_key=True),
    db.Column('user_id', db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
)


class User(UserMixin, db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=True)  # null until a password is set
    role = db.Column(db.String(20), nullable=False, default='student')  # 'student', 'admin'

    first_name = db.Column(db.String(100), nullable=False, default="Unknown")
    last_name = db.Column(db.String(100), nullable=False, default="")
    degree_programme = db.Column(db.String(150), nullable=True)
    skills = db.Column(db.JSON, nullable=False, default=list)
    profile_picture = db.Column(db.String(255), nullable=True)

    is_active = db.Column(db.Boolean, default=True)
    last_login_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    deleted_at = db.Column(db.DateTime, nullable=True)

    def __repr__(self):
        return f'<User {self.email}>'

    @property
    def full_name(self):
        return f'{self.first_name} {self.last_name}'.strip()

    def is_admin(self):
        return self.role == 'admin'

    def to_summary(self):
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "profile_picture": self.profile_picture,
        }

    def to_dict(self):
        data = self.to_summary()
        data.update({
            "role": self.role,
            "degree_programme": self.degree_programme,
            "skills": self.skills or [],
            "is_active": self.is_active,
            "last_login_at": _iso(self.last_login_at),
            "created_at": _iso(self.created_at),
        })
        return data


class Category(db.Model):
    __tablename__ = 'categories'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False, unique=True)

    def __repr__(self):
        return f'<Category {self.name}>'


class Hub(db.Model):
    __tablename__ = 'hubs'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=False)
    card_bio = db.Column(db.String(200), nullable=True)
    logo = db.Column(db.String(255), nullable=True)
    cover_image = db.Column(db.String(255), nullable=True)
    is_active = db.Column(db.Boolean, default=True, index=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    deleted_at = db.Column(db.DateTime, nullable=True)

    categories = db.relationship('Category', secondary=hub_categories, lazy='subquery',
                                 backref=db.backref('hubs', lazy=True))

    def __repr__(self):
        return f'<Hub {self.name}>'

    def active_members(self):
        return [m for m in self.members if m.is_active and m.deleted_at is None]

    def to_summary(self):
        return {"id": self.id, "name": self.name, "logo": self.logo}

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "card_bio": self.card_bio,
            "logo": self.logo,
            "cover_image": self.cover_image,
            "is_active": self.is_active,
            "categories": [c.name for c in self.categories],
            "counts": {
                "members": len(self.active_members()),
                "projects": len([p for p in self.projects if p.deleted_at is None]),
                "programmes": len([p for p in self.programmes if p.deleted_at is None]),
                "events": len([e for e in self.events if e.deleted_at is None]),
            },
            "created_at": _iso(self.created_at),
        }


class HubMember(db.Model):
    __tablename__ = 'hub_members'

    id = db.Column(db.Integer, primary_key=True)
    hub_id = db.Column(db.Integer, db.ForeignKey('hubs.id'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    role = db.Column(db.String(20), nullable=False, default='MEMBER')  # MEMBER, HUB_LEADER, SUPERVISOR
    is_active = db.Column(db.Boolean, default=True)
    joined_at = db.Column(db.DateTime, default=datetime.utcnow)
    deleted_at = db.Column(db.DateTime, nullable=True)

    hub = db.relationship('Hub', backref=db.backref('members', lazy=True))
    user = db.relationship('User', backref=db.backref('hub_memberships', lazy=True))

    def to_dict(self):
        return {
            "id": self.id,
            "hub": self.hub.to_summary(),
            "user": self.user.to_summary(),
            "role": self.role,
            "is_active": self.is_active,
            "joined_at": _iso(self.joined_at),
        }


class RequestMixin:
    """Shared columns of the approve/reject join requests."""
    id = db.Column(db.Integer, primary_key=True)
    message = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(20), nullable=False, default=PENDING, index=True)
    responded_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    deleted_at = db.Column(db.DateTime, nullable=True)

    def _base_dict(self):
        return {
            "id": self.id,
            "user": self.user.to_summary(),
            "message": self.message,
            "status": self.status,
            "responded_by": self.responded_by,
            "responded_at": _iso(self.responded_at),
            "created_at": _iso(self.created_at),
        }


class HubMembershipRequest(RequestMixin, db.Model):
    __tablename__ = 'hub_membership_requests'

    hub_id = db.Column(db.Integer, db.ForeignKey('hubs.id'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    responded_by = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='SET NULL'), nullable=True)

    hub = db.relationship('Hub', backref=db.backref('membership_requests', lazy=True))
    user = db.relationship('User', foreign_keys=[user_id])

    def to_dict(self):
        data = self._base_dict()
        data["hub"] = self.hub.to_summary()
        return data


class Project(db.Model):
    __tablename__ = 'projects'

    id = db.Column(db.Integer, primary_key=True)
    hub_id = db.Column(db.Integer, db.ForeignKey('hubs.id'), nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=False)
    objectives = db.Column(db.Text, nullable=True)
    cover_image = db.Column(db.String(255), nullable=True)
    start_date = db.Column(db.DateTime, nullable=True)
    end_date = db.Column(db.DateTime, nullable=True)
    status = db.Column(db.String(20), nullable=False, default='PLANNING', index=True)
    publish_status = db.Column(db.String(20), nullable=False, default='PUBLISHED', index=True)
    visibility = db.Column(db.String(30), nullable=False, default='PUBLIC')
    skills = db.Column(db.JSON, nullable=False, default=list)
    completed_at = db.Column(db.DateTime, nullable=True)
    created_by = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='SET NULL'), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    deleted_at = db.Column(db.DateTime, nullable=True)

    hub = db.relationship('Hub', backref=db.backref('projects', lazy=True))
    supervisors = db.relationship('User', secondary=project_supervisors, lazy='subquery',
                                  backref=db.backref('supervised_projects', lazy=True))

    def __repr__(self):
        return f'<Project {self.id} - {self.title}>'

    def active_members(self):
        return [m for m in self.members if m.deleted_at is None]

    def to_summary(self):
        return {"id": self.id, "title": self.title}

    def to_dict(self):
        return {
            "id": self.id,
            "hub": self.hub.to_summary(),
            "title": self.title,
            "description": self.description,
            "objectives": self.objectives,
            "cover_image": self.cover_image,
            "start_date": _iso(self.start_date),
            "end_date": _iso(self.end_date),
            "status": self.status,
            "publish_status": self.publish_status,
            "visibility": self.visibility,
            "skills": self.skills or [],
            "member_count": len(self.active_members()),
            "supervisors": [s.to_summary() for s in self.supervisors],
            "completed_at": _iso(self.completed_at),
            "created_at": _iso(self.created_at),
        }


class ProjectMember(db.Model):
    __tablename__ = 'project_members'

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(db.Integer, db.ForeignKey('projects.id'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    role = db.Column(db.String(20), nullable=False, default='MEMBER')
    joined_at = db.Column(db.DateTime, default=datetime.utcnow)
    deleted_at = db.Column(db.DateTime, nullable=True)

    project = db.relationship('Project', backref=db.backref('members', lazy=True))
    user = db.relationship('User', backref=db.backref('project_memberships', lazy=True))

    def to_dict(self):
        return {
            "id": self.id,
            "project": self.project.to_summary(),
            "user": self.user.to_summary(),
            "role": self.role,
            "joined_at": _iso(self.joined_at),
        }


class ProjectJoinRequest(RequestMixin, db.Model):
    __tablename__ = 'project_join_requests'

    project_id = db.Column(db.Integer, db.ForeignKey('projects.id'), nullable=False, index=True)
    hub_id = db.Column(db.Integer, db.ForeignKey('hubs.id'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    responded_by = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='SET NULL'), nullable=True)

    project = db.relationship('Project', backref=db.backref('join_requests', lazy=True))
    user = db.relationship('User', foreign_keys=[user_id])

    def to_dict(self):
        data = self._base_dict()
        data["project"] = self.project.to_summary()
        return data


class ProjectSuggestion(db.Model):
    __tablename__ = 'project_suggestions'

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(db.Integer, db.ForeignKey('projects.id'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False)
    content = db.Column(db.Text, nullable=False)
    status = db.Column(db.String(20), nullable=False, default=PENDING)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    deleted_at = db.Column(db.DateTime, nullable=True)

    project = db.relationship('Project', backref=db.backref('suggestions', lazy=True))
    user = db.relationship('User')

    def to_dict(self):
        return {
            "id": self.id,
            "project": self.project.to_summary(),
            "user": self.user.to_summary(),
            "title": self.title,
            "content": self.content,
            "status": self.status,
            "created_at": _iso(self.created_at),
        }


class ProgressReport(db.Model):
    __tablename__ = 'progress_reports'

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(db.Integer, db.ForeignKey('projects.id'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False)
    content = db.Column(db.Text, nullable=False)
    attachments = db.Column(db.JSON, nullable=False, default=list)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    deleted_at = db.Column(db.DateTime, nullable=True)

    project = db.relationship('Project', backref=db.backref('progress_reports', lazy=True))
    user = db.relationship('User')

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "user_id": self.user_id,
            "title": self.title,
            "content": self.content,
            "attachments": self.attachments or [],
            "created_at": _iso(self.created_at),
        }


class Programme(db.Model):
    __tablename__ = 'programmes'

    id = db.Column(db.Integer, primary_key=True)
    hub_id = db.Column(db.Integer, db.ForeignKey('hubs.id'), nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=False)
    cover_image = db.Column(db.String(255), nullable=True)
    start_date = db.Column(db.DateTime, nullable=True)
    end_date = db.Column(db.DateTime, nullable=True)
    publish_status = db.Column(db.String(20), nullable=False, default='PUBLISHED', index=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    deleted_at = db.Column(db.DateTime, nullable=True)

    hub = db.relationship('Hub', backref=db.backref('programmes', lazy=True))
    supervisors = db.relationship('User', secondary=programme_supervisors, lazy='subquery',
                                  backref=db.backref('supervised_programmes', lazy=True))

    def __repr__(self):
        return f'<Programme {self.id} - {self.title}>'

    def active_members(self):
        return [m for m in self.members if m.deleted_at is None]

    def to_summary(self):
        return {"id": self.id, "title": self.title}

    def to_dict(self):
        return {
            "id": self.id,
            "hub": self.hub.to_summary(),
            "title": self.title,
            "description": self.description,
            "cover_image": self.cover_image,
            "start_date": _iso(self.start_date),
            "end_date": _iso(self.end_date),
            "publish_status": self.publish_status,
            "member_count": len(self.active_members()),
            "supervisors": [s.to_summary() for s in self.supervisors],
            "created_at": _iso(self.created_at),
        }


class ProgrammeMember(db.Model):
    __tablename__ = 'programme_members'

    id = db.Column(db.Integer, primary_key=True)
    programme_id = db.Column(db.Integer, db.ForeignKey('programmes.id'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    role = db.Column(db.String(20), nullable=False, default='MEMBER')
    joined_at = db.Column(db.DateTime, default=datetime.utcnow)
    deleted_at = db.Column(db.DateTime, nullable=True)

    programme = db.relationship('Programme', backref=db.backref('members', lazy=True))
    user = db.relationship('User', backref=db.backref('programme_memberships', lazy=True))

    def to_dict(self):
        return {
            "id": self.id,
            "programme": self.programme.to_summary(),
            "user": self.user.to_summary(),
            "role": self.role,
            "joined_at": _iso(self.joined_at),
        }


class ProgrammeJoinRequest(RequestMixin, db.Model):
    __tablename__ = 'programme_join_requests'

    programme_id = db.Column(db.Integer, db.ForeignKey('programmes.id'), nullable=False, index=True)
    hub_id = db.Column(db.Integer, db.ForeignKey('hubs.id'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    responded_by = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='SET NULL'), nullable=True)

    programme = db.relationship('Programme', backref=db.backref('join_requests', lazy=True))
    user = db.relationship('User', foreign_keys=[user_id])

    def to_dict(self):
        data = self._base_dict()
        data["programme"] = self.programme.to_summary()
        return data


class Event(db.Model):
    __tablename__ = 'events'

    id = db.Column(db.Integer, primary_key=True)
    hub_id = db.Column(db.Integer, db.ForeignKey('hubs.id'), nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=False)
    event_type = db.Column(db.String(100), nullable=False)
    cover_image = db.Column(db.String(255), nullable=True)
    start_date = db.Column(db.DateTime, nullable=False, index=True)
    end_date = db.Column(db.DateTime, nullable=True)
    is_online = db.Column(db.Boolean, default=False)
    venue = db.Column(db.String(200), nullable=True)
    meeting_link = db.Column(db.String(255), nullable=True)
    capacity = db.Column(db.Integer, nullable=True)
    visibility = db.Column(db.String(30), nullable=False, default='PUBLIC')
    tags = db.Column(db.JSON, nullable=False, default=list)
    publish_status = db.Column(db.String(20), nullable=False, default='PUBLISHED', index=True)
    created_by = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='SET NULL'), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    deleted_at = db.Column(db.DateTime, nullable=True)

    hub = db.relationship('Hub', backref=db.backref('events', lazy=True))

    def __repr__(self):
        return f'<Event {self.id} - {self.title}>'

    def approved_registrations(self):
        return [r for r in self.registrations if r.status == APPROVED and r.deleted_at is None]

    def to_summary(self):
        return {"id": self.id, "title": self.title, "start_date": _iso(self.start_date), "venue": self.venue}

    def to_dict(self):
        return {
            "id": self.id,
            "hub": self.hub.to_summary(),
            "title": self.title,
            "description": self.description,
            "event_type": self.event_type,
            "cover_image": self.cover_image,
            "start_date": _iso(self.start_date),
            "end_date": _iso(self.end_date),
            "is_online": self.is_online,
            "venue": self.venue,
            "meeting_link": self.meeting_link,
            "capacity": self.capacity,
            "visibility": self.visibility,
            "tags": self.tags or [],
            "publish_status": self.publish_status,
            "registration_count": len(self.approved_registrations()),
            "created_at": _iso(self.created_at),
        }


class EventRegistration(db.Model):
    __tablename__ = 'event_registrations'

    id = db.Column(db.Integer, primary_key=True)
    event_id = db.Column(db.Integer, db.ForeignKey('events.id'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    status = db.Column(db.String(20), nullable=False, default=APPROVED)
    attended = db.Column(db.Boolean, default=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    deleted_at = db.Column(db.DateTime, nullable=True)

    event = db.relationship('Event', backref=db.backref('registrations', lazy=True))
    user = db.relationship('User', backref=db.backref('event_registrations', lazy=True))

    def to_dict(self):
        return {
            "id": self.id,
            "event": self.event.to_summary(),
            "user": self.user.to_summary(),
            "status": self.status,
            "attended": self.attended,
            "created_at": _iso(self.created_at),
        }


class EventFeedback(db.Model):
    __tablename__ = 'event_feedbacks'

    id = db.Column(db.Integer, primary_key=True)
    event_id = db.Column(db.Integer, db.ForeignKey('events.id'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    rating = db.Column(db.Integer, nullable=False)
    content = db.Column(db.Text, nullable=True)
    suggestions = db.Column(db.Text, nullable=True)
    would_recommend = db.Column(db.Boolean, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    event = db.relationship('Event', backref=db.backref('feedbacks', lazy=True))
    user = db.relationship('User')

    def to_dict(self):
        return {
            "id": self.id,
            "event_id": self.event_id,
            "user_id": self.user_id,
            "rating": self.rating,
            "content": self.content,
            "suggestions": self.suggestions,
            "would_recommend": self.would_recommend,
            "created_at": _iso(self.created_at),
        }


class Notification(db.Model):
    __tablename__ = 'notifications'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False)
    message = db.Column(db.Text, nullable=False)
    type = db.Column(db.String(30), nullable=False, default='SYSTEM')  # SYSTEM, HUB_INVITATION, PROJECT_UPDATE, EVENT_REMINDER
    priority = db.Column(db.String(10), nullable=False, default='MEDIUM')
    action_url = db.Column(db.String(255), nullable=True)
    extra = db.Column('metadata', db.JSON, nullable=True)
    is_read = db.Column(db.Boolean, default=False, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    user = db.relationship('User', backref=db.backref('notifications', lazy=True, cascade="all, delete-orphan"))

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "message": self.message,
            "type": self.type,
            "priority": self.priority,
            "action_url": self.action_url,
            "metadata": self.extra,
            "is_read": self.is_read,
            "created_at": _iso(self.created_at),
        }


class OTP(db.Model):
    __tablename__ = 'otps'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    code = db.Column(db.String(6), nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def is_expired(self, now=None):
        return (now or datetime.utcnow()) > self.expires_at


class AuditLog(db.Model):
    __tablename__ = 'audit_logs'

    id = db.Column(db.Integer, primary_key=True)
    timestamp = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='SET NULL'), nullable=True, index=True)
    user_email = db.Column(db.String(120), nullable=True)
    action = db.Column(db.String(64), nullable=False, index=True)
    entity_type = db.Column(db.String(32), nullable=True, index=True)
    entity_id = db.Column(db.String(64), nullable=True)
    details = db.Column(db.JSON, nullable=True)
    ip_address = db.Column(db.String(64), nullable=True)
    user_agent = db.Column(db.String(255), nullable=True)
    success = db.Column(db.Boolean, default=True, index=True)

    def __repr__(self):
        return f'<AuditLog {self.action} {self.entity_type}:{self.entity_id}>'

    def to_dict(self):
        return {
            "id": self.id,
            "timestamp": _iso(self.timestamp),
            "user_id": self.user_id,
            "user_email": self.user_email,
            "action": self.action,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "details": self.details,
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
            "success": self.success,
        }


class SystemSetting(db.Model):
    __tablename__ = 'system_settings'

    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(100), unique=True, nullable=False)
    value = db.Column(db.JSON, nullable=True)
    updated_by = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
