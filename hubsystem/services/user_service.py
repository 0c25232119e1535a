from datetime import datetime

from sqlalchemy import or_
from werkzeug.security import generate_password_hash, check_password_hash

from hubsystem.errors import ConflictError, ForbiddenError, ValidationError
from hubsystem.models import db, User
from hubsystem.services.notification_service import NotificationService

WELCOME_TITLE = "Welcome to UDSM Hub System"
WELCOME_MESSAGE = "Thank you for joining! Explore hubs, projects, and programmes."


class UserService:
    @staticmethod
    def normalize_email(email):
        return (email or '').strip().lower()

    @staticmethod
    def get_user_by_email(email):
        return User.query.filter_by(email=UserService.normalize_email(email)).first()

    @staticmethod
    def get_user_by_id(user_id):
        return db.session.get(User, user_id)

    @staticmethod
    def create_user(email, password, role='student', welcome=True, **kwargs):
        email = UserService.normalize_email(email)
        if UserService.get_user_by_email(email):
            raise ConflictError("Email already registered. Please sign in.")

        user = User(
            email=email,
            password_hash=generate_password_hash(password) if password else None,
            role=role,
            **kwargs
        )
        db.session.add(user)
        db.session.flush()

        if welcome:
            NotificationService.notify(
                user.id, WELCOME_TITLE, WELCOME_MESSAGE,
                type='SYSTEM', action_url=f'/dashboard/{user.id}',
            )
        db.session.commit()
        return user

    @staticmethod
    def verify_password(user, password):
        if not user.password_hash:
            return False
        return check_password_hash(user.password_hash, password)

    @staticmethod
    def authenticate(email, password):
        """Return the user for valid credentials, raise ForbiddenError otherwise."""
        user = UserService.get_user_by_email(email)
        if not user or user.deleted_at is not None:
            raise ForbiddenError("User not found or account deactivated", status_code=401)
        if not user.is_active:
            raise ForbiddenError("Account deactivated. Please contact administrator.", status_code=401)
        if not user.password_hash:
            raise ForbiddenError("Password not set. Reset your password to sign in.", status_code=401)
        if not UserService.verify_password(user, password):
            raise ForbiddenError("Invalid password", status_code=401)
        return user

    @staticmethod
    def set_password(user, password):
        user.password_hash = generate_password_hash(password)
        db.session.commit()

    @staticmethod
    def record_login(user):
        user.last_login_at = datetime.utcnow()

    @staticmethod
    def redirect_url_for(user):
        return '/admin/dashboard' if user.role == 'admin' else f'/dashboard/{user.id}'

    @staticmethod
    def update_profile(user, skills=None, **fields):
        """Apply only the profile fields given; names cannot be cleared."""
        for key in ('first_name', 'last_name'):
            if key in fields and not fields[key]:
                raise ValidationError(f"{key} cannot be empty")
        if skills is not None:
            if not isinstance(skills, list) or not all(isinstance(s, str) for s in skills):
                raise ValidationError("Skills must be a list of strings")
            user.skills = [s.strip() for s in skills if s.strip()]
        for key, value in fields.items():
            setattr(user, key, value)
        db.session.commit()
        return user

    @staticmethod
    def search_users(search=None, role=None, status=None):
        query = User.query.filter(User.deleted_at.is_(None))
        if search:
            term = f"%{search}%"
            query = query.filter(or_(
                User.email.ilike(term),
                User.first_name.ilike(term),
                User.last_name.ilike(term),
            ))
        if role:
            query = query.filter(User.role == role)
        if status == 'active':
            query = query.filter(User.is_active.is_(True))
        elif status == 'inactive':
            query = query.filter(User.is_active.is_(False))
        return query.order_by(User.created_at.desc())

    @staticmethod
    def soft_delete(user):
        user.deleted_at = datetime.utcnow()
        user.is_active = False
