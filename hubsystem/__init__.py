import logging

from flask import Flask, jsonify
from flask_login import LoginManager
from config import Config
from hubsystem.models import db, User
from hubsystem.errors import HubSystemError

from flask_wtf.csrf import CSRFProtect, CSRFError
from flask_migrate import Migrate

logger = logging.getLogger(__name__)

login_manager = LoginManager()
csrf = CSRFProtect()
migrate = Migrate()


@login_manager.user_loader
def load_user(user_id):
    user = db.session.get(User, int(user_id))
    if user is None or user.deleted_at is not None or not user.is_active:
        return None
    return user


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({"success": False, "error": "Unauthorized"}), 401


def register_error_handlers(app):
    @app.errorhandler(HubSystemError)
    def handle_domain_error(error):
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(CSRFError)
    def handle_csrf_error(error):
        return jsonify({"success": False, "error": error.description}), 400

    @app.errorhandler(403)
    def forbidden(error):
        return jsonify({"success": False, "error": "Forbidden"}), 403

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({"success": False, "error": "Not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({"success": False, "error": "Method not allowed"}), 405

    @app.errorhandler(413)
    def too_large(error):
        return jsonify({"success": False, "error": "File too large"}), 413

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        app.logger.exception("Unhandled error: %s", error)
        return jsonify({"success": False, "error": "Internal server error"}), 500


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    # Initialize extensions
    db.init_app(app)
    login_manager.init_app(app)
    csrf.init_app(app)
    migrate.init_app(app, db)

    # Register Blueprints
    from hubsystem.routes.auth_routes import auth_bp
    from hubsystem.routes.hub_routes import hub_bp
    from hubsystem.routes.project_routes import project_bp
    from hubsystem.routes.programme_routes import programme_bp
    from hubsystem.routes.event_routes import event_bp
    from hubsystem.routes.hub_leader_routes import hub_leader_bp
    from hubsystem.routes.hub_member_routes import hub_member_bp
    from hubsystem.routes.hub_supervisor_routes import hub_supervisor_bp
    from hubsystem.routes.dashboard_routes import dashboard_bp
    from hubsystem.routes.admin_routes import admin_bp
    from hubsystem.routes.ai_routes import ai_bp
    from hubsystem.routes.upload_routes import upload_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(hub_bp)
    app.register_blueprint(project_bp)
    app.register_blueprint(programme_bp)
    app.register_blueprint(event_bp)
    app.register_blueprint(hub_leader_bp)
    app.register_blueprint(hub_member_bp)
    app.register_blueprint(hub_supervisor_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(ai_bp)
    app.register_blueprint(upload_bp)

    register_error_handlers(app)

    from hubsystem.commands import register_commands
    register_commands(app)

    return app
