import copy
import logging
import os
import time
from datetime import datetime, timedelta

from flask import current_app
from sqlalchemy import func, text
from sqlalchemy.exc import SQLAlchemyError

from hubsystem.errors import ValidationError
from hubsystem.models import db, User, Hub, Event, AuditLog, SystemSetting

logger = logging.getLogger(__name__)

HEALTHY = 'healthy'
WARNING = 'warning'
ERROR = 'error'

DEFAULT_SETTINGS = {
    "general": {
        "siteName": "UDSM Hub Management System",
        "siteDescription": "University of Dar es Salaam Hub Management System - Connect, Collaborate, and Grow",
        "contactEmail": "support@udsm.ac.tz",
        "maintenanceMode": False,
        "allowRegistration": True,
        "requireEmailVerification": False,
    },
    "security": {
        "sessionTimeout": 24 * 60 * 60 * 1000,
        "maxLoginAttempts": 5,
        "passwordMinLength": 8,
        "requireStrongPasswords": True,
        "enableTwoFactor": False,
    },
    "notifications": {
        "enableEmailNotifications": True,
        "enablePushNotifications": True,
        "enableWhatsAppNotifications": False,
        "notificationFrequency": "immediate",
    },
    "features": {
        "enableAIFeatures": True,
        "enableFileUploads": True,
        "maxFileSize": 10 * 1024 * 1024,
        "allowedFileTypes": ["jpg", "jpeg", "png", "gif", "webp", "pdf"],
    },
    "limits": {
        "maxHubsPerUser": 5,
        "maxProjectsPerHub": 50,
        "maxEventsPerHub": 100,
        "maxMembersPerHub": 500,
        "maxFileSizePerUpload": 10 * 1024 * 1024,
    },
}

MAX_UPLOAD_LIMIT = 100 * 1024 * 1024
FAILED_LOGIN_WARNING = 10
FAILED_LOGIN_ERROR = 50


def status_for_response_time(ms):
    if ms < 1000:
        return HEALTHY
    if ms < 3000:
        return WARNING
    return ERROR


def overall_status(statuses):
    if ERROR in statuses:
        return ERROR
    if WARNING in statuses:
        return WARNING
    return HEALTHY


class SystemHealthService:

    @staticmethod
    def integrations():
        config = current_app.config
        return {
            "cloudinary": bool(config.get('CLOUDINARY_CLOUD_NAME')),
            "firebase": bool(config.get('FIREBASE_PROJECT_ID')),
            "whatsapp": bool(config.get('WHATSAPP_ACCESS_TOKEN')),
            "email": bool(config.get('MAIL_SERVER')),
        }

    @staticmethod
    def check_database():
        start = time.perf_counter()
        try:
            db.session.execute(text('SELECT 1'))
            counts = {
                "users": db.session.query(func.count(User.id)).scalar(),
                "hubs": db.session.query(func.count(Hub.id)).scalar(),
                "events": db.session.query(func.count(Event.id)).scalar(),
            }
        except SQLAlchemyError as e:
            logger.error("Database health check failed: %s", e)
            db.session.rollback()
            return {"status": ERROR, "responseTime": None, "error": str(e)}

        elapsed = int((time.perf_counter() - start) * 1000)
        return {
            "status": status_for_response_time(elapsed),
            "responseTime": elapsed,
            "dialect": db.engine.dialect.name,
            "counts": counts,
        }

    @staticmethod
    def check_storage():
        folder = current_app.config['UPLOAD_FOLDER']
        if not os.path.isdir(folder):
            return {"status": WARNING, "uploadFolder": folder, "totalFiles": 0, "bytesUsed": 0,
                    "cloudinaryConnected": bool(current_app.config.get('CLOUDINARY_CLOUD_NAME'))}

        files = [os.path.join(folder, f) for f in os.listdir(folder)]
        files = [f for f in files if os.path.isfile(f)]
        writable = os.access(folder, os.W_OK)
        return {
            "status": HEALTHY if writable else ERROR,
            "uploadFolder": folder,
            "writable": writable,
            "totalFiles": len(files),
            "bytesUsed": sum(os.path.getsize(f) for f in files),
            "cloudinaryConnected": bool(current_app.config.get('CLOUDINARY_CLOUD_NAME')),
        }

    @staticmethod
    def check_realtime():
        # Status is polled by clients; a push provider is optional
        connected = bool(current_app.config.get('FIREBASE_PROJECT_ID'))
        return {"status": HEALTHY if connected else WARNING, "firebaseConnected": connected, "mode": "polling"}

    @staticmethod
    def check_security(now=None):
        now = now or datetime.utcnow()
        failed = db.session.query(func.count(AuditLog.id)).filter(
            AuditLog.action == 'USER_LOGIN',
            AuditLog.success.is_(False),
            AuditLog.timestamp >= now - timedelta(hours=24),
        ).scalar() or 0

        if failed >= FAILED_LOGIN_ERROR:
            status = ERROR
        elif failed >= FAILED_LOGIN_WARNING:
            status = WARNING
        else:
            status = HEALTHY
        return {"status": status, "failedLogins": failed}

    @staticmethod
    def get_health():
        start = time.perf_counter()

        database = SystemHealthService.check_database()
        storage = SystemHealthService.check_storage()
        realtime = SystemHealthService.check_realtime()
        security = SystemHealthService.check_security()

        elapsed = int((time.perf_counter() - start) * 1000)
        performance = {"status": status_for_response_time(elapsed), "averageResponseTime": elapsed}

        health = {
            "database": database,
            "storage": storage,
            "realtime": realtime,
            "performance": performance,
            "security": security,
            "integrations": SystemHealthService.integrations(),
        }
        statuses = [database["status"], storage["status"], realtime["status"],
                    performance["status"], security["status"]]

        return {
            "health": health,
            "timestamp": datetime.utcnow().isoformat(),
            "responseTime": elapsed,
            "overallStatus": overall_status(statuses),
        }

    # --- Admin actions ---

    @staticmethod
    def run_diagnostics():
        database = SystemHealthService.check_database()
        storage = SystemHealthService.check_storage()
        integrations = SystemHealthService.integrations()

        recommendations = []
        if database["status"] != HEALTHY:
            recommendations.append("Database response is slow; review query load and indexes")
        else:
            recommendations.append("Database performance is optimal")
        if not storage.get("writable"):
            recommendations.append("Upload folder is missing or not writable")
        if not integrations["email"]:
            recommendations.append("Configure MAIL_SERVER so OTP codes can be emailed")
        if not integrations["whatsapp"]:
            recommendations.append("Consider enabling WhatsApp integration for better communication")

        return {
            "timestamp": datetime.utcnow().isoformat(),
            "tests": {
                "database_connectivity": database["status"] != ERROR,
                "file_upload_test": bool(storage.get("writable")),
                "realtime_connectivity": integrations["firebase"],
                "email_service": integrations["email"],
                "whatsapp_service": integrations["whatsapp"],
            },
            "performance": {"database_query_time": database["responseTime"]},
            "recommendations": recommendations,
        }

    @staticmethod
    def clear_cache():
        db.session.expire_all()
        logger.info("Session identity map expired")

    @staticmethod
    def restart_services():
        db.engine.dispose()
        logger.info("Database connection pool disposed")

    @staticmethod
    def perform_action(action):
        """Returns (payload, message) for a supported action."""
        if action == 'run_diagnostics':
            return {"diagnostics": SystemHealthService.run_diagnostics()}, "System diagnostics completed successfully"
        if action == 'clear_cache':
            SystemHealthService.clear_cache()
            return {}, "System cache cleared successfully"
        if action == 'restart_services':
            SystemHealthService.restart_services()
            return {}, "System services restarted successfully"
        raise ValidationError("Invalid action")

    # --- Settings ---

    @staticmethod
    def get_settings():
        settings = copy.deepcopy(DEFAULT_SETTINGS)
        for row in SystemSetting.query.all():
            if row.key in settings and isinstance(row.value, dict):
                settings[row.key].update(row.value)

        integrations = SystemHealthService.integrations()
        settings["integrations"] = {
            "cloudinaryEnabled": integrations["cloudinary"],
            "firebaseEnabled": integrations["firebase"],
            "whatsappEnabled": integrations["whatsapp"],
            "emailEnabled": integrations["email"],
        }
        return settings

    @staticmethod
    def update_settings(changes, user_id):
        if not isinstance(changes, dict) or not changes:
            raise ValidationError("No settings provided")

        unknown = [k for k in changes if k not in DEFAULT_SETTINGS]
        if unknown:
            raise ValidationError("Unknown settings sections", details={"sections": unknown})
        for section, values in changes.items():
            if not isinstance(values, dict):
                raise ValidationError(f"Settings section '{section}' must be an object")

        min_length = changes.get("security", {}).get("passwordMinLength")
        if min_length is not None and min_length < 6:
            raise ValidationError("Password minimum length cannot be less than 6 characters")

        max_upload = changes.get("limits", {}).get("maxFileSizePerUpload")
        if max_upload is not None and max_upload > MAX_UPLOAD_LIMIT:
            raise ValidationError("Maximum file size cannot exceed 100MB")

        for section, values in changes.items():
            row = SystemSetting.query.filter_by(key=section).first()
            if row is None:
                row = SystemSetting(key=section, value={})
                db.session.add(row)
            merged = dict(row.value or {})
            merged.update(values)
            row.value = merged
            row.updated_by = user_id

        return SystemHealthService.get_settings()

    @staticmethod
    def reset_settings():
        SystemSetting.query.delete()
        return SystemHealthService.get_settings()
