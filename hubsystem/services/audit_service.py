import io
import json
import csv
import logging
from datetime import datetime

import pandas as pd
from flask import request, has_request_context
from flask_login import current_user
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from sqlalchemy import or_

from hubsystem.models import db, AuditLog

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = [
    ("Timestamp", "timestamp"),
    ("User Email", "user_email"),
    ("Action", "action"),
    ("Entity Type", "entity_type"),
    ("Entity ID", "entity_id"),
    ("Success", "success"),
    ("IP Address", "ip_address"),
    ("User Agent", "user_agent"),
]


class AuditService:

    @staticmethod
    def record(action, entity_type=None, entity_id=None, details=None, success=True, user=None, user_email=None):
        """
        Append an audit entry to the current session.
        Caller owns the commit so the entry lands with the change it describes.
        """
        ip_address = None
        user_agent = None
        if has_request_context():
            ip_address = request.headers.get('X-Forwarded-For', request.remote_addr) or 'unknown'
            user_agent = (request.headers.get('User-Agent') or 'unknown')[:255]
            if user is None and current_user and current_user.is_authenticated:
                user = current_user

        entry = AuditLog(
            user_id=user.id if user is not None else None,
            user_email=user.email if user is not None else user_email,
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id) if entity_id is not None else None,
            details=details,
            ip_address=ip_address,
            user_agent=user_agent,
            success=success,
        )
        db.session.add(entry)
        logger.info("audit %s %s:%s success=%s", action, entity_type, entity_id, success)
        return entry

    @staticmethod
    def _apply_filters(query, filters):
        if not filters:
            return query

        if filters.get('user_id'):
            query = query.filter(AuditLog.user_id == filters['user_id'])
        if filters.get('action'):
            query = query.filter(AuditLog.action == filters['action'])
        if filters.get('entity_type'):
            query = query.filter(AuditLog.entity_type == filters['entity_type'])
        if filters.get('start_date'):
            query = query.filter(AuditLog.timestamp >= filters['start_date'])
        if filters.get('end_date'):
            query = query.filter(AuditLog.timestamp <= filters['end_date'])
        if filters.get('success') is not None:
            query = query.filter(AuditLog.success == filters['success'])
        if filters.get('search'):
            term = f"%{filters['search']}%"
            query = query.filter(or_(
                AuditLog.user_email.ilike(term),
                AuditLog.action.ilike(term),
                AuditLog.entity_type.ilike(term),
            ))
        return query

    @staticmethod
    def query_logs(filters=None):
        query = AuditService._apply_filters(AuditLog.query, filters)
        return query.order_by(AuditLog.timestamp.desc(), AuditLog.id.desc())

    @staticmethod
    def get_logs(filters=None, page=1, per_page=50):
        return AuditService.query_logs(filters).paginate(page=page, per_page=per_page, error_out=False)

    @staticmethod
    def recent_activity(start_date, end_date, actions, limit=10):
        return AuditLog.query.filter(
            AuditLog.timestamp >= start_date,
            AuditLog.timestamp <= end_date,
            AuditLog.action.in_(actions),
            AuditLog.success.is_(True),
        ).order_by(AuditLog.timestamp.desc()).limit(limit).all()

    # --- Exports ---

    @staticmethod
    def _export_rows(logs):
        rows = []
        for log in logs:
            rows.append({
                label: (log.timestamp.isoformat() if key == 'timestamp' and log.timestamp else getattr(log, key))
                for label, key in EXPORT_COLUMNS
            })
        return rows

    @staticmethod
    def export_csv(logs):
        output = io.StringIO()
        writer = csv.writer(output)
        writer.writerow([label for label, _ in EXPORT_COLUMNS])
        for row in AuditService._export_rows(logs):
            writer.writerow([
                str(row["Success"]).lower() if label == "Success" else (row[label] if row[label] is not None else '')
                for label, _ in EXPORT_COLUMNS
            ])
        return output.getvalue()

    @staticmethod
    def export_json(logs):
        return json.dumps([log.to_dict() for log in logs], indent=2)

    @staticmethod
    def export_xlsx(logs):
        output = io.BytesIO()
        df = pd.DataFrame(AuditService._export_rows(logs), columns=[label for label, _ in EXPORT_COLUMNS])
        with pd.ExcelWriter(output, engine='openpyxl') as writer:
            df.to_excel(writer, sheet_name='Audit_Logs', index=False)
            AuditService._format_excel_sheet(writer, df, 'Audit_Logs')
        output.seek(0)
        return output

    @staticmethod
    def _format_excel_sheet(writer, df, sheet_name):
        """Bold header and auto column widths."""
        worksheet = writer.sheets[sheet_name]
        for cell in worksheet[1]:
            cell.font = Font(bold=True)

        for idx, col in enumerate(df.columns):
            col_data = df[col].astype(str)
            max_len = col_data.map(len).max() if not col_data.empty else 0
            final_width = max(int(max_len or 0), len(str(col))) + 2
            worksheet.column_dimensions[get_column_letter(idx + 1)].width = min(final_width, 50)

    @staticmethod
    def export_filename(extension):
        return f'audit-logs-{datetime.utcnow().strftime("%Y-%m-%d")}.{extension}'
