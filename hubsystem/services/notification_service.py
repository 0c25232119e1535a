from hubsystem.models import db, Notification


class NotificationService:
    @staticmethod
    def notify(user_id, title, message, type='SYSTEM', priority='MEDIUM', action_url=None, metadata=None):
        notification = Notification(
            user_id=user_id,
            title=title,
            message=message,
            type=type,
            priority=priority,
            action_url=action_url,
            extra=metadata,
        )
        db.session.add(notification)
        return notification

    @staticmethod
    def notify_many(user_ids, title, message, **kwargs):
        return [NotificationService.notify(uid, title, message, **kwargs) for uid in user_ids]

    @staticmethod
    def list_for_user(user_id, unread_only=False, limit=50):
        query = Notification.query.filter_by(user_id=user_id)
        if unread_only:
            query = query.filter_by(is_read=False)
        return query.order_by(Notification.created_at.desc()).limit(limit).all()

    @staticmethod
    def mark_read(notification):
        notification.is_read = True
        db.session.commit()
        return notification

    @staticmethod
    def mark_all_read(user_id):
        count = Notification.query.filter_by(user_id=user_id, is_read=False).update({"is_read": True})
        db.session.commit()
        return count
