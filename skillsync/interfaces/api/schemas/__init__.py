from .notification import NotificationCreate, NotificationRead

__all__ = ["NotificationCreate", "NotificationRead"]
