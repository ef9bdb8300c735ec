"""
Module Platform - Audit, outbox de notifications et webhooks.
"""

from app.models.platform.platform_audit_log import (
    PlatformAuditLog,
    AuditAction,
    log_tenant_action,
)
from app.models.platform.notification_outbox import NotificationOutbox
from app.models.platform.webhook_event import ProcessedWebhookEvent

__all__ = [
    "PlatformAuditLog",
    "AuditAction",
    "log_tenant_action",
    "NotificationOutbox",
    "ProcessedWebhookEvent",
]
