"""Audit logging - append-only record of administrative changes."""

from taller.core.audit.models import AuditLog
from taller.core.audit.service import (
    AuditAction,
    AuditContext,
    AuditService,
    AuditSvc,
    get_audit_context,
    get_audit_service,
)


__all__ = [
    "AuditAction",
    "AuditContext",
    "AuditLog",
    "AuditService",
    "AuditSvc",
    "get_audit_context",
    "get_audit_service",
]
