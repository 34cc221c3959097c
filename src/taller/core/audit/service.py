"""Audit service for recording administrative actions.

Audit writes are best-effort: a failing insert is rolled back to its own
savepoint and logged, and the caller's transaction carries on.
"""

import enum
from typing import Annotated
from uuid import UUID

import structlog
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from taller.api.dependencies import DBSession
from taller.core.audit.models import AuditLog
from taller.core.logging import get_client_ip


log = structlog.get_logger()


class AuditAction(str, enum.Enum):
    """Event names written to ``audit_logs.action``."""

    ROLE_CREATED = "ROLE_CREATED"
    ROLE_UPDATED = "ROLE_UPDATED"
    ROLE_DISABLED = "ROLE_DISABLED"
    ROLE_PERMISSIONS_ASSIGNED = "ROLE_PERMISSIONS_ASSIGNED"
    ROLE_PERMISSIONS_REPLACED = "ROLE_PERMISSIONS_REPLACED"
    ROLE_PERMISSION_REVOKED = "ROLE_PERMISSION_REVOKED"
    USER_PERMISSION_SET = "USER_PERMISSION_SET"
    USER_PERMISSIONS_SET = "USER_PERMISSIONS_SET"
    USER_PERMISSION_CLEARED = "USER_PERMISSION_CLEARED"
    USER_PERMISSIONS_SYNCED = "USER_PERMISSIONS_SYNCED"
    PERMISSION_CREATED = "PERMISSION_CREATED"
    PERMISSION_UPDATED = "PERMISSION_UPDATED"


class AuditContext:
    """Request-level information attached to every entry of a request."""

    def __init__(
        self,
        ip_address: str | None = None,
        request_id: str | None = None,
    ) -> None:
        self.ip_address = ip_address
        self.request_id = request_id


def get_audit_context(request: Request) -> AuditContext:
    """Build the audit context for the current request."""
    return AuditContext(
        ip_address=get_client_ip(request),
        request_id=getattr(request.state, "request_id", None),
    )


class AuditService:
    """Fire-and-forget audit sink.

    ``log_event`` never raises. Outside of a request (CLI, tests) build it
    with just a session; the context defaults to an empty one.
    """

    def __init__(self, session: AsyncSession, context: AuditContext | None = None) -> None:
        self.session = session
        self.context = context or AuditContext()

    async def log_event(
        self,
        user_id: UUID | None,
        action: AuditAction | str,
        description: str | None = None,
        table: str | None = None,
        ip: str | None = None,
    ) -> None:
        """Append an audit entry.

        Args:
            user_id: Actor performing the action
            action: Event name
            description: Free-text summary
            table: Table the change touched
            ip: Client IP, defaults to the request's
        """
        action_name = action.value if isinstance(action, AuditAction) else action
        try:
            async with self.session.begin_nested():
                self.session.add(
                    AuditLog(
                        user_id=user_id,
                        action=action_name,
                        description=description,
                        table_name=table,
                        ip_address=ip or self.context.ip_address,
                    )
                )
        except Exception:
            # The savepoint is already rolled back; the outer work continues
            log.exception(
                "audit_log_failed",
                action=action_name,
                user_id=str(user_id) if user_id else None,
                table=table,
            )
            return

        log.info(
            "audit_log_created",
            action=action_name,
            user_id=str(user_id) if user_id else None,
            table=table,
            request_id=self.context.request_id,
        )


def get_audit_service(db: DBSession, request: Request) -> AuditService:
    """Dependency providing an audit sink bound to the request's session."""
    return AuditService(db, get_audit_context(request))


AuditSvc = Annotated[AuditService, Depends(get_audit_service)]
