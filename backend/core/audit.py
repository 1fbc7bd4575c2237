from __future__ import annotations

from typing import Any

from core.auth import AuthContext
from core.models import AuditLog


def record_audit(
    *,
    auth: AuthContext,
    action: str,
    table_name: str,
    record_id: Any,
    old_data: dict | None = None,
    new_data: dict | None = None,
) -> AuditLog:
    """Write one audit row; callers run this inside the transaction of the change it describes."""

    return AuditLog.objects.create(
        actor_id=auth.user_id,
        actor_label=auth.actor_label,
        action=action,
        table_name=table_name,
        record_id=str(record_id),
        old_data=old_data,
        new_data=new_data,
        ip_address=auth.ip_address,
        user_agent=auth.user_agent or "",
    )
