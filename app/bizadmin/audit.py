import json
from typing import Any

from flask import g, has_request_context, request
from sqlalchemy.orm import Session

from app.bizadmin.models import AuditEvent
from app.bizadmin.tokens import Principal


def _request_context() -> tuple[str | None, str | None]:
    if not has_request_context():
        return None, None
    return getattr(g, "request_id", None), request.remote_addr


def record_event(
    s: Session,
    *,
    actor: Principal | None,
    action: str,
    entity_type: str | None = None,
    entity_id: str | None = None,
    reason: str | None = None,
    metadata: dict[str, Any] | None = None,
    request_id: str | None = None,
) -> AuditEvent:
    """
    Add an audit row to the session. The caller commits it together with the change it
    describes, so a rolled-back write leaves no trace in the audit log either.
    """
    rid, client_ip = _request_context()
    event = AuditEvent(
        request_id=request_id or rid,
        client_ip=client_ip,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        reason=reason,
        metadata_json=json.dumps(metadata, sort_keys=True, default=str) if metadata else None,
    )
    if actor is not None:
        event.actor_type = actor.user_type
        event.actor_id = actor.id
        event.actor_name = actor.name
    s.add(event)
    return event
