from flask import g, has_app_context
from cms_staging.extensions import db
from cms_staging.models.audit_log import AuditLog
from typing import Optional

def log_action(
    *,
    action: str,
    entity_type: str,
    entity_id: Optional[str],
    stage_id: Optional[str] = None,
    actor_id: Optional[str] = None,
    payload: dict | None = None
):
    """
    Adds an audit row to the current session.
    The row commits or rolls back with the caller's transaction.
    """
    if actor_id is None and has_app_context():
        actor_id = g.get("actor_id")

    log = AuditLog()

    log.actor_id = actor_id
    log.action = action
    log.stage_id = stage_id
    log.entity_type = entity_type
    log.entity_id = entity_id if entity_id is not None else "*"
    log.payload = payload or {}

    db.session.add(log)
