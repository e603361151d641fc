from sqlalchemy.orm import Session
from promisepoint.models.audit_log import AuditLog


def log_event(
    s: Session,
    actor: str,
    action: str,
    entity_type: str,
    entity_id: int | None = None,
    details: dict | None = None,
):
    # Joins the caller's transaction; the caller commits.
    row = AuditLog(
        actor=actor or "system",
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=details,
    )
    s.add(row)
    return row
