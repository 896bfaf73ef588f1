import json
from flask import current_app, has_request_context, request
from sqlalchemy.exc import SQLAlchemyError
from models import db
from models.audit_log import AuditLog

def log_event(action: str, actor_id=None, entity=None, entity_id=None, metadata=None):
    ip = None
    user_agent = None
    # CLI commands run without a request
    if has_request_context():
        ip = request.headers.get("X-Forwarded-For", request.remote_addr)
        user_agent = request.headers.get("User-Agent", "")

    # Callers have already committed the change being audited; a lost audit row must not undo it
    try:
        row = AuditLog(
            actor_id=actor_id,
            action=action,
            entity=entity,
            entity_id=str(entity_id) if entity_id is not None else None,
            ip=ip,
            user_agent=user_agent[:255] if user_agent else None,
            metadata_json=json.dumps(metadata, default=str) if metadata else None
        )
        db.session.add(row)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Audit event %s for %s %s not recorded", action, entity, entity_id)
