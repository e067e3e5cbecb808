from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from typing import Optional, Dict, Any
import logging

from .audit_models import AuditLog

logger = logging.getLogger(__name__)

def create_audit_log(
    db: Session,
    action: str,
    user_id: Optional[str] = None,
    record_id: Optional[str] = None,
    ip_address: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None
) -> Optional[AuditLog]:
    """
    Creates an audit log entry in its own commit.

    Must only be called after the audited operation has committed, since the
    session is committed here. A failure to write the entry is logged and
    does not fail the audited operation.

    Args:
        db: The database session.
        action: A string describing the action performed (see AuditAction).
        user_id: The ID of the user who performed the action.
        record_id: The ID of the medical record the action touched.
        ip_address: Client address, when called from a request.
        details: A dictionary containing additional context or data related to the action.

    Returns:
        The created AuditLog object, or None if it could not be written.
    """
    audit_entry = AuditLog(
        user_id=user_id,
        action=action,
        record_id=record_id,
        ip_address=ip_address,
        details=details
    )
    db.add(audit_entry)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to write audit log entry {action} for record {record_id}: {str(e)}")
        return None
    return audit_entry
