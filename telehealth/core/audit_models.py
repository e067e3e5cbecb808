from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.sql import func

from ..database import Base


class AuditAction:
    """Action names written to the audit log for medical record access."""
    RECORD_UPLOADED = "RECORD_UPLOADED"
    RECORD_VIEWED = "RECORD_VIEWED"
    RECORD_UPDATED = "RECORD_UPDATED"
    RECORD_DELETED = "RECORD_DELETED"
    VERSION_VIEWED = "VERSION_VIEWED"


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    # Plain column, not a foreign key: audit rows outlive deleted users
    user_id = Column(String(36), nullable=True, index=True)
    action = Column(String, nullable=False, index=True)
    # Records are referenced by id only so the trail survives record deletion
    record_id = Column(String(36), nullable=True, index=True)
    details = Column(JSON, nullable=True)
    ip_address = Column(String, nullable=True)
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    def __repr__(self):
        return f"<AuditLog(id={self.id}, user_id={self.user_id}, action='{self.action}', record_id={self.record_id})>"
