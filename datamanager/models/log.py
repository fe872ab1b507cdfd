"""
Log model

One row per outbound operation (currently webhook sends). The row is
written as Started before the operation runs and moved to Success or
Failed once it ends.
"""

import uuid

from sqlalchemy import Column, Index, String, Text, Uuid

from datamanager.database import Base, UTCDateTime, utcnow

SYSTEM_USER = "system"

LOG_TYPE_WEBHOOK = "Webhook"
LOG_ACTION_SEND = "Send"

LOG_STATUS_STARTED = "Started"
LOG_STATUS_SUCCESS = "Success"
LOG_STATUS_FAILED = "Failed"


class Log(Base):
    __tablename__ = "logs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    log_type = Column(String(50), nullable=False, index=True)
    action = Column(String(50), nullable=False)
    # Webhook URL, e-mail address, ...
    target = Column(String(500), nullable=True)
    status = Column(String(50), nullable=False, index=True)
    started_at = Column(UTCDateTime, nullable=False, default=utcnow, index=True)
    ended_at = Column(UTCDateTime, nullable=True)
    error_message = Column(Text, nullable=True)
    details = Column(Text, nullable=True)
    # Not a foreign key, logs outlive the data sets they mention
    data_set_id = Column(Uuid, nullable=True, index=True)

    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)
    created_by = Column(String(200), nullable=True)

    __table_args__ = (Index("idx_logs_type_started", "log_type", "started_at"),)

    @property
    def is_finished(self) -> bool:
        return self.ended_at is not None

    def __repr__(self) -> str:
        return f"<Log id={self.id} {self.log_type}/{self.action} status={self.status}>"
