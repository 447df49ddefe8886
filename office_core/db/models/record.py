from sqlalchemy import Column, String, DateTime, JSON
from sqlalchemy.sql import func

from office_core.core.db import Base


class StoredRecord(Base):
    __tablename__ = "records"

    partition = Column(String(64), primary_key=True)
    key = Column(String(255), primary_key=True)
    payload = Column(JSON, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
