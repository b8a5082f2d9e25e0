from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import JSON, Column, DateTime, Index, String, UniqueConstraint
from sqlalchemy.ext.mutable import MutableDict

from riderops.db.connection import Base


def generate_id() -> str:
    """Generate a storage identifier for a rider row"""
    return f"rid_{uuid4().hex}"


class Rider(Base):
    """
    Model for riders

    ``data`` holds the schemaless attribute map; only a fixed subset of its
    keys is interpreted by the eligibility engine.
    """
    __tablename__ = 'riders'
    __table_args__ = (
        UniqueConstraint('rider_id', name='uq_riders_rider_id'),
        Index('ix_riders_updated_at', 'updated_at'),
    )

    id = Column(String(36), primary_key=True, default=generate_id)
    rider_id = Column(String(255), nullable=False)
    data = Column(MutableDict.as_mutable(JSON), nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    last_upload_id = Column(String(36), nullable=True)

    def __repr__(self) -> str:
        return f"<Rider(id='{self.id}', rider_id='{self.rider_id}')>"
