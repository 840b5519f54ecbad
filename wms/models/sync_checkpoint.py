"""
Sync Checkpoint Model

Remembers when each bulk sync last completed so the next run can ask Sellus
only for what changed since then.
"""

from sqlalchemy import Column, Integer, DateTime, String
from sqlalchemy.sql import func
from wms.database import Base


class SyncCheckpoint(Base):
    __tablename__ = "sync_checkpoints"

    id = Column(Integer, primary_key=True, index=True)
    sync_type = Column(String, nullable=False, unique=True)  # 'sale_import', 'inventory_export'
    last_successful_sync = Column(DateTime(timezone=True), nullable=True)
    total_synced = Column(Integer, default=0)
    total_errors = Column(Integer, default=0)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<SyncCheckpoint(sync_type={self.sync_type}, last={self.last_successful_sync})>"
