"""Dataset cache model."""

from datetime import datetime
from sqlalchemy import Column, String, Text, DateTime

from .database import Base


class DatasetCache(Base):
    """Last known good snapshot of one dataset, stored as a JSON blob."""
    __tablename__ = "dataset_cache"

    key = Column(String(50), primary_key=True)  # instruments, suppliers, ..., last_updated
    payload = Column(Text, nullable=False)

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<DatasetCache(key={self.key})>"
