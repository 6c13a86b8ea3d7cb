"""
Key-value table holding the whole persisted state of the application.
One row per key (users, currentUser, alreadyLaunched, vehicles).
Values are JSON text, replaced wholesale on every write.
"""

from sqlalchemy import Column, String, DateTime, Text
from platecheck.database import Base


class KeyValueEntry(Base):
    __tablename__ = "kv_store"

    key = Column(String(100), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, nullable=False)

    def __repr__(self):
        return f"<KeyValueEntry {self.key} ({len(self.value or '')} chars)>"
