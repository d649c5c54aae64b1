from sqlalchemy import Column, String, Boolean, DateTime
from datetime import datetime
import uuid
from meetbook.core.database import Base


class Host(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=lambda: uuid.uuid4().hex)
    email = Column(String, unique=True, nullable=False)
    full_name = Column(String, nullable=False)

    # License gate for public scheduling
    has_full_license = Column(Boolean, default=False, nullable=False)

    # Availability times are interpreted in this zone
    timezone = Column(String, default="UTC", nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<Host(id={self.id}, email={self.email})>"
