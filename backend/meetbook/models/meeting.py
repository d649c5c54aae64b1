from sqlalchemy import Column, String, DateTime, ForeignKey, Index, Text, CheckConstraint, text
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid
from meetbook.core.database import Base


class Meeting(Base):
    __tablename__ = "meetings"

    id = Column(String, primary_key=True, default=lambda: uuid.uuid4().hex)
    host_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    title = Column(String, nullable=False)
    description = Column(Text, default="")

    # Naive UTC instants
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    timezone = Column(String, default="UTC", nullable=False)

    # Status
    status = Column(String, default="pending", nullable=False)  # pending, confirmed, cancelled, completed

    # Public booking
    booker_name = Column(String, nullable=True)
    booker_email = Column(String, nullable=True)

    meeting_url = Column(String, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    host = relationship("Host", backref="meetings")

    __table_args__ = (
        Index("idx_meetings_host_start", "host_id", "start_time"),
        CheckConstraint("end_time > start_time", name="ck_meetings_order"),
        # At most one live meeting per host start instant
        Index(
            "uq_meetings_host_start_live",
            "host_id",
            "start_time",
            unique=True,
            postgresql_where=text("status <> 'cancelled'"),
            sqlite_where=text("status <> 'cancelled'"),
        ),
    )

    def __repr__(self):
        return f"<Meeting(id={self.id}, title={self.title}, start={self.start_time})>"
