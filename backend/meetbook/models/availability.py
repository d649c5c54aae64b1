from sqlalchemy import Column, String, Integer, Boolean, Date, DateTime, ForeignKey, Index, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid
from meetbook.core.database import Base


class AvailabilityWindow(Base):
    __tablename__ = "user_availability"

    id = Column(String, primary_key=True, default=lambda: uuid.uuid4().hex)
    host_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    day_of_week = Column(Integer, nullable=False)  # 0 = Sunday ... 6 = Saturday
    start_time = Column(String(5), nullable=False)  # HH:MM
    end_time = Column(String(5), nullable=False)  # HH:MM
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)

    host = relationship("Host", backref="availability")

    __table_args__ = (
        Index("idx_user_availability_host_day", "host_id", "day_of_week"),
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_user_availability_day"),
        CheckConstraint("start_time < end_time", name="ck_user_availability_order"),
    )

    def __repr__(self):
        return (
            f"<AvailabilityWindow(id={self.id}, day={self.day_of_week}, "
            f"{self.start_time}-{self.end_time})>"
        )


class BookingSlot(Base):
    """A slot consumed by a public booking. Never reopened."""

    __tablename__ = "booking_slots"

    id = Column(String, primary_key=True, default=lambda: uuid.uuid4().hex)
    host_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    slot_date = Column(Date, nullable=False)
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)

    is_booked = Column(Boolean, default=True, nullable=False)
    booked_by_email = Column(String, nullable=True)
    booked_by_name = Column(String, nullable=True)
    meeting_id = Column(String, ForeignKey("meetings.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("host_id", "slot_date", "start_time", name="uq_booking_slots_host_date_start"),
    )

    def __repr__(self):
        return f"<BookingSlot(host={self.host_id}, {self.slot_date} {self.start_time})>"
