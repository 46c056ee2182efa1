from sqlalchemy import Column, String, DateTime, Integer, Date, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from maint_reminders.database import Base


class Vehicle(Base):
    """Shop vehicle keyed by its normalized plate.

    last_service, next_reminder, interval_days and usage_category are derived
    from the service history and only written by the reminder service.
    """

    __tablename__ = "vehicles"

    plate = Column(String(20), primary_key=True, index=True)

    client_id = Column(UUID(as_uuid=True), ForeignKey("clients.id"), nullable=True, index=True)

    # Description
    brand = Column(String(100), nullable=True)
    model = Column(String(100), nullable=True)
    year = Column(Integer, nullable=True)

    # Reminder schedule
    last_service = Column(Date, nullable=True)
    next_reminder = Column(Date, nullable=True, index=True)
    interval_days = Column(Integer, nullable=True)
    usage_category = Column(String(30), nullable=True)  # high, medium, low

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    client = relationship("Client", back_populates="vehicles")
    services = relationship(
        "Service",
        back_populates="vehicle",
        order_by="Service.date.desc()",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<Vehicle {self.plate} next={self.next_reminder}>"
