from sqlalchemy import Column, String, DateTime, Text, Integer, Date, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import uuid

from maint_reminders.database import Base


class Service(Base):
    """A maintenance event performed on a vehicle. Never updated once written."""

    __tablename__ = "services"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)

    vehicle_plate = Column(String(20), ForeignKey("vehicles.plate"), nullable=False, index=True)

    date = Column(Date, nullable=False, index=True)
    odometer = Column(Integer, nullable=True)
    summary = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    vehicle = relationship("Vehicle", back_populates="services")

    def __repr__(self):
        return f"<Service {self.vehicle_plate} on {self.date}>"
