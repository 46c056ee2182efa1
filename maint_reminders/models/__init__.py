from maint_reminders.models.client import Client
from maint_reminders.models.vehicle import Vehicle
from maint_reminders.models.service import Service

__all__ = [
    "Client",
    "Vehicle",
    "Service",
]
