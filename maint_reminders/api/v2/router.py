from fastapi import APIRouter
from maint_reminders.api.v2 import (
    clients,
    vehicles,
    scheduler,
)

api_router = APIRouter()

api_router.include_router(clients.router, prefix="/clients", tags=["clients"])
api_router.include_router(vehicles.router, prefix="/vehicles", tags=["vehicles"])
api_router.include_router(scheduler.router, prefix="/scheduler", tags=["scheduler"])
