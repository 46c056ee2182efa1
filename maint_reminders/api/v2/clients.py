"""Clients API - vehicle owners and their reminder contact."""

import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter
from sqlalchemy import select
from sqlalchemy.orm import selectinload

from maint_reminders.api.deps import DbSession
from maint_reminders.exceptions import NotFoundError
from maint_reminders.models import Client
from maint_reminders.schemas.client import ClientCreate, ClientDetailResponse, ClientResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_model=List[ClientResponse])
async def list_clients(db: DbSession):
    """List clients ordered by name."""
    result = await db.execute(select(Client).order_by(Client.name))
    return result.scalars().all()


@router.get("/{client_id}", response_model=ClientDetailResponse)
async def get_client(client_id: UUID, db: DbSession):
    """Client detail with the vehicles they own."""
    result = await db.execute(
        select(Client)
        .options(selectinload(Client.vehicles))
        .where(Client.id == client_id)
        .execution_options(populate_existing=True)
    )
    client = result.scalar_one_or_none()
    if client is None:
        raise NotFoundError("Client", str(client_id))
    return client


@router.post("/", response_model=ClientResponse, status_code=201)
async def create_client(client_data: ClientCreate, db: DbSession):
    """Create a client. Without a phone the client's vehicles are never reminded."""
    client = Client(**client_data.model_dump())
    db.add(client)
    await db.commit()
    await db.refresh(client)

    if client.phone is None:
        logger.info("Created client %s without a phone", client.id)
    else:
        logger.info("Created client %s", client.id)
    return client
