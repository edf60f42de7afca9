"""In-memory ticketing collaborator used by the billing responder."""

from __future__ import annotations

import uuid
from typing import Literal

from pydantic import BaseModel, Field

from support_agent.utils.logging import get_logger

logger = get_logger(__name__)

Priority = Literal["low", "medium", "high"]


class TicketRequest(BaseModel):
    customer_id: str = Field(min_length=1)
    subject: str = Field(min_length=3)
    description: str = Field(min_length=3)
    priority: Priority = "low"


class Ticket(TicketRequest):
    id: str
    status: Literal["open"] = "open"


class InMemoryTicketing:
    """Creates tickets with fresh UUIDs and keeps them for inspection."""

    def __init__(self) -> None:
        self.tickets: list[Ticket] = []

    def create(self, request: TicketRequest) -> Ticket:
        ticket = Ticket(id=str(uuid.uuid4()), **request.model_dump())
        self.tickets.append(ticket)

        logger.info(
            "Ticket created",
            extra={
                "context": {
                    "ticket_id": ticket.id,
                    "customer_id": ticket.customer_id,
                    "priority": ticket.priority,
                }
            },
        )
        return ticket
