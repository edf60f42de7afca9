"""In-memory CRM collaborator used by the account responder."""

from __future__ import annotations

from pydantic import BaseModel, Field

from support_agent.utils.logging import get_logger

logger = get_logger(__name__)


class CustomerRecord(BaseModel):
    id: str
    name: str
    tier: str
    email: str
    balance: float


class CrmLookupRequest(BaseModel):
    customer_id: str = Field(min_length=1)


class CrmLookupResult(BaseModel):
    """`found=False` is a normal outcome, not an error."""

    found: bool
    customer: CustomerRecord | None = None


MOCK_CUSTOMERS: dict[str, CustomerRecord] = {
    "1001": CustomerRecord(
        id="1001",
        name="Aisha Al-Saud",
        tier="Gold",
        email="aisha@example.com",
        balance=1250.75,
    ),
    "1002": CustomerRecord(
        id="1002",
        name="Omar Al-Faisal",
        tier="Silver",
        email="omar@example.com",
        balance=-20.1,
    ),
}


class InMemoryCrm:
    """Key-value customer lookup standing in for a real CRM API."""

    def __init__(self, records: dict[str, CustomerRecord] | None = None) -> None:
        self._records = dict(MOCK_CUSTOMERS if records is None else records)

    def lookup(self, customer_id: str) -> CrmLookupResult:
        request = CrmLookupRequest(customer_id=customer_id)
        record = self._records.get(request.customer_id)

        logger.info(
            "CRM lookup",
            extra={"context": {"customer_id": request.customer_id, "found": record is not None}},
        )
        if record is None:
            return CrmLookupResult(found=False)
        return CrmLookupResult(found=True, customer=record)
