import uuid
from decimal import Decimal

from pydantic import BaseModel, computed_field


class CreditPackage(BaseModel):
    id: str
    name: str
    credits: int
    price: Decimal

    @computed_field
    @property
    def price_per_credit(self) -> Decimal:
        return (self.price / self.credits).quantize(Decimal("0.01"))


class LedgerReconciliation(BaseModel):
    contractor_id: uuid.UUID
    balance: int
    ledger_total: int
    transaction_count: int

    @computed_field
    @property
    def drift(self) -> int:
        return self.balance - self.ledger_total

    @property
    def is_consistent(self) -> bool:
        return self.drift == 0
