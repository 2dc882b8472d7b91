import uuid
from decimal import Decimal

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from renolink.api.deps import get_db, require_role
from renolink.common.enums import UserRole
from renolink.common.events import emit, user_topic
from renolink.core.ledger.pricing import CREDIT_PACKAGES
from renolink.core.ledger.schemas import CreditPackage
from renolink.core.ledger.service import LedgerService
from renolink.db.models.transaction import CreditTransaction
from renolink.db.models.user import User

router = APIRouter(prefix="/credits", tags=["Credits"])

ledger = LedgerService()


# ---------- Schemas ----------


class PurchaseRequest(BaseModel):
    package_id: str


class TransactionResponse(BaseModel):
    id: uuid.UUID
    type: str
    credit_amount: int
    credit_delta: int
    cost: Decimal
    package_id: str | None
    related_project_id: uuid.UUID | None
    reference: str | None
    created_at: str

    @classmethod
    def from_transaction(cls, tx: CreditTransaction) -> "TransactionResponse":
        return cls(
            id=tx.id,
            type=tx.type,
            credit_amount=tx.credit_amount,
            credit_delta=tx.credit_delta,
            cost=tx.cost,
            package_id=tx.package_id,
            related_project_id=tx.related_project_id,
            reference=tx.reference,
            created_at=tx.created_at.isoformat(),
        )


class PurchaseResponse(BaseModel):
    transaction: TransactionResponse
    credit_balance: int


class BalanceResponse(BaseModel):
    credit_balance: int
    unlocked_projects: int


# ---------- Endpoints ----------


@router.get("/packages", response_model=list[CreditPackage])
async def list_packages():
    return CREDIT_PACKAGES


@router.get("/balance", response_model=BalanceResponse)
async def get_balance(
    current_user: User = Depends(require_role(UserRole.CONTRACTOR)),
    db: AsyncSession = Depends(get_db),
):
    unlocks = await ledger.get_contractor_unlocks(db, current_user.id)
    return BalanceResponse(credit_balance=current_user.credit_balance, unlocked_projects=len(unlocks))


@router.post("/purchase", response_model=PurchaseResponse, status_code=201)
async def purchase_credits(
    body: PurchaseRequest,
    current_user: User = Depends(require_role(UserRole.CONTRACTOR)),
    db: AsyncSession = Depends(get_db),
):
    tx = await ledger.buy_credits(db, current_user.id, body.package_id)

    emit(db, user_topic(current_user.id), "credits.balance_changed", {
        "credit_balance": current_user.credit_balance,
        "delta": tx.credit_delta,
        "reason": "purchase",
        "package_id": tx.package_id,
    })
    return PurchaseResponse(
        transaction=TransactionResponse.from_transaction(tx),
        credit_balance=current_user.credit_balance,
    )


@router.get("/transactions", response_model=list[TransactionResponse])
async def list_transactions(
    current_user: User = Depends(require_role(UserRole.CONTRACTOR)),
    db: AsyncSession = Depends(get_db),
):
    transactions = await ledger.list_transactions(db, current_user.id)
    return [TransactionResponse.from_transaction(tx) for tx in transactions]
