"""Credits API - package purchases and refunds"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from account_ledger.db import get_db
from account_ledger.schemas import (
    BuyCreditsRequest, RefundCreditsRequest, PurchaseResponse, CreditBalanceResponse
)
from account_ledger.services import PurchaseService

router = APIRouter(prefix="/credits", tags=["credits"])


@router.post("/buy", response_model=PurchaseResponse, status_code=status.HTTP_201_CREATED)
async def buy_credits(
    request: BuyCreditsRequest,
    db: AsyncSession = Depends(get_db),
):
    """Buy a package: records the transaction and adds its credits."""
    transaction, remaining = await PurchaseService(db).buy(request.pubkey, request.package_id)
    return PurchaseResponse(
        transaction_id=transaction.id,
        package_id=transaction.package_id,
        created_at=transaction.created_at,
        remaining_credits=remaining,
    )


@router.post("/refund", response_model=CreditBalanceResponse)
async def refund_credits(
    request: RefundCreditsRequest,
    db: AsyncSession = Depends(get_db),
):
    remaining = await PurchaseService(db).refund(request.pubkey, request.amount)
    return CreditBalanceResponse(pubkey=request.pubkey, remaining_credits=remaining)
