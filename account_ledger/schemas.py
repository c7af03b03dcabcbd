"""Pydantic schemas for API request/response validation"""

from datetime import datetime
from decimal import Decimal
from typing import Optional, List, Dict
from pydantic import BaseModel, Field


# ============ User Schemas ============

class UserCreate(BaseModel):
    pubkey: str = Field(min_length=1, max_length=255)


class UserResponse(BaseModel):
    id: int
    pubkey: str
    subscriptions: Dict[str, List[str]] = Field(default_factory=dict)

    class Config:
        from_attributes = True


class UserWithApiKeyResponse(UserResponse):
    api_key: Optional[str] = None


# ============ Subscription Schemas ============

class SubscriptionPayload(BaseModel):
    method: str  # subscribe<Name> | unsubscribe<Name>
    keys: Optional[List[str]] = None


# ============ Usage Schemas ============

class TransactionResponse(BaseModel):
    id: int
    package_id: int
    amount_usdc: Decimal
    created_at: datetime

    class Config:
        from_attributes = True


class UsageResponse(BaseModel):
    remaining_credits: int
    last_transaction: Optional[TransactionResponse] = None
    total_spent_usdc: Decimal

    class Config:
        from_attributes = True


# ============ Credit Schemas ============

class BuyCreditsRequest(BaseModel):
    pubkey: str
    package_id: int


class RefundCreditsRequest(BaseModel):
    pubkey: str
    amount: int = Field(gt=0)


class PurchaseResponse(BaseModel):
    transaction_id: int
    package_id: int
    created_at: datetime
    remaining_credits: int


class CreditBalanceResponse(BaseModel):
    pubkey: str
    remaining_credits: int
