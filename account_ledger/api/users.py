"""
Users API - identity, subscription document and usage report

Users are addressed by their public key; the internal id never appears in a
path.
"""

from typing import List

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncSession

from account_ledger.db import get_db
from account_ledger.schemas import (
    UserCreate, UserResponse, UserWithApiKeyResponse, SubscriptionPayload, UsageResponse
)
from account_ledger.services import UserDirectory, SubscriptionStore, UsageReporter

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    request: UserCreate,
    response: Response,
    db: AsyncSession = Depends(get_db),
):
    """
    Register a public key.

    Returns 201 with the new user, or 200 with the existing row when the
    pubkey is already known.
    """
    user, created = await UserDirectory(db).resolve_or_create(request.pubkey)
    if not created:
        response.status_code = status.HTTP_200_OK
    return user


@router.get("", response_model=List[UserResponse])
async def list_users(db: AsyncSession = Depends(get_db)):
    return await UserDirectory(db).list()


@router.get("/{pubkey}", response_model=UserWithApiKeyResponse)
async def get_user(pubkey: str, db: AsyncSession = Depends(get_db)):
    """Get a user by public key, including the API key from its credits row."""
    user, api_key = await UserDirectory(db).find_with_api_key(pubkey)
    return UserWithApiKeyResponse(
        id=user.id,
        pubkey=user.pubkey,
        subscriptions=user.subscriptions or {},
        api_key=api_key,
    )


@router.patch("/{pubkey}", response_class=PlainTextResponse)
async def manage_subscription(
    pubkey: str,
    request: SubscriptionPayload,
    db: AsyncSession = Depends(get_db),
):
    """Apply a subscribe<Name> / unsubscribe<Name> instruction."""
    confirmed = await SubscriptionStore(db).mutate(pubkey, request.method, request.keys)
    return f"Subscriptions updated for user: {confirmed}"


@router.get("/{pubkey}/usage", response_model=UsageResponse)
async def get_usage(pubkey: str, db: AsyncSession = Depends(get_db)):
    """Remaining credits, last purchase and total USDC spent."""
    return await UsageReporter(db).summarize(pubkey)
