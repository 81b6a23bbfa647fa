"""Per-request wiring.

An authenticating front end sits in front of this service. It forwards the
shared ``X-API-Key`` and the id of the logged-in customer in ``X-User-Id``.
Everything a handler needs about the caller arrives through ``RequestContext``.
"""
import secrets
from dataclasses import dataclass
from fastapi import Depends, Header, HTTPException, status
from fastapi.security import APIKeyHeader
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from storefront.config import settings
from storefront.database import get_session_factory
from storefront.domain.models import User
from storefront.application.interfaces import PaymentGateway
from storefront.infrastructure.unit_of_work import UnitOfWork
from storefront.infrastructure.http_clients import HTTPRazorpayClient

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


@dataclass(frozen=True)
class RequestContext:
    user: User

    @property
    def user_id(self) -> str:
        return self.user.id


def get_api_token() -> str:
    return settings.API_TOKEN


async def verify_api_key(
    api_key: str | None = Depends(api_key_header),
    expected: str = Depends(get_api_token)
) -> None:
    if not api_key or not expected or not secrets.compare_digest(api_key, expected):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid or missing X-API-Key header"
        )


def get_uow(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory)
) -> UnitOfWork:
    return UnitOfWork(session_factory)


def get_payment_gateway() -> PaymentGateway:
    return HTTPRazorpayClient(
        settings.RAZORPAY_BASE_URL,
        settings.RAZORPAY_KEY_ID,
        settings.RAZORPAY_KEY_SECRET
    )


async def get_request_context(
    x_user_id: str | None = Header(default=None),
    uow: UnitOfWork = Depends(get_uow)
) -> RequestContext:
    if not x_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not logged in")
    async with uow() as tx:
        user = await tx.users.get_by_id(x_user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not logged in")
    return RequestContext(user=user)


async def get_admin_context(
    ctx: RequestContext = Depends(get_request_context)
) -> RequestContext:
    if not ctx.user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admins only")
    return ctx
