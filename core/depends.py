import logging
from dataclasses import dataclass
from typing import Annotated, AsyncGenerator, Optional
from uuid import UUID

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette import status
from typing_extensions import TypeAlias

from core.async_engine import AsyncSessionLocal
from core.auth import bearer_scheme, decode_access_token
from core.permissions import Role
from core.rate_limit import ProcedureRateLimiter, VoteRateLimiter, WindowRateLimiter
from core.settings import settings
from models import UserModel

logger = logging.getLogger(__name__)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        yield session

AsyncDBSession: TypeAlias = Annotated[AsyncSession, Depends(get_session)]


@dataclass
class RequestContext:
    """Who is calling and from where, resolved once per request."""

    user: Optional[UserModel]
    ip_address: str
    user_agent: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def user_id(self) -> Optional[int]:
        return self.user.id if self.user else None

    @property
    def role(self) -> Optional[Role]:
        return Role(self.user.role) if self.user else None


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for") if settings.TRUST_PROXY_HEADERS else None
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client and request.client.host:
        return request.client.host
    return "0.0.0.0"


async def get_optional_user(
    session: AsyncDBSession,
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)],
) -> Optional[UserModel]:
    if credentials is None:
        return None

    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    token = credentials.credentials
    if not token or token.strip() == "":
        raise credentials_exception

    try:
        payload = decode_access_token(token)
        user_uuid = UUID(payload.get("sub"))
    except JWTError:
        raise credentials_exception
    except (TypeError, ValueError):
        logger.warning("Rejected token with a malformed subject")
        raise credentials_exception

    # The role claim is informational; the stored role is authoritative
    stmt = select(UserModel).where(UserModel.uuid == user_uuid)
    result = await session.execute(stmt)
    user = result.scalars().first()

    if user is None:
        raise credentials_exception

    return user


async def get_request_context(
    request: Request,
    user: Annotated[Optional[UserModel], Depends(get_optional_user)],
) -> RequestContext:
    return RequestContext(
        user=user,
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )

OptionalContext: TypeAlias = Annotated[RequestContext, Depends(get_request_context)]


async def get_authenticated_context(context: OptionalContext) -> RequestContext:
    if not context.is_authenticated:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return context

AuthenticatedContext: TypeAlias = Annotated[RequestContext, Depends(get_authenticated_context)]


def get_vote_rate_limiter(session: AsyncDBSession) -> VoteRateLimiter:
    procedure = settings.VOTE_RATE_LIMIT_PROCEDURE
    if procedure and session.bind is not None and session.bind.dialect.name == "postgresql":
        return ProcedureRateLimiter(procedure)
    return WindowRateLimiter(
        max_votes=settings.VOTE_RATE_LIMIT_MAX_VOTES,
        window_seconds=settings.VOTE_RATE_LIMIT_WINDOW_SECONDS,
    )

VoteRateLimiterDep: TypeAlias = Annotated[VoteRateLimiter, Depends(get_vote_rate_limiter)]
