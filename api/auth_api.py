import logging
from datetime import timedelta

from fastapi import HTTPException, APIRouter, status
from sqlalchemy.exc import IntegrityError

from core.auth import verify_password, create_access_token
from core.depends import AsyncDBSession, AuthenticatedContext
from core.settings import settings
from crud.user_crud import user_crud as UserCrud
from schemas.user_schema import RegisterResponse, Token, UserCreate, UserLogin, UserResponse

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["auth"]
)

DUPLICATE_EMAIL = "User with this email already exists"


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(
    session: AsyncDBSession,
    user_data: UserCreate
):
    try:
        existing_user = await UserCrud.get_user_by_email(session, user_data.email)
        if existing_user:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=DUPLICATE_EMAIL)

        user = await UserCrud.create_user(session, user_data.model_dump())
        await session.commit()
        logger.info(f"User {user.uuid} registered")

        return RegisterResponse(user=UserResponse.model_validate(user))

    except HTTPException:
        raise
    except IntegrityError:
        await session.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=DUPLICATE_EMAIL)
    except Exception:
        await session.rollback()
        logger.exception("Error registering user")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create user"
        )


@router.post("/login", response_model=Token)
async def login(
    session: AsyncDBSession,
    credentials: UserLogin
):
    """Authenticate user and return access token."""
    try:
        user = await UserCrud.get_user_by_email(session, credentials.email)
        if not user or not verify_password(credentials.password, user.hashed_password):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Incorrect email or password",
                headers={"WWW-Authenticate": "Bearer"},
            )

        access_token = create_access_token(
            data={"sub": str(user.uuid), "role": user.role.value},
            expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        )
        return Token(access_token=access_token, token_type="bearer")

    except HTTPException:
        raise
    except Exception:
        logger.exception("Error authenticating user")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to authenticate user"
        )


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    context: AuthenticatedContext
):
    return UserResponse.model_validate(context.user)
