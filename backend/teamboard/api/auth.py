from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status
from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from teamboard.api.deps import get_auth_context, get_settings, get_tokens
from teamboard.core.auth import AuthContext
from teamboard.core.errors import AuthenticationError, ConflictError, ValidationError
from teamboard.core.logging import get_logger
from teamboard.core.rate_limit import rate_limited
from teamboard.core.roles import Role
from teamboard.core.security import TokenClaims, hash_password, verify_password
from teamboard.core.time import utcnow
from teamboard.db import crud
from teamboard.db.session import get_session
from teamboard.models.users import User
from teamboard.schemas.auth import AuthResult, LoginRequest, PasswordUpdate, RegisterRequest, TokenCheck
from teamboard.schemas.common import ApiResponse, OkResponse, ok
from teamboard.schemas.users import UserRead
from teamboard.services.access import get_user_or_404
from teamboard.services.activity_log import record_activity

logger = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

INVALID_CREDENTIALS = "Invalid email or password"

auth_rate_limit = Depends(rate_limited("auth_limiter"))


def _to_user_read(user: User) -> UserRead:
    return UserRead.model_validate(user, from_attributes=True)


def _issue(request: Request, user: User) -> AuthResult:
    token = get_tokens(request).issue(TokenClaims(user_id=user.id, role=Role(user.role), email=user.email))
    return AuthResult(user=_to_user_read(user), access_token=token)


async def find_user_by_email(session: AsyncSession, email: str) -> User | None:
    statement = select(User).where(col(User.email) == email.strip().lower())
    return (await session.exec(statement)).first()


@router.post(
    "/register",
    response_model=ApiResponse[AuthResult],
    status_code=status.HTTP_201_CREATED,
    dependencies=[auth_rate_limit],
)
async def register(
    payload: RegisterRequest,
    request: Request,
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[AuthResult]:
    email = payload.email.strip().lower()
    if await find_user_by_email(session, email) is not None:
        raise ConflictError("User with this email already exists")

    user = User(
        email=email,
        password_hash=hash_password(payload.password, rounds=get_settings(request).bcrypt_rounds),
        first_name=payload.first_name.strip(),
        last_name=payload.last_name.strip(),
        role=Role.DEVELOPER.value,
        last_login=utcnow(),
    )
    await crud.save(session, user, commit=False)
    record_activity(
        session,
        actor_id=user.id,
        action="registered",
        entity_type="user",
        entity_id=user.id,
        new_values={"email": user.email, "role": user.role},
        request=request,
    )
    await crud.commit_or_conflict(session, "User with this email already exists")
    await session.refresh(user)
    logger.info("auth.registered user_id=%s", user.id)
    return ok(_issue(request, user), "User registered successfully")


@router.post("/login", response_model=ApiResponse[AuthResult], dependencies=[auth_rate_limit])
async def login(
    payload: LoginRequest,
    request: Request,
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[AuthResult]:
    user = await find_user_by_email(session, payload.email)
    if user is None or not verify_password(payload.password, user.password_hash):
        logger.info("auth.login_failed")
        raise AuthenticationError(INVALID_CREDENTIALS)
    if not user.is_active:
        raise AuthenticationError("Account is deactivated")

    user.last_login = utcnow()
    record_activity(
        session,
        actor_id=user.id,
        action="login",
        entity_type="user",
        entity_id=user.id,
        request=request,
    )
    await crud.save(session, user)
    return ok(_issue(request, user), "Login successful")


@router.get("/me", response_model=ApiResponse[UserRead])
async def me(
    auth: AuthContext = Depends(get_auth_context),
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[UserRead]:
    user = await get_user_or_404(session, auth.user_id)
    return ok(_to_user_read(user))


@router.put("/update-password", response_model=OkResponse)
async def update_password(
    payload: PasswordUpdate,
    request: Request,
    auth: AuthContext = Depends(get_auth_context),
    session: AsyncSession = Depends(get_session),
) -> OkResponse:
    user = await get_user_or_404(session, auth.user_id)
    if not verify_password(payload.current_password, user.password_hash):
        raise ValidationError.for_field("current_password", "Current password is incorrect")
    if payload.current_password == payload.new_password:
        raise ValidationError.for_field("new_password", "New password must be different from the current one")

    user.password_hash = hash_password(payload.new_password, rounds=get_settings(request).bcrypt_rounds)
    user.updated_at = utcnow()
    record_activity(
        session,
        actor_id=user.id,
        action="password_changed",
        entity_type="user",
        entity_id=user.id,
        request=request,
    )
    await crud.save(session, user)
    return OkResponse(message="Password updated successfully")


@router.post("/logout", response_model=OkResponse)
async def logout(auth: AuthContext = Depends(get_auth_context)) -> OkResponse:
    # Tokens are stateless; the client discards its copy.
    logger.info("auth.logout user_id=%s", auth.user_id)
    return OkResponse(message="Logged out successfully")


@router.get("/verify", response_model=ApiResponse[TokenCheck])
async def verify(auth: AuthContext = Depends(get_auth_context)) -> ApiResponse[TokenCheck]:
    return ok(TokenCheck(valid=True, user_id=auth.user_id, role=auth.role.value), "Token is valid")
