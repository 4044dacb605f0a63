from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy import func
from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from teamboard.api.auth import find_user_by_email
from teamboard.api.deps import get_auth_context, get_settings, page_params, require_admin, require_privileged
from teamboard.core.auth import AuthContext
from teamboard.core.errors import AuthorizationError, ConflictError, ValidationError
from teamboard.core.roles import ADMIN_ONLY, Role, is_owner_or_privileged
from teamboard.core.security import hash_password
from teamboard.core.time import utcnow
from teamboard.db import crud
from teamboard.db.pagination import PageParams, paginate
from teamboard.db.session import get_session
from teamboard.models.users import User
from teamboard.schemas.common import ApiResponse, OkResponse, Page, ok
from teamboard.schemas.users import UserCreate, UserRead, UserRoleUpdate, UserStats, UserUpdate
from teamboard.services.access import get_user_or_404
from teamboard.services.activity_log import changed_values, record_activity
from teamboard.services.search import like_pattern, matches

router = APIRouter(prefix="/users", tags=["users"])

USER_SORT_COLUMNS = {
    "id": User.id,
    "email": User.email,
    "first_name": User.first_name,
    "last_name": User.last_name,
    "role": User.role,
    "created_at": User.created_at,
    "last_login": User.last_login,
}


def _to_user_read(user: User) -> UserRead:
    return UserRead.model_validate(user, from_attributes=True)


@router.get("", response_model=ApiResponse[Page[UserRead]])
async def list_users(
    role: Role | None = Query(default=None),
    is_active: bool | None = Query(default=None),
    search: str | None = Query(default=None, max_length=100),
    params: PageParams = Depends(page_params),
    session: AsyncSession = Depends(get_session),
    _auth: AuthContext = Depends(require_privileged),
) -> ApiResponse[Page[UserRead]]:
    statement = select(User)
    if role is not None:
        statement = statement.where(col(User.role) == role.value)
    if is_active is not None:
        statement = statement.where(col(User.is_active).is_(is_active))
    if search:
        statement = statement.where(
            matches(like_pattern(search.strip()), (User.first_name, User.last_name, User.email))
        )
    page = await paginate(
        session,
        statement,
        params,
        sort_columns=USER_SORT_COLUMNS,
        transformer=lambda rows: [_to_user_read(row) for row in rows],
    )
    return ok(page)


@router.get("/stats", response_model=ApiResponse[UserStats])
async def user_stats(
    session: AsyncSession = Depends(get_session),
    _auth: AuthContext = Depends(require_privileged),
) -> ApiResponse[UserStats]:
    by_role = {role.value: 0 for role in Role}
    statement = select(User.role, func.count()).group_by(User.role)
    for role, count in await session.exec(statement):
        by_role[role] = int(count)
    active_statement = select(func.count()).select_from(User).where(col(User.is_active).is_(True))
    active = int((await session.exec(active_statement)).one())
    total = sum(by_role.values())
    return ok(UserStats(total=total, active=active, inactive=total - active, by_role=by_role))


@router.post("", response_model=ApiResponse[UserRead], status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: UserCreate,
    request: Request,
    session: AsyncSession = Depends(get_session),
    auth: AuthContext = Depends(require_privileged),
) -> ApiResponse[UserRead]:
    if auth.role == Role.MANAGER and payload.role != Role.DEVELOPER:
        raise AuthorizationError("Managers can only create developer accounts")
    email = payload.email.strip().lower()
    if await find_user_by_email(session, email) is not None:
        raise ConflictError("User with this email already exists")

    user = User(
        email=email,
        password_hash=hash_password(payload.password, rounds=get_settings(request).bcrypt_rounds),
        first_name=payload.first_name,
        last_name=payload.last_name,
        role=payload.role.value,
        avatar_url=payload.avatar_url,
    )
    await crud.save(session, user, commit=False)
    record_activity(
        session,
        actor_id=auth.user_id,
        action="created",
        entity_type="user",
        entity_id=user.id,
        new_values={"email": user.email, "role": user.role},
        request=request,
    )
    await crud.commit_or_conflict(session, "User with this email already exists")
    await session.refresh(user)
    return ok(_to_user_read(user), "User created successfully")


@router.get("/{user_id}", response_model=ApiResponse[UserRead])
async def get_user(
    user_id: int,
    session: AsyncSession = Depends(get_session),
    auth: AuthContext = Depends(get_auth_context),
) -> ApiResponse[UserRead]:
    if not is_owner_or_privileged(user_id=auth.user_id, role=auth.role, owner_id=user_id):
        raise AuthorizationError("You can only view your own profile")
    user = await get_user_or_404(session, user_id)
    return ok(_to_user_read(user))


@router.put("/{user_id}", response_model=ApiResponse[UserRead])
async def update_user(
    user_id: int,
    payload: UserUpdate,
    request: Request,
    session: AsyncSession = Depends(get_session),
    auth: AuthContext = Depends(get_auth_context),
) -> ApiResponse[UserRead]:
    if not is_owner_or_privileged(user_id=auth.user_id, role=auth.role, owner_id=user_id):
        raise AuthorizationError("You can only update your own profile")
    user = await get_user_or_404(session, user_id)
    updates = payload.model_dump(exclude_unset=True)
    for key in ("email", "first_name", "last_name"):
        if key in updates and updates[key] is None:
            updates.pop(key)
    if not updates:
        raise ValidationError("No valid fields to update")
    if "email" in updates:
        updates["email"] = updates["email"].strip().lower()
        existing = await find_user_by_email(session, updates["email"])
        if existing is not None and existing.id != user.id:
            raise ConflictError("User with this email already exists")

    old_values, new_values = changed_values(user.model_dump(), updates)
    for key, value in updates.items():
        setattr(user, key, value)
    user.updated_at = utcnow()
    record_activity(
        session,
        actor_id=auth.user_id,
        action="updated",
        entity_type="user",
        entity_id=user.id,
        old_values=old_values,
        new_values=new_values,
        request=request,
    )
    await crud.save(session, user)
    return ok(_to_user_read(user), "User updated successfully")


@router.delete("/{user_id}", response_model=OkResponse)
async def deactivate_user(
    user_id: int,
    request: Request,
    session: AsyncSession = Depends(get_session),
    auth: AuthContext = Depends(get_auth_context),
) -> OkResponse:
    if not is_owner_or_privileged(user_id=auth.user_id, role=auth.role, owner_id=user_id, privileged=ADMIN_ONLY):
        raise AuthorizationError("Only an admin can deactivate other users")
    user = await get_user_or_404(session, user_id)
    if user.is_active:
        user.is_active = False
        user.updated_at = utcnow()
        record_activity(
            session,
            actor_id=auth.user_id,
            action="deactivated",
            entity_type="user",
            entity_id=user.id,
            old_values={"is_active": True},
            new_values={"is_active": False},
            request=request,
        )
        await crud.save(session, user)
    return OkResponse(message="User deactivated successfully")


@router.post("/{user_id}/reactivate", response_model=ApiResponse[UserRead])
async def reactivate_user(
    user_id: int,
    request: Request,
    session: AsyncSession = Depends(get_session),
    auth: AuthContext = Depends(require_admin),
) -> ApiResponse[UserRead]:
    user = await get_user_or_404(session, user_id)
    if not user.is_active:
        user.is_active = True
        user.updated_at = utcnow()
        record_activity(
            session,
            actor_id=auth.user_id,
            action="reactivated",
            entity_type="user",
            entity_id=user.id,
            old_values={"is_active": False},
            new_values={"is_active": True},
            request=request,
        )
        await crud.save(session, user)
    return ok(_to_user_read(user), "User reactivated successfully")


@router.put("/{user_id}/role", response_model=ApiResponse[UserRead])
async def change_role(
    user_id: int,
    payload: UserRoleUpdate,
    request: Request,
    session: AsyncSession = Depends(get_session),
    auth: AuthContext = Depends(require_admin),
) -> ApiResponse[UserRead]:
    if user_id == auth.user_id:
        raise ValidationError.for_field("role", "You cannot change your own role")
    user = await get_user_or_404(session, user_id)
    previous = user.role
    user.role = payload.role.value
    user.updated_at = utcnow()
    record_activity(
        session,
        actor_id=auth.user_id,
        action="role_changed",
        entity_type="user",
        entity_id=user.id,
        old_values={"role": previous},
        new_values={"role": user.role},
        request=request,
    )
    await crud.save(session, user)
    return ok(_to_user_read(user), "User role updated successfully")
