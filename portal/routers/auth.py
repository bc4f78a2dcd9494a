from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from portal.auth.identity import IdentityGateway, get_identity_gateway
from portal.auth.jwt import create_access_token, get_current_user
from portal.db import get_session
from portal.models import UserProfile, UserRole, SpocStatus
from portal.schemas.common import OperationResult
from portal.schemas.user import (
    UserLogin, Token, UserProfileResponse, ChangePasswordRequest, UserRegister, RegisterResult,
    RegisterSpocInput, CreateSpocResult
)
from portal.utils.spoc_utils import register_spoc
from portal.utils.team_utils import get_profile_by_email
from portal.utils.user_utils import register_user, change_password

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=RegisterResult)
async def register(
        data: UserRegister,
        session: AsyncSession = Depends(get_session),
        identity: IdentityGateway = Depends(get_identity_gateway)
):
    return await register_user(session, identity, data)


@router.post("/register-spoc", response_model=CreateSpocResult)
async def register_spoc_request(
        data: RegisterSpocInput,
        session: AsyncSession = Depends(get_session),
        identity: IdentityGateway = Depends(get_identity_gateway)
):
    """Заявка на роль SPOC; вход возможен после одобрения администратором"""
    return await register_spoc(session, identity, data)


@router.post("/login", response_model=Token)
async def login(
        user_data: UserLogin,
        session: AsyncSession = Depends(get_session),
        identity: IdentityGateway = Depends(get_identity_gateway)
):
    email = user_data.email.lower()
    account = await identity.authenticate(email, user_data.password)
    profile = await get_profile_by_email(session, email) if account else None

    if profile is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if profile.role == UserRole.SPOC.value and profile.spoc_status != SpocStatus.APPROVED.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Your SPOC request is still awaiting admin approval.",
        )

    access_token = create_access_token(data={"sub": profile.email})
    return {"access_token": access_token, "token_type": "bearer"}


@router.get("/me", response_model=UserProfileResponse)
async def read_users_me(current_user: UserProfile = Depends(get_current_user)):
    return current_user


@router.post("/change-password", response_model=OperationResult)
async def change_my_password(
        data: ChangePasswordRequest,
        current_user: UserProfile = Depends(get_current_user),
        session: AsyncSession = Depends(get_session),
        identity: IdentityGateway = Depends(get_identity_gateway)
):
    return await change_password(session, identity, current_user.uid, data.new_password)
