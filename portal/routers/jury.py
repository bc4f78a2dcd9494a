from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from portal.auth.identity import IdentityGateway, get_identity_gateway
from portal.auth.jwt import require_roles
from portal.db import get_session
from portal.models import UserProfile, UserRole
from portal.schemas.common import OperationResult
from portal.schemas.jury import CreateJuryPanelInput, CreateJuryPanelResult, UpdateJuryPanelInput, JuryPanelResponse
from portal.utils.jury_utils import (
    create_jury_panel, finalize_jury_panel, update_jury_panel, delete_jury_panel, assign_team_to_panel,
    list_jury_panels
)

router = APIRouter(prefix="/jury", tags=["jury"])

admin_only = require_roles(UserRole.ADMIN)


@router.get("/panels", response_model=List[JuryPanelResponse])
async def get_panels(
        _: UserProfile = Depends(admin_only),
        session: AsyncSession = Depends(get_session)
):
    return await list_jury_panels(session)


@router.post("/panels", response_model=CreateJuryPanelResult)
async def create_panel(
        data: CreateJuryPanelInput,
        _: UserProfile = Depends(admin_only),
        session: AsyncSession = Depends(get_session),
        identity: IdentityGateway = Depends(get_identity_gateway)
):
    return await create_jury_panel(session, identity, data)


@router.post("/panels/{panel_id}/finalize", response_model=CreateJuryPanelResult)
async def finalize_panel(
        panel_id: str,
        _: UserProfile = Depends(admin_only),
        session: AsyncSession = Depends(get_session),
        identity: IdentityGateway = Depends(get_identity_gateway)
):
    return await finalize_jury_panel(session, identity, panel_id)


@router.put("/panels/{panel_id}", response_model=OperationResult)
async def update_panel(
        panel_id: str,
        data: UpdateJuryPanelInput,
        _: UserProfile = Depends(admin_only),
        session: AsyncSession = Depends(get_session),
        identity: IdentityGateway = Depends(get_identity_gateway)
):
    return await update_jury_panel(session, identity, panel_id, data)


@router.delete("/panels/{panel_id}", response_model=OperationResult)
async def delete_panel(
        panel_id: str,
        _: UserProfile = Depends(admin_only),
        session: AsyncSession = Depends(get_session),
        identity: IdentityGateway = Depends(get_identity_gateway)
):
    return await delete_jury_panel(session, identity, panel_id)


@router.post("/panels/{panel_id}/teams/{team_id}", response_model=OperationResult)
async def assign_team(
        panel_id: str,
        team_id: str,
        _: UserProfile = Depends(admin_only),
        session: AsyncSession = Depends(get_session)
):
    return await assign_team_to_panel(session, team_id, panel_id)


@router.delete("/teams/{team_id}/panel", response_model=OperationResult)
async def unassign_team(
        team_id: str,
        _: UserProfile = Depends(admin_only),
        session: AsyncSession = Depends(get_session)
):
    return await assign_team_to_panel(session, team_id, None)
