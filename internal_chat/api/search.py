"""
Organization directory and search endpoints.

- GET /org-members: people who can be added to channels and topics
- GET /search?q=: message content search across the organization
- GET /search-linkable?type=&q=: tasks, meetings, projects or deals by title
"""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from internal_chat.core.auth import AuthenticatedUser, get_authenticated_user
from internal_chat.core.database import get_session
from internal_chat.schemas.channels import OrgMemberRead
from internal_chat.schemas.common import LinkType
from internal_chat.schemas.messages import SearchResult
from internal_chat.schemas.topics import LinkableItem
from internal_chat.services.messages import search_messages
from internal_chat.services.organizations import get_user_org, list_org_members
from internal_chat.services.topics import search_linkable

router = APIRouter()


@router.get("/org-members", response_model=List[OrgMemberRead])
async def org_members_endpoint(
    auth: AuthenticatedUser = Depends(get_authenticated_user),
    session: AsyncSession = Depends(get_session),
):
    org_id = await get_user_org(session, auth.user_id)
    if not org_id:
        return []
    return await list_org_members(session, org_id)


@router.get("/search", response_model=List[SearchResult])
async def search_endpoint(
    q: Optional[str] = None,
    auth: AuthenticatedUser = Depends(get_authenticated_user),
    session: AsyncSession = Depends(get_session),
):
    """Search message content (queries shorter than two characters return nothing)."""
    org_id = await get_user_org(session, auth.user_id)
    if not org_id:
        return []
    return await search_messages(session, org_id, q)


@router.get("/search-linkable", response_model=List[LinkableItem])
async def search_linkable_endpoint(
    link_type: Optional[str] = Query(None, alias="type"),
    q: str = "",
    auth: AuthenticatedUser = Depends(get_authenticated_user),
    session: AsyncSession = Depends(get_session),
):
    org_id = await get_user_org(session, auth.user_id)
    if not org_id:
        return []
    try:
        kind = LinkType(link_type)
    except ValueError:
        return []
    return await search_linkable(session, org_id, kind, q)
