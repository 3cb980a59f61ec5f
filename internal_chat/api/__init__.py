"""
Internal chat API router.

Every route below requires an authenticated caller; the authentication
dependency runs before any handler.
"""

from fastapi import APIRouter, Depends

from internal_chat.core.auth import get_authenticated_user

from . import channels, messages, search, topics

router = APIRouter(dependencies=[Depends(get_authenticated_user)])

router.include_router(channels.router, prefix="/channels", tags=["Channels"])
router.include_router(topics.router, tags=["Topics"])
router.include_router(messages.router, tags=["Messages"])
router.include_router(search.router, tags=["Search"])
