"""
Dependency injection for FastAPI routes.

Provides typed service dependencies that enable IDE navigation (Ctrl+Click).
"""

from typing import Annotated
from fastapi import Request, Depends

from mitr.services.catalog import CatalogCache
from mitr.services.conversation import ConversationService
from mitr.services.sessions import SessionStore


def get_catalog_cache(request: Request) -> CatalogCache:
    return request.app.state.catalog


def get_session_store(request: Request) -> SessionStore:
    return request.app.state.sessions


def get_conversation_service(request: Request) -> ConversationService:
    return request.app.state.conversation_service


CatalogCacheDep = Annotated[CatalogCache, Depends(get_catalog_cache)]
SessionStoreDep = Annotated[SessionStore, Depends(get_session_store)]
ConversationServiceDep = Annotated[ConversationService, Depends(get_conversation_service)]
