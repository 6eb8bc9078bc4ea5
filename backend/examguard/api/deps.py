from fastapi import Depends
from fastapi.requests import HTTPConnection
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_async_db
from ..services.session_store import SessionStore
from ..services.session_lifecycle import SessionLifecycleManager
from ..services.violation_service import ViolationService
from ..services.broadcast_hub import BroadcastHub


def get_hub(connection: HTTPConnection) -> BroadcastHub:
    return connection.app.state.hub


def get_store(db: AsyncSession = Depends(get_async_db)) -> SessionStore:
    return SessionStore(db)


def get_lifecycle(store: SessionStore = Depends(get_store)) -> SessionLifecycleManager:
    return SessionLifecycleManager(store)


def get_violation_service(
    store: SessionStore = Depends(get_store),
    lifecycle: SessionLifecycleManager = Depends(get_lifecycle),
    hub: BroadcastHub = Depends(get_hub),
) -> ViolationService:
    return ViolationService(store, lifecycle, hub)
