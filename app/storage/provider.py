import logging

from app.core.config import settings
from app.models.base import get_engine
from app.storage.fallback import FallbackStorage
from app.storage.local import LocalStorage
from app.storage.remote import RemoteStorage

logger = logging.getLogger(__name__)

_storage: FallbackStorage | None = None


def build_storage() -> FallbackStorage:
    """설정에 따라 저장소 구성 (원격 저장소가 설정된 경우에만 원격 우선)"""
    local = LocalStorage(get_engine())
    remote = None
    if settings.remote_store_configured:
        remote = RemoteStorage(
            settings.remote_store_url,
            auth=settings.remote_store_auth,
            timeout=settings.remote_store_timeout,
        )
    logger.info(f"저장소 구성: remote_configured={remote is not None}")
    return FallbackStorage(local, remote)


async def get_storage() -> FallbackStorage:
    """저장소 싱글톤 (FastAPI 의존성)"""
    global _storage
    if _storage is None:
        storage = build_storage()
        await storage.initialize()
        _storage = storage
    return _storage


async def close_storage() -> None:
    global _storage
    if _storage is not None:
        await _storage.close()
        _storage = None
