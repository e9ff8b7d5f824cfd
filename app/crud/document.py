from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.document import LocalDocument


async def get_document(session: AsyncSession, key: str) -> LocalDocument | None:
    """키로 로컬 문서 조회"""
    result = await session.execute(select(LocalDocument).where(LocalDocument.key == key))
    return result.scalar_one_or_none()


async def save_document(session: AsyncSession, key: str, payload: str) -> LocalDocument:
    """로컬 문서 전체 덮어쓰기 (없으면 생성)"""
    document = await get_document(session, key)
    if document is None:
        document = LocalDocument(key=key, payload=payload)
        session.add(document)
    else:
        document.payload = payload

    await session.commit()
    await session.refresh(document)
    return document
