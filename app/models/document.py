from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin


class LocalDocument(Base, TimestampMixin):
    """기기 로컬 문서 저장소의 한 항목 (키 하나에 직렬화된 컬렉션 전체)"""

    __tablename__ = "local_documents"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    payload: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
