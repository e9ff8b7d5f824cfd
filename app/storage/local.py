import asyncio
import json
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from app.crud import document as document_crud
from app.exceptions import StorageError
from app.models.base import Base, create_session_factory
from app.schemas.quiz import Participant, Quiz
from app.storage.base import StorageBackend

logger = logging.getLogger(__name__)

QUIZZES_KEY = "quizzes"


class LocalStorage(StorageBackend):
    """기기 로컬 저장소 (SQLite 문서 한 건에 퀴즈 컬렉션 전체를 직렬화)

    모든 변경은 컬렉션 전체를 읽고 수정한 뒤 통째로 덮어쓴다.
    """

    name = "local"

    def __init__(self, engine: AsyncEngine, collection_key: str = QUIZZES_KEY):
        self._engine = engine
        self._session_factory = create_session_factory(engine)
        self._collection_key = collection_key
        # 읽기-수정-덮어쓰기 사이에 다른 변경이 끼어들지 않도록 직렬화
        self._lock = asyncio.Lock()

    async def initialize(self) -> None:
        """로컬 테이블 생성"""
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def _load(self, session: AsyncSession) -> list[Quiz]:
        document = await document_crud.get_document(session, self._collection_key)
        if document is None:
            return []
        return [Quiz.model_validate(item) for item in json.loads(document.payload)]

    async def _save(self, session: AsyncSession, quizzes: list[Quiz]) -> None:
        payload = json.dumps(
            [quiz.model_dump(by_alias=True, mode="json") for quiz in quizzes],
            ensure_ascii=False,
        )
        await document_crud.save_document(session, self._collection_key, payload)

    async def list_quizzes(self) -> list[Quiz]:
        try:
            async with self._session_factory() as session:
                return await self._load(session)
        except SQLAlchemyError as e:
            raise StorageError(f"로컬 저장소 조회 실패: {e.__class__.__name__}") from e

    async def get_quiz(self, quiz_id: str) -> Quiz | None:
        for quiz in await self.list_quizzes():
            if quiz.id == quiz_id:
                return quiz
        return None

    async def put_quiz(self, quiz: Quiz) -> bool:
        async with self._lock:
            try:
                async with self._session_factory() as session:
                    quizzes = await self._load(session)
                    replaced = False
                    for i, existing in enumerate(quizzes):
                        if existing.id == quiz.id:
                            quizzes[i] = quiz
                            replaced = True
                            break
                    if not replaced:
                        quizzes.append(quiz)
                    await self._save(session, quizzes)
            except SQLAlchemyError as e:
                logger.error(f"로컬 퀴즈 저장 실패: quiz_id={quiz.id}, error={e.__class__.__name__}", exc_info=True)
                return False
        return True

    async def append_participant(self, quiz_id: str, participant: Participant) -> bool:
        async with self._lock:
            try:
                async with self._session_factory() as session:
                    quizzes = await self._load(session)
                    quiz = next((q for q in quizzes if q.id == quiz_id), None)
                    if quiz is None:
                        logger.warning(f"로컬 저장소에 퀴즈가 없습니다: quiz_id={quiz_id}")
                        return False
                    quiz.participants.append(participant)
                    await self._save(session, quizzes)
            except SQLAlchemyError as e:
                logger.error(f"로컬 참가자 기록 실패: quiz_id={quiz_id}, error={e.__class__.__name__}", exc_info=True)
                return False
        return True

    async def close(self) -> None:
        await self._engine.dispose()
