import logging
from typing import Any

from app.schemas.quiz import Participant, Quiz
from app.storage.base import QuizzesCallback, StorageBackend, SubscriptionHandle
from app.storage.local import LocalStorage

logger = logging.getLogger(__name__)


class FallbackStorage(StorageBackend):
    """원격 저장소를 먼저 시도하고, 오류가 나면 같은 호출을 로컬 저장소로 재시도

    원격 저장소가 설정되지 않았으면 로컬 저장소만 사용한다. 호출자는 어느 백엔드가
    처리했는지 알 수 없고 로컬 시도의 결과가 그대로 최종 결과가 된다.
    """

    name = "fallback"

    def __init__(self, local: LocalStorage, remote: StorageBackend | None = None):
        self._local = local
        self._remote = remote

    @property
    def remote_configured(self) -> bool:
        return self._remote is not None

    async def initialize(self) -> None:
        await self._local.initialize()

    async def _call(self, operation: str, *args: Any) -> Any:
        if self._remote is not None:
            try:
                return await getattr(self._remote, operation)(*args)
            except Exception as e:
                logger.warning(
                    f"원격 저장소 {operation} 실패, 로컬 저장소로 재시도: {e.__class__.__name__}: {e}"
                )
        return await getattr(self._local, operation)(*args)

    async def put_quiz(self, quiz: Quiz) -> bool:
        return await self._call("put_quiz", quiz)

    async def list_quizzes(self) -> list[Quiz]:
        return await self._call("list_quizzes")

    async def get_quiz(self, quiz_id: str) -> Quiz | None:
        return await self._call("get_quiz", quiz_id)

    async def find_quiz_by_code(self, code: str) -> Quiz | None:
        return await self._call("find_quiz_by_code", code)

    async def append_participant(self, quiz_id: str, participant: Participant) -> bool:
        return await self._call("append_participant", quiz_id, participant)

    async def subscribe_to_quizzes(self, callback: QuizzesCallback) -> SubscriptionHandle:
        return await self._call("subscribe_to_quizzes", callback)

    async def unsubscribe(self, handle: SubscriptionHandle) -> None:
        if self._remote is not None and handle.backend == self._remote.name:
            await self._remote.unsubscribe(handle)
        else:
            await self._local.unsubscribe(handle)

    async def close(self) -> None:
        if self._remote is not None:
            await self._remote.close()
        await self._local.close()
