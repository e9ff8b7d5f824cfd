import inspect
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from app.schemas.quiz import Participant, Quiz

QuizzesCallback = Callable[[list[Quiz]], Awaitable[None] | None]


@dataclass(frozen=True)
class SubscriptionHandle:
    """구독 해제에 사용하는 핸들"""
    backend: str
    id: str = field(default_factory=lambda: uuid.uuid4().hex)


async def notify(callback: Callable[..., Awaitable[None] | None], *args: Any) -> None:
    """동기/비동기 콜백 모두 호출"""
    result = callback(*args)
    if inspect.isawaitable(result):
        await result


class StorageBackend(ABC):
    """퀴즈 컬렉션 문서 저장소 인터페이스

    쓰기 연산은 성공 여부(bool)를 반환한다. 전송 계층 오류는 StorageError로 올린다.
    """

    name: str = "storage"

    @abstractmethod
    async def put_quiz(self, quiz: Quiz) -> bool:
        ...

    @abstractmethod
    async def list_quizzes(self) -> list[Quiz]:
        ...

    @abstractmethod
    async def get_quiz(self, quiz_id: str) -> Quiz | None:
        ...

    @abstractmethod
    async def append_participant(self, quiz_id: str, participant: Participant) -> bool:
        ...

    async def find_quiz_by_code(self, code: str) -> Quiz | None:
        """코드 완전 일치 선형 탐색 (중복 코드는 먼저 나온 퀴즈)"""
        for quiz in await self.list_quizzes():
            if quiz.code == code:
                return quiz
        return None

    async def subscribe_to_quizzes(self, callback: QuizzesCallback) -> SubscriptionHandle:
        """컬렉션 변경 구독 (기본 구현은 아무것도 하지 않음)"""
        return SubscriptionHandle(backend=self.name)

    async def unsubscribe(self, handle: SubscriptionHandle) -> None:
        return None

    async def close(self) -> None:
        return None
