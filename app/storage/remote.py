import asyncio
import logging
from typing import Any

import httpx
from pydantic import ValidationError as SchemaValidationError

from app.exceptions import StorageError
from app.schemas.quiz import Participant, Quiz
from app.storage.base import QuizzesCallback, StorageBackend, SubscriptionHandle, notify

logger = logging.getLogger(__name__)

QUIZZES_PATH = "quizzes"
# 컬렉션이 바뀌었음을 뜻하는 스트리밍 이벤트
CHANGE_EVENTS = {"put", "patch"}
CLOSE_EVENTS = {"cancel", "auth_revoked"}


class RemoteStorage(StorageBackend):
    """공유 원격 문서 저장소 (경로 기반 JSON REST: GET/PUT/POST {path}.json)

    퀴즈는 quizzes/{id} 문서 단위로 쓰고, 참가자 기록은 quizzes/{id}/participants 아래에
    개별 항목으로 추가한다. 퀴즈 문서 전체를 다시 쓰지 않으므로 동시에 끝낸 학생끼리 덮어쓰지 않는다.
    """

    name = "remote"

    def __init__(
        self,
        base_url: str,
        auth: str | None = None,
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._auth = auth or None
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)
        self._subscriptions: dict[str, asyncio.Task] = {}

    def _url(self, path: str) -> str:
        return f"{self._base_url}/{path}.json"

    def _params(self) -> dict[str, str]:
        return {"auth": self._auth} if self._auth else {}

    async def _request(self, method: str, path: str, body: Any = None) -> Any:
        try:
            response = await self._client.request(
                method,
                self._url(path),
                params=self._params(),
                json=body,
            )
            response.raise_for_status()
            return response.json()
        except httpx.HTTPError as e:
            raise StorageError(f"원격 저장소 요청 실패: {method} {path} ({e.__class__.__name__})") from e
        except ValueError as e:
            raise StorageError(f"원격 저장소 응답 형식 오류: {method} {path}") from e

    @staticmethod
    def _to_document(quiz: Quiz) -> dict[str, Any]:
        document = quiz.model_dump(by_alias=True, mode="json")
        document["participants"] = {
            f"p{i:04d}": participant for i, participant in enumerate(document["participants"])
        }
        return document

    @staticmethod
    def _from_document(quiz_id: str, document: Any) -> Quiz | None:
        if not isinstance(document, dict):
            return None
        try:
            return Quiz.model_validate({"id": quiz_id, **document})
        except SchemaValidationError:
            logger.warning(f"원격 퀴즈 문서 형식 오류로 건너뜀: quiz_id={quiz_id}")
            return None

    async def put_quiz(self, quiz: Quiz) -> bool:
        await self._request("PUT", f"{QUIZZES_PATH}/{quiz.id}", self._to_document(quiz))
        return True

    async def list_quizzes(self) -> list[Quiz]:
        data = await self._request("GET", QUIZZES_PATH)
        if not data:
            return []
        quizzes = [self._from_document(quiz_id, document) for quiz_id, document in data.items()]
        return sorted((q for q in quizzes if q is not None), key=lambda q: q.created_at)

    async def get_quiz(self, quiz_id: str) -> Quiz | None:
        document = await self._request("GET", f"{QUIZZES_PATH}/{quiz_id}")
        return self._from_document(quiz_id, document)

    async def append_participant(self, quiz_id: str, participant: Participant) -> bool:
        # 존재 여부는 단일 필드만 읽어 확인 (퀴즈 문서를 다시 쓰지 않음)
        existing_id = await self._request("GET", f"{QUIZZES_PATH}/{quiz_id}/id")
        if existing_id is None:
            logger.warning(f"원격 저장소에 퀴즈가 없습니다: quiz_id={quiz_id}")
            return False

        await self._request(
            "POST",
            f"{QUIZZES_PATH}/{quiz_id}/participants",
            participant.model_dump(by_alias=True, mode="json"),
        )
        return True

    async def subscribe_to_quizzes(self, callback: QuizzesCallback) -> SubscriptionHandle:
        handle = SubscriptionHandle(backend=self.name)
        self._subscriptions[handle.id] = asyncio.create_task(self._listen(handle, callback))
        return handle

    async def unsubscribe(self, handle: SubscriptionHandle) -> None:
        task = self._subscriptions.pop(handle.id, None)
        if task is not None and not task.done():
            task.cancel()

    async def _listen(self, handle: SubscriptionHandle, callback: QuizzesCallback) -> None:
        """스트리밍 이벤트를 받을 때마다 최신 컬렉션으로 콜백 호출"""
        event_name = None
        try:
            async with self._client.stream(
                "GET",
                self._url(QUIZZES_PATH),
                params=self._params(),
                headers={"Accept": "text/event-stream"},
                timeout=None,
            ) as response:
                response.raise_for_status()
                async for line in response.aiter_lines():
                    if line.startswith("event:"):
                        event_name = line[len("event:"):].strip()
                    elif line.startswith("data:"):
                        if event_name in CLOSE_EVENTS:
                            logger.warning(f"원격 구독이 서버에서 종료됨: event={event_name}")
                            break
                        if event_name in CHANGE_EVENTS:
                            await notify(callback, await self.list_quizzes())
                        event_name = None
        except (httpx.HTTPError, StorageError) as e:
            logger.error(f"원격 구독 오류: {e.__class__.__name__}: {e}")
        except Exception:
            logger.error("원격 구독 콜백 처리 중 예상치 못한 오류", exc_info=True)
        finally:
            self._subscriptions.pop(handle.id, None)

    async def close(self) -> None:
        for task in list(self._subscriptions.values()):
            task.cancel()
        self._subscriptions.clear()
        await self._client.aclose()

