"""공용 테스트 픽스처"""
import json
from datetime import datetime, timezone

import httpx
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from app.main import app
from app.schemas import quiz as quiz_schema
from app.storage.fallback import FallbackStorage
from app.storage.local import LocalStorage
from app.storage.provider import get_storage

MEMORY_DATABASE_URL = "sqlite+aiosqlite://"


def create_memory_engine():
    return create_async_engine(
        MEMORY_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )


def make_quiz(
    correct_answers: list[int] | None = None,
    time_limit: int = 1,
    quiz_id: str = "1700000000000",
    code: str = "123456",
) -> quiz_schema.Quiz:
    """정답 목록으로 테스트용 퀴즈 생성 (선택지는 A-D)"""
    correct_answers = [1, 3] if correct_answers is None else correct_answers
    return quiz_schema.Quiz(
        id=quiz_id,
        code=code,
        title="테스트 퀴즈",
        description="설명",
        time_limit=time_limit,
        questions=[
            quiz_schema.Question(text=f"문제 {i + 1}", options=["A", "B", "C", "D"], correct_answer=answer)
            for i, answer in enumerate(correct_answers)
        ],
        created_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
    )


def quiz_payload(question_count: int = 2, time_limit: int = 1) -> dict:
    """퀴즈 생성 API 요청 본문"""
    return {
        "title": "API 퀴즈",
        "description": "설명",
        "timeLimit": time_limit,
        "questions": [
            {"question": f"문제 {i + 1}", "options": ["A", "B", "C", "D"], "correctAnswer": i % 4}
            for i in range(question_count)
        ],
    }


class FakeDocumentStore:
    """경로 기반 JSON 문서 저장소 흉내 (GET/PUT/POST {path}.json)"""

    def __init__(self):
        self.tree: dict = {}
        self.requests: list[tuple[str, str]] = []
        self.fail = False
        self.stream_body = b""
        self._push_counter = 0

    @staticmethod
    def _segments(request: httpx.Request) -> list[str]:
        path = request.url.path.removesuffix(".json").strip("/")
        return [s for s in path.split("/") if s]

    def _get(self, segments: list[str]):
        node = self.tree
        for segment in segments:
            if not isinstance(node, dict) or segment not in node:
                return None
            node = node[segment]
        return node

    def _parent(self, segments: list[str]) -> dict:
        node = self.tree
        for segment in segments[:-1]:
            node = node.setdefault(segment, {})
        return node

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append((request.method, request.url.path))
        if self.fail:
            return httpx.Response(500, json={"error": "unavailable"})

        segments = self._segments(request)
        if request.method == "GET" and request.headers.get("accept") == "text/event-stream":
            return httpx.Response(200, content=self.stream_body, headers={"content-type": "text/event-stream"})
        if request.method == "GET":
            # 없는 경로는 빈 본문이 아니라 JSON null
            return httpx.Response(
                200,
                content=json.dumps(self._get(segments)),
                headers={"content-type": "application/json"},
            )
        if request.method == "PUT":
            body = json.loads(request.content)
            self._parent(segments)[segments[-1]] = body
            return httpx.Response(200, json=body)
        if request.method == "POST":
            body = json.loads(request.content)
            self._push_counter += 1
            key = f"-N{self._push_counter:04d}"
            parent = self._parent(segments)
            collection = parent.setdefault(segments[-1], {})
            collection[key] = body
            return httpx.Response(200, json={"name": key})
        return httpx.Response(405)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest_asyncio.fixture
async def local_storage():
    """메모리 SQLite 로컬 저장소"""
    engine = create_memory_engine()
    storage = LocalStorage(engine)
    await storage.initialize()
    yield storage
    await engine.dispose()


@pytest.fixture
def document_store():
    return FakeDocumentStore()


@pytest.fixture
def client():
    """로컬 저장소만 사용하는 API 테스트 클라이언트"""
    engine = create_memory_engine()
    state = {}

    async def override_get_storage():
        # 저장소는 앱 이벤트 루프 안에서 처음 요청될 때 생성
        if "storage" not in state:
            storage = FallbackStorage(LocalStorage(engine))
            await storage.initialize()
            state["storage"] = storage
        return state["storage"]

    app.dependency_overrides[get_storage] = override_get_storage
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
