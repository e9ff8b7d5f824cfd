"""
응시 세션 저장소 (인메모리)

학생마다 UUID 세션 ID를 발급하고 세션별 QuizSession을 보관한다.
TTL 동안 접근이 없으면 만료되며, 만료/종료 시 타이머를 반드시 해제한다.
응시 중인 세션은 자체 타이머가 종료 시점을 정하므로 TTL로 만료시키지 않는다.
"""

import logging
import time
import uuid

from fastapi import Request

from app.core.config import settings
from app.exceptions import SessionNotFoundError
from app.schemas.session import SessionState
from app.services.quiz_session import QuizSession

logger = logging.getLogger(__name__)


class SessionRegistry:
    def __init__(self, ttl_seconds: int | None = None):
        self._ttl_seconds = settings.session_ttl_seconds if ttl_seconds is None else ttl_seconds
        self._sessions: dict[str, QuizSession] = {}
        self._timestamps: dict[str, float] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def register(self, session: QuizSession) -> str:
        """세션 등록 후 세션 ID 반환"""
        self.cleanup_expired()
        session_id = uuid.uuid4().hex
        self._sessions[session_id] = session
        self._timestamps[session_id] = time.monotonic()
        return session_id

    def get(self, session_id: str) -> QuizSession:
        """세션 조회 (없거나 만료되었으면 SessionNotFoundError)"""
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        if self._is_expired(session_id, time.monotonic()):
            self._discard(session_id)
            raise SessionNotFoundError(session_id)
        self._timestamps[session_id] = time.monotonic()  # 접근 시 갱신
        return session

    def end(self, session_id: str) -> None:
        """세션 종료 (타이머 해제 후 제거)"""
        if session_id not in self._sessions:
            raise SessionNotFoundError(session_id)
        self._discard(session_id)

    def cleanup_expired(self) -> int:
        """만료된 세션 정리, 정리한 개수 반환"""
        now = time.monotonic()
        expired = [sid for sid in self._sessions if self._is_expired(sid, now)]
        for sid in expired:
            self._discard(sid)
        if expired:
            logger.info(f"만료된 응시 세션 정리: {len(expired)}개")
        return len(expired)

    def close_all(self) -> None:
        for sid in list(self._sessions):
            self._discard(sid)

    def _is_expired(self, session_id: str, now: float) -> bool:
        if self._sessions[session_id].state == SessionState.IN_PROGRESS:
            return False
        return now - self._timestamps[session_id] > self._ttl_seconds

    def _discard(self, session_id: str) -> None:
        session = self._sessions.pop(session_id, None)
        self._timestamps.pop(session_id, None)
        if session is not None:
            session.leave()


def get_session_registry(request: Request) -> SessionRegistry:
    """애플리케이션 수명 동안 유지되는 세션 저장소 (FastAPI 의존성)"""
    return request.app.state.session_registry
