import logging

from fastapi import APIRouter, Depends, status

from app.exceptions import QuizCodeNotFoundError
from app.schemas import session as session_schema
from app.services import quiz_service
from app.services.quiz_session import QuizSession
from app.services.session_registry import SessionRegistry, get_session_registry
from app.storage.base import StorageBackend
from app.storage.provider import get_storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sessions", tags=["sessions"])


def _response(session_id: str, session: QuizSession) -> session_schema.SessionResponse:
    return session_schema.SessionResponse(session_id=session_id, session=session.snapshot())


@router.post("", response_model=session_schema.SessionResponse, status_code=status.HTTP_201_CREATED)
async def join_quiz(
    request: session_schema.JoinRequest,
    storage: StorageBackend = Depends(get_storage),
    registry: SessionRegistry = Depends(get_session_registry),
):
    """퀴즈 참여 API (이름 + 퀴즈 코드)"""
    code = request.code.strip()
    quiz = await quiz_service.find_by_code(storage, code) if code else None
    if quiz is None:
        raise QuizCodeNotFoundError(code)

    session = QuizSession(storage)
    session.join(quiz, request.name)
    session_id = registry.register(session)
    return _response(session_id, session)


@router.get("/{session_id}", response_model=session_schema.SessionResponse)
async def get_session(
    session_id: str,
    registry: SessionRegistry = Depends(get_session_registry),
):
    """세션 상태 조회 API (남은 시간 포함)"""
    return _response(session_id, registry.get(session_id))


@router.post("/{session_id}/begin", response_model=session_schema.SessionResponse)
async def begin_quiz(
    session_id: str,
    registry: SessionRegistry = Depends(get_session_registry),
):
    """응시 시작 API"""
    session = registry.get(session_id)
    session.begin()
    return _response(session_id, session)


@router.post("/{session_id}/select", response_model=session_schema.SessionResponse)
async def select_option(
    session_id: str,
    request: session_schema.SelectOptionRequest,
    registry: SessionRegistry = Depends(get_session_registry),
):
    """선택지 선택 API"""
    session = registry.get(session_id)
    session.select_option(request.option_index)
    return _response(session_id, session)


@router.post("/{session_id}/submit", response_model=session_schema.SessionResponse)
async def submit_answer(
    session_id: str,
    registry: SessionRegistry = Depends(get_session_registry),
):
    """답안 제출 API (마지막 문제면 채점 결과 포함)"""
    session = registry.get(session_id)
    await session.submit_current_answer()
    return _response(session_id, session)


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def leave_quiz(
    session_id: str,
    registry: SessionRegistry = Depends(get_session_registry),
):
    """세션 종료 API (타이머 해제)"""
    registry.end(session_id)
