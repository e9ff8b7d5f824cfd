import asyncio
import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import StreamingResponse

from app.exceptions import QuizCodeNotFoundError, QuizNotFoundError
from app.schemas import quiz as quiz_schema
from app.services import quiz_service
from app.storage.base import StorageBackend
from app.storage.provider import get_storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/quizzes", tags=["quizzes"])

KEEP_ALIVE_SECONDS = 15.0


def _to_list_response(quizzes: list[quiz_schema.Quiz]) -> quiz_schema.QuizListResponse:
    summaries = [quiz_service.to_summary(q) for q in quizzes]
    return quiz_schema.QuizListResponse(quizzes=summaries, total=len(summaries))


@router.post("", response_model=quiz_schema.QuizResponse, status_code=status.HTTP_201_CREATED)
async def create_quiz(
    request: quiz_schema.QuizCreateRequest,
    storage: StorageBackend = Depends(get_storage),
):
    """퀴즈 생성 API (공유 링크 포함)"""
    quiz = await quiz_service.create_quiz(
        storage,
        title=request.title,
        description=request.description,
        time_limit=request.time_limit,
        questions=request.questions,
    )
    return quiz_service.to_response(quiz)


@router.get("", response_model=quiz_schema.QuizListResponse)
async def list_quizzes(
    storage: StorageBackend = Depends(get_storage),
):
    """퀴즈 목록 조회 API"""
    quizzes = await quiz_service.list_quizzes(storage)
    return _to_list_response(quizzes)


@router.get("/events")
async def stream_quiz_events(
    request: Request,
    storage: StorageBackend = Depends(get_storage),
):
    """퀴즈 컬렉션 변경 스트림 (원격 저장소 사용 시에만 이벤트 발생)"""
    queue: asyncio.Queue[list[quiz_schema.Quiz]] = asyncio.Queue()
    handle = await storage.subscribe_to_quizzes(queue.put_nowait)

    async def event_stream():
        try:
            while not await request.is_disconnected():
                try:
                    quizzes = await asyncio.wait_for(queue.get(), timeout=KEEP_ALIVE_SECONDS)
                except asyncio.TimeoutError:
                    yield ": keep-alive\n\n"
                    continue
                payload = _to_list_response(quizzes).model_dump_json(by_alias=True)
                yield f"event: quizzes\ndata: {payload}\n\n"
        finally:
            await storage.unsubscribe(handle)

    return StreamingResponse(event_stream(), media_type="text/event-stream")


@router.get("/code/{code}", response_model=quiz_schema.PublicQuizResponse)
async def get_quiz_by_code(
    code: str,
    storage: StorageBackend = Depends(get_storage),
):
    """퀴즈 코드 조회 API (정답 제외)"""
    quiz = await quiz_service.find_by_code(storage, code.strip())
    if quiz is None:
        raise QuizCodeNotFoundError(code)
    return quiz_service.to_public(quiz)


@router.get("/{quiz_id}", response_model=quiz_schema.QuizDetailResponse)
async def get_quiz(
    quiz_id: str,
    storage: StorageBackend = Depends(get_storage),
):
    """퀴즈 상세 조회 API (리더보드 포함)"""
    quiz = await quiz_service.get_quiz(storage, quiz_id)
    if quiz is None:
        raise QuizNotFoundError(quiz_id)
    return quiz_service.to_detail(quiz)
