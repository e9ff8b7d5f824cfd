import logging
import random
import time
from datetime import datetime, timezone
from typing import Sequence

from app.core.config import settings
from app.exceptions import PersistenceError, StorageError, ValidationError
from app.schemas import quiz as quiz_schema
from app.storage.base import StorageBackend

logger = logging.getLogger(__name__)

OPTION_COUNT = 4

_last_quiz_id = 0


def generate_quiz_id() -> str:
    """시간 기반 퀴즈 ID (같은 프로세스에서 같은 밀리초에 생성해도 중복되지 않음)"""
    global _last_quiz_id
    candidate = time.time_ns() // 1_000_000
    if candidate <= _last_quiz_id:
        candidate = _last_quiz_id + 1
    _last_quiz_id = candidate
    return str(candidate)


def generate_quiz_code() -> str:
    """6자리 퀴즈 코드 (기존 코드와의 중복은 확인하지 않음)"""
    return str(random.randint(100000, 999999))


def build_share_link(code: str) -> str:
    return f"{settings.public_base_url.rstrip('/')}/?quiz={code}"


def _validate_questions(questions: Sequence[quiz_schema.QuestionInput]) -> list[quiz_schema.Question]:
    """문제 검증 및 정규화. 처음 발견된 잘못된 문제에서 중단"""
    if not questions:
        raise ValidationError("문제를 하나 이상 추가해주세요")

    validated = []
    for index, item in enumerate(questions):
        text = (item.question or "").strip()
        options = [(option or "").strip() for option in item.options]

        if not text or len(options) != OPTION_COUNT or any(not option for option in options):
            raise ValidationError(f"{index + 1}번 문제의 모든 항목을 입력해주세요", question_index=index)
        if not 0 <= item.correct_answer < OPTION_COUNT:
            raise ValidationError(f"{index + 1}번 문제의 정답을 선택해주세요", question_index=index)

        validated.append(
            quiz_schema.Question(text=text, options=options, correct_answer=item.correct_answer)
        )
    return validated


async def create_quiz(
    storage: StorageBackend,
    title: str,
    description: str,
    time_limit: int,
    questions: Sequence[quiz_schema.QuestionInput],
) -> quiz_schema.Quiz:
    """퀴즈 생성"""
    cleaned_title = (title or "").strip()
    if not cleaned_title:
        raise ValidationError("퀴즈 제목을 입력해주세요")
    if isinstance(time_limit, bool) or not isinstance(time_limit, int) or time_limit <= 0:
        raise ValidationError("제한 시간은 1분 이상의 정수여야 합니다")

    validated_questions = _validate_questions(questions)

    quiz = quiz_schema.Quiz(
        id=generate_quiz_id(),
        code=generate_quiz_code(),
        title=cleaned_title,
        description=(description or "").strip(),
        time_limit=time_limit,
        questions=validated_questions,
        created_at=datetime.now(timezone.utc),
        participants=[],
    )

    try:
        saved = await storage.put_quiz(quiz)
    except StorageError as e:
        logger.error(f"퀴즈 저장 실패: {e}, quiz_id={quiz.id}")
        raise PersistenceError("퀴즈를 저장하지 못했습니다") from e

    if not saved:
        logger.error(f"저장소가 퀴즈 저장을 거부함: quiz_id={quiz.id}")
        raise PersistenceError("퀴즈를 저장하지 못했습니다")

    logger.info(f"퀴즈 생성 성공: quiz_id={quiz.id}, code={quiz.code}, question_count={len(quiz.questions)}")
    return quiz


async def list_quizzes(storage: StorageBackend) -> list[quiz_schema.Quiz]:
    """퀴즈 목록 조회 (없으면 빈 목록)"""
    try:
        return await storage.list_quizzes()
    except StorageError as e:
        logger.error(f"퀴즈 목록 조회 실패: {e}")
        raise PersistenceError("퀴즈 목록을 불러오지 못했습니다") from e


async def get_quiz(storage: StorageBackend, quiz_id: str) -> quiz_schema.Quiz | None:
    """ID로 퀴즈 조회"""
    try:
        return await storage.get_quiz(quiz_id)
    except StorageError as e:
        logger.error(f"퀴즈 조회 실패: {e}, quiz_id={quiz_id}")
        raise PersistenceError("퀴즈를 불러오지 못했습니다") from e


async def find_by_code(storage: StorageBackend, code: str) -> quiz_schema.Quiz | None:
    """코드로 퀴즈 조회 (없으면 None, 오류 아님)"""
    try:
        return await storage.find_quiz_by_code(code)
    except StorageError as e:
        logger.error(f"퀴즈 코드 조회 실패: {e}, code={code}")
        raise PersistenceError("퀴즈를 불러오지 못했습니다") from e


async def record_result(
    storage: StorageBackend,
    quiz_id: str,
    participant: quiz_schema.Participant,
) -> None:
    """응시 결과 기록 (퀴즈가 삭제되었거나 저장에 실패하면 PersistenceError)"""
    try:
        recorded = await storage.append_participant(quiz_id, participant)
    except StorageError as e:
        logger.error(f"응시 결과 저장 실패: {e}, quiz_id={quiz_id}")
        raise PersistenceError("응시 결과를 저장하지 못했습니다") from e

    if not recorded:
        raise PersistenceError(f"응시 결과를 저장할 퀴즈가 없습니다: {quiz_id}")

    logger.info(f"응시 결과 저장: quiz_id={quiz_id}, name={participant.name}, score={participant.score}")


def build_leaderboard(quiz: quiz_schema.Quiz) -> list[quiz_schema.LeaderboardEntry]:
    """점수 내림차순 리더보드 (동점은 먼저 완료한 순서 유지, 재응시도 모두 표시)"""
    ranked = sorted(quiz.participants, key=lambda p: p.score, reverse=True)
    return [
        quiz_schema.LeaderboardEntry(
            rank=i + 1,
            name=p.name,
            score=p.score,
            total=len(quiz.questions),
            completed_at=p.completed_at,
        )
        for i, p in enumerate(ranked)
    ]


def to_summary(quiz: quiz_schema.Quiz) -> quiz_schema.QuizSummaryResponse:
    return quiz_schema.QuizSummaryResponse(
        id=quiz.id,
        code=quiz.code,
        title=quiz.title,
        description=quiz.description,
        time_limit=quiz.time_limit,
        question_count=len(quiz.questions),
        participant_count=len(quiz.participants),
        created_at=quiz.created_at,
    )


def to_response(quiz: quiz_schema.Quiz) -> quiz_schema.QuizResponse:
    return quiz_schema.QuizResponse.model_validate(
        {**quiz.model_dump(), "share_link": build_share_link(quiz.code)}
    )


def to_detail(quiz: quiz_schema.Quiz) -> quiz_schema.QuizDetailResponse:
    return quiz_schema.QuizDetailResponse.model_validate(
        {
            **quiz.model_dump(),
            "share_link": build_share_link(quiz.code),
            "leaderboard": build_leaderboard(quiz),
        }
    )


def to_public(quiz: quiz_schema.Quiz) -> quiz_schema.PublicQuizResponse:
    return quiz_schema.PublicQuizResponse(
        id=quiz.id,
        code=quiz.code,
        title=quiz.title,
        description=quiz.description,
        time_limit=quiz.time_limit,
        question_count=len(quiz.questions),
    )
