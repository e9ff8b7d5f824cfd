import asyncio
import logging
import math
from datetime import datetime, timezone
from typing import Sequence

from app.exceptions import InvalidSessionStateError, NoSelectionError, PersistenceError, ValidationError
from app.schemas import quiz as quiz_schema, session as session_schema
from app.schemas.session import SessionState
from app.services import quiz_service
from app.services.timer import CountdownTimer, format_time_remaining
from app.storage.base import StorageBackend

logger = logging.getLogger(__name__)

LOW_TIME_THRESHOLD_SECONDS = 60


def calculate_score(questions: Sequence[quiz_schema.Question], answers: Sequence[int]) -> int:
    """위치별 정답 일치 개수 (답하지 못한 문제는 오답)"""
    return sum(
        1
        for i, answer in enumerate(answers)
        if i < len(questions) and answer == questions[i].correct_answer
    )


def calculate_percentage(score: int, total: int) -> int:
    """정답률 (%) 반올림 (0.5는 올림)"""
    if total <= 0:
        return 0
    return math.floor(100 * score / total + 0.5)


class QuizSession:
    """학생 한 명의 퀴즈 응시 상태 머신

    IDLE → JOINED → IN_PROGRESS → COMPLETED. 타이머는 이 세션만 소유하며,
    IN_PROGRESS를 벗어나는 모든 경로에서 중지된다.
    """

    def __init__(self, storage: StorageBackend, timer: CountdownTimer | None = None):
        self._storage = storage
        self._timer = timer or CountdownTimer()
        self._completed = asyncio.Event()

        self.state = SessionState.IDLE
        self.quiz: quiz_schema.Quiz | None = None
        self.student_name = ""
        self.current_question_index = 0
        self.answers: list[int] = []
        self.time_remaining_seconds = 0
        self.selected_option: int | None = None

        self.score: int | None = None
        self.timed_out = False
        self.persisted: bool | None = None
        self.completed_at: datetime | None = None

    @property
    def current_question(self) -> quiz_schema.Question | None:
        if self.quiz is None or self.state not in (SessionState.JOINED, SessionState.IN_PROGRESS):
            return None
        return self.quiz.questions[self.current_question_index]

    def join(self, quiz: quiz_schema.Quiz, student_name: str) -> None:
        """퀴즈 참여 (IDLE → JOINED)"""
        if self.state != SessionState.IDLE:
            raise InvalidSessionStateError("이미 퀴즈에 참여한 세션입니다")

        name = (student_name or "").strip()
        if not name:
            raise ValidationError("이름을 입력해주세요")

        self.quiz = quiz
        self.student_name = name
        self.current_question_index = 0
        self.answers = []
        self.selected_option = None
        self.time_remaining_seconds = quiz.time_limit_seconds
        self.state = SessionState.JOINED
        logger.info(f"퀴즈 참여: quiz_id={quiz.id}, name={name}")

    def begin(self) -> None:
        """응시 시작 (JOINED → IN_PROGRESS), 타이머 만료 시 강제 종료"""
        if self.state != SessionState.JOINED:
            raise InvalidSessionStateError("퀴즈에 참여한 뒤 시작할 수 있습니다")

        self.state = SessionState.IN_PROGRESS
        self._timer.start(self.time_remaining_seconds, self._handle_tick, self._handle_expire)

    def select_option(self, index: int) -> None:
        """선택지 선택 (응시 중이 아니거나 범위를 벗어나면 무시)"""
        if self.state != SessionState.IN_PROGRESS:
            return
        question = self.current_question
        if not 0 <= index < len(question.options):
            logger.debug(f"범위를 벗어난 선택 무시: index={index}")
            return
        self.selected_option = index

    async def submit_current_answer(self) -> None:
        """현재 답안 제출. 마지막 문제면 채점 후 COMPLETED"""
        if self.state == SessionState.COMPLETED:
            return
        if self.state != SessionState.IN_PROGRESS:
            raise InvalidSessionStateError("응시 중인 세션이 아닙니다")
        if self.selected_option is None:
            raise NoSelectionError()

        self.answers.append(self.selected_option)
        self.selected_option = None

        if self.current_question_index >= len(self.quiz.questions) - 1:
            await self._complete(timed_out=False)
        else:
            self.current_question_index += 1

    def leave(self) -> None:
        """세션 이탈 (타이머 해제, 완료 전이면 진행 중이던 응시를 폐기)"""
        self._timer.stop()
        if self.state in (SessionState.JOINED, SessionState.IN_PROGRESS):
            logger.info(f"응시 중단: quiz_id={self.quiz.id}, name={self.student_name}")
            self.state = SessionState.IDLE
            self.quiz = None
            self.answers = []
            self.selected_option = None

    async def wait_until_complete(self) -> None:
        await self._completed.wait()

    def _handle_tick(self, remaining: int) -> None:
        if self.state == SessionState.IN_PROGRESS:
            self.time_remaining_seconds = max(0, remaining)

    async def _handle_expire(self) -> None:
        if self.state != SessionState.IN_PROGRESS:
            return
        # 제출하지 않은 선택은 버림
        self.selected_option = None
        self.time_remaining_seconds = 0
        logger.info(f"시간 초과 자동 제출: quiz_id={self.quiz.id}, answered={len(self.answers)}")
        await self._complete(timed_out=True)

    async def _complete(self, timed_out: bool) -> None:
        # 먼저 상태를 바꿔 다른 경로(제출/만료)가 다시 채점하지 않도록 함
        self.state = SessionState.COMPLETED
        self._timer.stop()
        self.selected_option = None
        self.timed_out = timed_out
        self.score = calculate_score(self.quiz.questions, self.answers)
        self.completed_at = datetime.now(timezone.utc)

        participant = quiz_schema.Participant(
            name=self.student_name,
            score=self.score,
            completed_at=self.completed_at,
        )
        try:
            await quiz_service.record_result(self._storage, self.quiz.id, participant)
            self.persisted = True
        except PersistenceError as e:
            # 점수는 메모리의 답안으로 계산되므로 저장 실패와 무관하게 표시
            logger.warning(f"응시 결과 저장 실패 (점수는 표시): {e.message}")
            self.persisted = False
        finally:
            self._completed.set()

    def snapshot(self) -> session_schema.SessionSnapshot:
        """프레젠테이션 계층용 상태 스냅샷 (응시 중에는 정답 미포함)"""
        question_view = None
        question = self.current_question
        if question is not None:
            total = len(self.quiz.questions)
            question_view = session_schema.QuestionView(
                index=self.current_question_index,
                number=self.current_question_index + 1,
                total=total,
                text=question.text,
                options=list(question.options),
                progress=self.current_question_index / total * 100,
                is_last=self.current_question_index == total - 1,
            )

        return session_schema.SessionSnapshot(
            state=self.state,
            quiz_id=self.quiz.id if self.quiz else None,
            quiz_title=self.quiz.title if self.quiz else None,
            student_name=self.student_name,
            current_question=question_view,
            answered_count=len(self.answers),
            selected_option=self.selected_option,
            time_remaining_seconds=self.time_remaining_seconds,
            time_remaining_display=format_time_remaining(self.time_remaining_seconds),
            time_running_low=(
                self.state == SessionState.IN_PROGRESS
                and self.time_remaining_seconds <= LOW_TIME_THRESHOLD_SECONDS
            ),
            result=self.result(),
        )

    def result(self) -> session_schema.SessionResult | None:
        if self.state != SessionState.COMPLETED:
            return None

        review = []
        for i, question in enumerate(self.quiz.questions):
            selected = self.answers[i] if i < len(self.answers) else None
            review.append(
                session_schema.QuestionReview(
                    index=i,
                    text=question.text,
                    options=list(question.options),
                    selected_answer=selected,
                    correct_answer=question.correct_answer,
                    is_correct=selected == question.correct_answer,
                )
            )

        total = len(self.quiz.questions)
        return session_schema.SessionResult(
            score=self.score,
            total=total,
            percentage=calculate_percentage(self.score, total),
            timed_out=self.timed_out,
            persisted=self.persisted,
            completed_at=self.completed_at,
            review=review,
        )
