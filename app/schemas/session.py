from datetime import datetime
from enum import Enum

from pydantic import Field

from app.schemas.base import CamelModel


class SessionState(str, Enum):
    IDLE = "idle"
    JOINED = "joined"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class JoinRequest(CamelModel):
    """퀴즈 참여 요청 스키마"""
    name: str = Field("", description="학생 이름")
    code: str = Field("", description="6자리 퀴즈 코드")


class SelectOptionRequest(CamelModel):
    option_index: int = Field(..., description="선택지 인덱스")


class QuestionView(CamelModel):
    """현재 문제 (정답 제외)"""
    index: int
    number: int
    total: int
    text: str
    options: list[str]
    progress: float = Field(..., description="진행률 (%)")
    is_last: bool


class QuestionReview(CamelModel):
    """문제별 채점 결과"""
    index: int
    text: str
    options: list[str]
    selected_answer: int | None
    correct_answer: int
    is_correct: bool


class SessionResult(CamelModel):
    score: int
    total: int
    percentage: int
    timed_out: bool
    persisted: bool | None = Field(None, description="결과 저장 성공 여부 (저장 중이면 None)")
    completed_at: datetime
    review: list[QuestionReview]


class SessionSnapshot(CamelModel):
    """프레젠테이션 계층에 전달하는 세션 상태"""
    state: SessionState
    quiz_id: str | None = None
    quiz_title: str | None = None
    student_name: str = ""
    current_question: QuestionView | None = None
    answered_count: int = 0
    selected_option: int | None = None
    time_remaining_seconds: int = 0
    time_remaining_display: str = "0:00"
    time_running_low: bool = False
    result: SessionResult | None = None


class SessionResponse(CamelModel):
    session_id: str
    session: SessionSnapshot
