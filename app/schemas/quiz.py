from datetime import datetime

from pydantic import ConfigDict, Field, field_validator

from app.schemas.base import CamelModel


class Question(CamelModel):
    """객관식 문제 (퀴즈 생성 후 변경 불가)"""
    text: str = Field(..., alias="question", description="문제 내용")
    options: list[str] = Field(..., description="선택지 4개")
    correct_answer: int = Field(..., description="정답 선택지 인덱스 (0-3)")

    model_config = ConfigDict(frozen=True)


class Participant(CamelModel):
    """응시 완료 기록 (추가만 가능)"""
    name: str
    score: int = Field(..., ge=0)
    completed_at: datetime


class Quiz(CamelModel):
    """퀴즈 문서 (저장소 직렬화 형식과 동일)"""
    id: str
    code: str
    title: str
    description: str = ""
    time_limit: int = Field(..., description="제한 시간 (분)")
    questions: list[Question]
    created_at: datetime
    participants: list[Participant] = Field(default_factory=list)

    @field_validator("participants", mode="before")
    @classmethod
    def normalize_participants(cls, v):
        """원격 저장소는 참가자를 {push_id: participant} 형태로 돌려주므로 목록으로 변환"""
        if v is None:
            return []
        if isinstance(v, dict):
            return sorted(v.values(), key=lambda p: p.get("completedAt") or p.get("completed_at") or "")
        return v

    @property
    def time_limit_seconds(self) -> int:
        return self.time_limit * 60


class QuestionInput(CamelModel):
    """문제 작성 입력 (검증은 서비스 계층에서 수행)"""
    question: str = ""
    options: list[str] = Field(default_factory=list)
    correct_answer: int = 0


class QuizCreateRequest(CamelModel):
    """퀴즈 생성 요청 스키마"""
    title: str = ""
    description: str = ""
    time_limit: int = Field(..., description="제한 시간 (분)")
    questions: list[QuestionInput] = Field(default_factory=list)


class QuizResponse(Quiz):
    """퀴즈 생성/상세 응답 스키마 (공유 링크 포함)"""
    share_link: str


class LeaderboardEntry(CamelModel):
    rank: int
    name: str
    score: int
    total: int
    completed_at: datetime


class QuizDetailResponse(QuizResponse):
    """퀴즈 상세 응답 스키마 (리더보드 포함)"""
    leaderboard: list[LeaderboardEntry]


class QuizSummaryResponse(CamelModel):
    """퀴즈 목록 항목"""
    id: str
    code: str
    title: str
    description: str
    time_limit: int
    question_count: int
    participant_count: int
    created_at: datetime


class QuizListResponse(CamelModel):
    quizzes: list[QuizSummaryResponse]
    total: int


class PublicQuizResponse(CamelModel):
    """코드 조회 응답 (정답 제외)"""
    id: str
    code: str
    title: str
    description: str
    time_limit: int
    question_count: int
