from app.schemas.quiz import (
    LeaderboardEntry,
    Participant,
    PublicQuizResponse,
    Question,
    QuestionInput,
    Quiz,
    QuizCreateRequest,
    QuizDetailResponse,
    QuizListResponse,
    QuizResponse,
    QuizSummaryResponse,
)
from app.schemas.session import (
    JoinRequest,
    QuestionReview,
    QuestionView,
    SelectOptionRequest,
    SessionResponse,
    SessionResult,
    SessionSnapshot,
    SessionState,
)

__all__ = [
    "Question",
    "Participant",
    "Quiz",
    "QuestionInput",
    "QuizCreateRequest",
    "QuizResponse",
    "QuizDetailResponse",
    "LeaderboardEntry",
    "QuizSummaryResponse",
    "QuizListResponse",
    "PublicQuizResponse",
    "SessionState",
    "JoinRequest",
    "SelectOptionRequest",
    "QuestionView",
    "QuestionReview",
    "SessionResult",
    "SessionSnapshot",
    "SessionResponse",
]
