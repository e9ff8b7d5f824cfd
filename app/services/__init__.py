from app.services.quiz_service import (
    create_quiz,
    find_by_code,
    get_quiz,
    list_quizzes,
    record_result,
)
from app.services.quiz_session import (
    QuizSession,
    calculate_percentage,
    calculate_score,
)
from app.services.session_registry import (
    SessionRegistry,
    get_session_registry,
)
from app.services.timer import CountdownTimer

__all__ = [
    "create_quiz",
    "list_quizzes",
    "get_quiz",
    "find_by_code",
    "record_result",
    "QuizSession",
    "calculate_score",
    "calculate_percentage",
    "SessionRegistry",
    "get_session_registry",
    "CountdownTimer",
]
