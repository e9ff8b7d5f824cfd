"""커스텀 예외 클래스 정의"""


class BaseAppError(Exception):
    """애플리케이션 기본 예외 클래스"""

    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class ValidationError(BaseAppError):
    """퀴즈 작성 입력 오류 (400)

    question_index는 처음 발견된 잘못된 문제의 인덱스 (0부터 시작, 문제와 무관하면 None)
    """

    def __init__(self, message: str, question_index: int | None = None):
        self.question_index = question_index
        super().__init__(message, status_code=400)


class NoSelectionError(BaseAppError):
    """선택지를 고르지 않고 답안을 제출했을 때 (400)"""

    def __init__(self, message: str = "답을 선택해주세요"):
        super().__init__(message, status_code=400)


class QuizCodeNotFoundError(BaseAppError):
    """퀴즈 코드에 해당하는 퀴즈가 없을 때 (404)"""

    def __init__(self, code: str):
        self.code = code
        super().__init__(f"유효하지 않은 퀴즈 코드입니다: {code}", status_code=404)


class QuizNotFoundError(BaseAppError):
    """퀴즈를 찾을 수 없을 때 발생하는 예외 (404)"""

    def __init__(self, quiz_id: str):
        super().__init__(f"퀴즈를 찾을 수 없습니다: {quiz_id}", status_code=404)


class PersistenceError(BaseAppError):
    """로컬/원격 저장소 모두 저장에 실패했을 때 (503)"""

    def __init__(self, message: str):
        super().__init__(message, status_code=503)


class SessionNotFoundError(BaseAppError):
    """응시 세션을 찾을 수 없을 때 (404)"""

    def __init__(self, session_id: str):
        super().__init__(f"응시 세션을 찾을 수 없습니다: {session_id}", status_code=404)


class InvalidSessionStateError(BaseAppError):
    """현재 세션 상태에서 허용되지 않는 동작 (409)"""

    def __init__(self, message: str):
        super().__init__(message, status_code=409)


class StorageError(Exception):
    """저장소 백엔드 오류 (저장소 계층 내부에서만 사용)"""
