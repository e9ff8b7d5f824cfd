"""응시 세션 상태 머신 테스트"""
import asyncio
from unittest.mock import AsyncMock

import pytest

from app.exceptions import InvalidSessionStateError, NoSelectionError, ValidationError
from app.schemas.session import SessionState
from app.services.quiz_session import QuizSession, calculate_percentage, calculate_score
from app.services.timer import CountdownTimer
from app.storage.base import StorageBackend
from conftest import make_quiz


@pytest.fixture
def mock_storage():
    """참가자 기록이 항상 성공하는 모킹된 저장소"""
    storage = AsyncMock(spec=StorageBackend)
    storage.append_participant.return_value = True
    return storage


async def answer_all(session: QuizSession, answers: list[int]) -> None:
    for answer in answers:
        session.select_option(answer)
        await session.submit_current_answer()


@pytest.mark.asyncio
async def test_all_correct_answers_score_full(mock_storage):
    """모든 문제를 정답으로 제출하면 만점"""
    quiz = make_quiz([0, 2, 3, 1])
    session = QuizSession(mock_storage)
    session.join(quiz, "  학생1 ")
    session.begin()

    await answer_all(session, [q.correct_answer for q in quiz.questions])

    result = session.result()
    assert session.state == SessionState.COMPLETED
    assert result.score == 4
    assert result.percentage == 100
    assert result.timed_out is False
    assert result.persisted is True

    mock_storage.append_participant.assert_awaited_once()
    quiz_id, participant = mock_storage.append_participant.await_args.args
    assert quiz_id == quiz.id
    assert participant.name == "학생1"
    assert participant.score == 4


@pytest.mark.asyncio
async def test_all_wrong_answers_score_zero(mock_storage):
    """모든 문제를 (정답 + 1) mod 4로 제출하면 0점"""
    quiz = make_quiz([0, 1, 2, 3])
    session = QuizSession(mock_storage)
    session.join(quiz, "학생")
    session.begin()

    await answer_all(session, [(q.correct_answer + 1) % 4 for q in quiz.questions])

    assert session.score == 0
    assert session.result().percentage == 0
    assert all(not item.is_correct for item in session.result().review)


@pytest.mark.asyncio
async def test_two_question_scenario_half_score(mock_storage):
    """정답 [1, 3]에 [1, 0]으로 답하면 1점, 50%"""
    quiz = make_quiz([1, 3])
    session = QuizSession(mock_storage)
    session.join(quiz, "학생")
    session.begin()

    await answer_all(session, [1, 0])

    result = session.result()
    assert result.score == 1
    assert result.total == 2
    assert result.percentage == 50
    assert [r.is_correct for r in result.review] == [True, False]
    assert [r.selected_answer for r in result.review] == [1, 0]


@pytest.mark.asyncio
async def test_submit_without_selection_raises_and_keeps_state(mock_storage):
    """선택 없이 제출하면 NoSelectionError, 상태 변화 없음"""
    session = QuizSession(mock_storage)
    session.join(make_quiz([1, 3]), "학생")
    session.begin()

    with pytest.raises(NoSelectionError):
        await session.submit_current_answer()

    assert session.current_question_index == 0
    assert session.answers == []
    assert session.state == SessionState.IN_PROGRESS
    session.leave()


@pytest.mark.asyncio
async def test_selection_is_cleared_after_submit(mock_storage):
    """제출 후 선택은 초기화되어 다음 문제에서 다시 골라야 함"""
    session = QuizSession(mock_storage)
    session.join(make_quiz([1, 3, 2]), "학생")
    session.begin()

    session.select_option(1)
    await session.submit_current_answer()

    assert session.selected_option is None
    assert session.current_question_index == 1
    with pytest.raises(NoSelectionError):
        await session.submit_current_answer()
    session.leave()


@pytest.mark.asyncio
async def test_out_of_range_selection_is_ignored(mock_storage):
    """범위를 벗어난 선택은 무시"""
    session = QuizSession(mock_storage)
    session.join(make_quiz([1, 3]), "학생")
    session.begin()

    session.select_option(2)
    session.select_option(4)
    session.select_option(-1)

    assert session.selected_option == 2
    session.leave()


@pytest.mark.asyncio
async def test_timer_expiry_scores_answered_prefix_once(mock_storage):
    """시간 초과 시 제출한 답안까지만 채점하고 한 번만 완료"""
    quiz = make_quiz([1, 3, 2], time_limit=1)
    timer = CountdownTimer(tick_seconds=0.001)
    session = QuizSession(mock_storage, timer=timer)
    session.join(quiz, "학생")
    session.begin()

    session.select_option(1)
    await session.submit_current_answer()
    session.select_option(3)  # 제출하지 않은 선택은 버려짐

    await asyncio.wait_for(session.wait_until_complete(), timeout=5)
    await asyncio.sleep(0.01)

    result = session.result()
    assert session.state == SessionState.COMPLETED
    assert result.timed_out is True
    assert result.score == 1
    assert session.answers == [1]
    assert session.selected_option is None
    assert session.time_remaining_seconds == 0
    assert [r.selected_answer for r in result.review] == [1, None, None]
    assert not timer.is_running
    mock_storage.append_participant.assert_awaited_once()


@pytest.mark.asyncio
async def test_completed_session_ignores_late_intents(mock_storage):
    """완료 후 들어온 선택/제출은 오류 없이 무시"""
    session = QuizSession(mock_storage)
    session.join(make_quiz([1]), "학생")
    session.begin()
    await answer_all(session, [1])

    session.select_option(2)
    await session.submit_current_answer()

    assert session.answers == [1]
    assert session.selected_option is None
    mock_storage.append_participant.assert_awaited_once()


@pytest.mark.asyncio
async def test_completion_stops_timer(mock_storage):
    """정상 제출로 완료되면 타이머가 멈춤"""
    timer = CountdownTimer(tick_seconds=0.01)
    session = QuizSession(mock_storage, timer=timer)
    session.join(make_quiz([1], time_limit=5), "학생")
    session.begin()
    await asyncio.sleep(0.02)

    await answer_all(session, [1])

    assert not timer.is_running
    remaining = session.time_remaining_seconds
    await asyncio.sleep(0.05)
    assert session.time_remaining_seconds == remaining
    assert session.result().timed_out is False


@pytest.mark.asyncio
async def test_persistence_failure_still_shows_score(mock_storage):
    """결과 저장에 실패해도 점수는 표시하고 완료 상태 유지"""
    mock_storage.append_participant.return_value = False
    session = QuizSession(mock_storage)
    session.join(make_quiz([1, 3]), "학생")
    session.begin()

    await answer_all(session, [1, 3])

    result = session.result()
    assert session.state == SessionState.COMPLETED
    assert result.score == 2
    assert result.persisted is False


@pytest.mark.asyncio
async def test_leave_in_progress_stops_timer(mock_storage):
    """응시 중 이탈하면 타이머가 해제되고 결과가 기록되지 않음"""
    timer = CountdownTimer(tick_seconds=0.001)
    session = QuizSession(mock_storage, timer=timer)
    session.join(make_quiz([1, 3], time_limit=1), "학생")
    session.begin()

    session.leave()
    await asyncio.sleep(0.2)

    assert not timer.is_running
    assert session.state == SessionState.IDLE
    mock_storage.append_participant.assert_not_awaited()


def test_join_requires_name(mock_storage):
    """이름 없이 참여하면 ValidationError"""
    session = QuizSession(mock_storage)

    with pytest.raises(ValidationError):
        session.join(make_quiz(), "   ")

    assert session.state == SessionState.IDLE


def test_join_initializes_session(mock_storage):
    """참여 시 문제 인덱스, 답안, 남은 시간 초기화"""
    session = QuizSession(mock_storage)
    session.join(make_quiz(time_limit=5), "학생")

    assert session.state == SessionState.JOINED
    assert session.current_question_index == 0
    assert session.answers == []
    assert session.time_remaining_seconds == 300


@pytest.mark.asyncio
async def test_invalid_transitions_raise(mock_storage):
    """참여 전 시작, 시작 전 제출은 허용되지 않음"""
    session = QuizSession(mock_storage)
    with pytest.raises(InvalidSessionStateError):
        session.begin()

    session.join(make_quiz(), "학생")
    with pytest.raises(InvalidSessionStateError):
        await session.submit_current_answer()
    with pytest.raises(InvalidSessionStateError):
        session.join(make_quiz(), "다른 학생")


@pytest.mark.asyncio
async def test_snapshot_hides_correct_answer_while_in_progress(mock_storage):
    """응시 중 스냅샷에는 정답과 결과가 없음"""
    session = QuizSession(mock_storage)
    session.join(make_quiz([1, 3]), "학생")
    session.begin()
    session.select_option(2)

    snapshot = session.snapshot()
    dumped = snapshot.model_dump(by_alias=True)

    assert snapshot.state == SessionState.IN_PROGRESS
    assert snapshot.current_question.number == 1
    assert snapshot.current_question.total == 2
    assert snapshot.current_question.progress == 0
    assert snapshot.selected_option == 2
    assert snapshot.time_remaining_display == "1:00"
    assert snapshot.time_running_low is True
    assert snapshot.result is None
    assert "correctAnswer" not in dumped["currentQuestion"]
    session.leave()


def test_calculate_score_counts_only_answered_positions():
    """답하지 않은 문제는 0점"""
    quiz = make_quiz([1, 3, 2])

    assert calculate_score(quiz.questions, []) == 0
    assert calculate_score(quiz.questions, [1]) == 1
    assert calculate_score(quiz.questions, [1, 0, 2]) == 2


def test_calculate_percentage_rounds_half_up():
    """정답률 반올림"""
    assert calculate_percentage(1, 2) == 50
    assert calculate_percentage(2, 3) == 67
    assert calculate_percentage(1, 8) == 13
    assert calculate_percentage(0, 0) == 0
