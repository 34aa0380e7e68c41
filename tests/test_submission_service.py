import uuid

import pytest

from core.exceptions import NotFound, ValidationError
from services.submission_service import SubmissionService, SubmittedAnswer


def answers_for(*pairs):
    return [SubmittedAnswer(question.id, choice) for question, choice in pairs]


@pytest.mark.asyncio
async def test_scores_mixed_attempt(store, three_question_quiz, user_id):
    quiz, (q1, q2, q3) = three_question_quiz

    outcome = await SubmissionService(store).submit(
        quiz.id, answers_for((q1, 1), (q2, 3), (q3, 2)), time_taken=95, user_id=user_id
    )

    assert outcome.score == 3
    assert outcome.total_questions == 3
    assert [r.is_correct for r in outcome.results] == [True, False, True]
    assert [r.points for r in outcome.results] == [1, 0, 2]
    assert outcome.results[1].explanation == "Jupiter is the largest."
    assert sum(r.points for r in outcome.results) == outcome.score


@pytest.mark.asyncio
async def test_authenticated_submission_is_saved(store, three_question_quiz, user_id):
    quiz, (q1, q2, q3) = three_question_quiz

    outcome = await SubmissionService(store).submit(
        quiz.id, answers_for((q1, 1), (q2, 0), (q3, 1)), time_taken=40, user_id=user_id
    )

    assert outcome.saved is True
    [record] = store.scores
    assert outcome.score_id == record.id
    assert record.user_id == user_id
    assert record.score == 2
    assert record.total_questions == 3
    assert record.time_taken_seconds == 40
    assert record.answers == [
        {"questionId": str(q1.id), "selectedAnswer": 1},
        {"questionId": str(q2.id), "selectedAnswer": 0},
        {"questionId": str(q3.id), "selectedAnswer": 1},
    ]


@pytest.mark.asyncio
async def test_anonymous_submission_is_scored_but_not_saved(store, three_question_quiz):
    quiz, (q1, q2, q3) = three_question_quiz

    outcome = await SubmissionService(store).submit(quiz.id, answers_for((q1, 1), (q2, 3), (q3, 2)))

    assert outcome.score == 3
    assert outcome.saved is False
    assert outcome.score_id is None
    assert store.scores == []


@pytest.mark.asyncio
async def test_each_submit_is_a_new_attempt(store, three_question_quiz, user_id):
    quiz, (q1, _, _) = three_question_quiz
    service = SubmissionService(store)

    first = await service.submit(quiz.id, answers_for((q1, 1)), user_id=user_id)
    second = await service.submit(quiz.id, answers_for((q1, 1)), user_id=user_id)

    assert len(store.scores) == 2
    assert first.score_id != second.score_id


@pytest.mark.asyncio
async def test_unknown_questions_score_zero_but_still_count(store, three_question_quiz):
    quiz, (q1, _, _) = three_question_quiz
    stray = uuid.uuid4()

    outcome = await SubmissionService(store).submit(
        quiz.id, [SubmittedAnswer(q1.id, 1), SubmittedAnswer(stray, 0)]
    )

    assert outcome.total_questions == 2
    assert outcome.score == 1
    assert outcome.results[1].question_id == stray
    assert outcome.results[1].is_correct is False
    assert outcome.results[1].points == 0


@pytest.mark.asyncio
async def test_questions_from_other_quizzes_score_zero(store, three_question_quiz):
    quiz, _ = three_question_quiz
    other = store.add_quiz(title="Other")
    foreign = store.add_question(other, correct_answer=0, points=5)

    outcome = await SubmissionService(store).submit(quiz.id, answers_for((foreign, 0)))

    assert outcome.score == 0
    assert outcome.total_questions == 1


@pytest.mark.asyncio
async def test_repeated_question_only_scores_once(store, three_question_quiz):
    quiz, (_, _, q3) = three_question_quiz

    outcome = await SubmissionService(store).submit(quiz.id, answers_for((q3, 2), (q3, 2), (q3, 2)))

    assert outcome.score == 2
    assert outcome.total_questions == 3
    assert [r.points for r in outcome.results] == [2, 0, 0]


@pytest.mark.asyncio
async def test_out_of_range_answer_rejects_submission(store, three_question_quiz, user_id):
    quiz, (q1, _, q3) = three_question_quiz

    with pytest.raises(ValidationError) as exc_info:
        await SubmissionService(store).submit(quiz.id, answers_for((q1, 1), (q3, 3)), user_id=user_id)

    assert len(exc_info.value.details) == 1
    assert store.scores == []


@pytest.mark.asyncio
async def test_inactive_quiz_is_not_found(store, three_question_quiz):
    quiz, (q1, _, _) = three_question_quiz
    quiz.is_active = False

    with pytest.raises(NotFound):
        await SubmissionService(store).submit(quiz.id, answers_for((q1, 1)))


@pytest.mark.asyncio
async def test_unknown_quiz_is_not_found(store):
    with pytest.raises(NotFound):
        await SubmissionService(store).submit(uuid.uuid4(), [SubmittedAnswer(uuid.uuid4(), 0)])


@pytest.mark.asyncio
async def test_empty_answers_are_rejected(store, three_question_quiz):
    quiz, _ = three_question_quiz
    with pytest.raises(ValidationError):
        await SubmissionService(store).submit(quiz.id, [])


@pytest.mark.asyncio
async def test_questions_loaded_in_one_lookup(store, three_question_quiz):
    quiz, (q1, q2, q3) = three_question_quiz

    await SubmissionService(store).submit(quiz.id, answers_for((q1, 0), (q2, 0), (q3, 0)))

    assert store.lookups == 1


@pytest.mark.asyncio
async def test_save_failure_still_returns_score(store, three_question_quiz, user_id):
    quiz, (q1, _, _) = three_question_quiz
    store.fail_on_save = True

    outcome = await SubmissionService(store).submit(quiz.id, answers_for((q1, 1)), user_id=user_id)

    assert outcome.score == 1
    assert outcome.saved is False
    assert outcome.score_id is None
