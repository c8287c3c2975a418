# scoring.py
from fractions import Fraction
from math import floor
from typing import Iterable, Tuple

from errors import NotFoundError
from schemas import QuestionDetail, QuizResult

NOT_ANSWERED = "Not answered"


def percentage(correct: int, total: int) -> int:
    """correct/total as a whole percentage, halves rounded up (exact, no float drift)."""
    return floor(Fraction(correct * 100, total) + Fraction(1, 2))


def score_submission(store, quiz_id: int, answers: Iterable[Tuple[int, str]],
                     include_details: bool = False) -> QuizResult:
    """
    Grades (question_id, label) pairs against every stored question of the quiz.

    When a question id appears more than once, the later answer wins.
    Unanswered questions and answers to unknown ids count as incorrect.
    """
    questions = store.questions_by_quiz(quiz_id)
    if not questions:
        raise NotFoundError(f"No questions found for quiz {quiz_id}")

    selected = {}
    for question_id, label in answers:
        selected[question_id] = label

    correct = 0
    details = []
    for q in questions:
        answer = selected.get(q.id)
        is_correct = answer == q.correct_option
        if is_correct:
            correct += 1
        if include_details:
            details.append(QuestionDetail(
                question_id=q.id,
                question_text=q.question_text,
                user_answer=q.option_text(answer) if answer in q.options else NOT_ANSWERED,
                correct_answer=q.option_text(q.correct_option),
                is_correct=is_correct,
                explanation=q.explanation or None,
            ))

    return QuizResult(
        total_questions=len(questions),
        correct_answers=correct,
        score_percentage=percentage(correct, len(questions)),
        details=details if include_details else None,
    )
