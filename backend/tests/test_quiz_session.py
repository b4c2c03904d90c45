"""Tests for quiz generation and answer checking."""

from __future__ import annotations

import asyncio

import pytest

from studybrain.client.errors import ChatRequestError, QuizValidationError
from studybrain.client.quiz import QuizSession

QUESTIONS = [
    {"id": 1, "question": "2 + 2?", "type": "mcq", "options": ["3", "4", "5", "6"], "correctAnswer": "4"},
    {"id": 2, "question": "Sky is blue", "type": "true_false", "options": ["True", "False"], "correctAnswer": "True"},
    {"id": 3, "question": "Pick primes", "type": "multiple_correct", "options": ["2", "3", "4"], "correctAnswer": "2, 3"},
]


class FakeQuizClient:
    def __init__(self):
        self.calls: list[dict] = []
        self.fail = False

    async def post_action(self, endpoint: str, payload: dict) -> dict:
        self.calls.append(payload)
        if self.fail:
            raise ChatRequestError("Rate limit exceeded.", 429)
        if payload["action"] == "quiz":
            return {"questions": QUESTIONS}
        return {"feedback": "Score: 3/3"}


def generated_session() -> tuple[QuizSession, FakeQuizClient]:
    client = FakeQuizClient()
    session = QuizSession(client, max_pages=30, max_questions=20)
    asyncio.run(session.generate("page text", 1, 3, num_questions=3, question_types=["mcq", "true_false", "multiple_correct"]))
    return session, client


class TestValidation:
    @pytest.mark.parametrize(
        "page_from,page_to,num,types",
        [
            (1, 31, 5, ["mcq"]),
            (5, 4, 5, ["mcq"]),
            (1, 2, 0, ["mcq"]),
            (1, 2, 21, ["mcq"]),
            (1, 2, 5, []),
            (1, 2, 5, ["essay"]),
        ],
    )
    def test_rejected_before_any_request(self, page_from, page_to, num, types):
        client = FakeQuizClient()
        session = QuizSession(client, max_pages=30, max_questions=20)
        with pytest.raises(QuizValidationError):
            asyncio.run(session.generate("text", page_from, page_to, num_questions=num, question_types=types))
        assert client.calls == []

    def test_thirty_pages_allowed(self):
        client = FakeQuizClient()
        session = QuizSession(client, max_pages=30, max_questions=20)
        asyncio.run(session.generate("text", 1, 30, question_types=["short"]))
        assert len(client.calls) == 1


class TestGenerate:
    def test_payload_and_questions(self):
        session, client = generated_session()
        payload = client.calls[0]
        assert payload["action"] == "quiz"
        assert payload["numQuestions"] == 3
        assert payload["questionTypes"] == ["mcq", "true_false", "multiple_correct"]
        assert payload["pageFrom"] == 1 and payload["pageTo"] == 3
        assert [q.id for q in session.questions] == [1, 2, 3]
        assert session.questions[0].correct_answer == "4"
        assert session.is_generating is False

    def test_failure_clears_loading_flag(self):
        client = FakeQuizClient()
        client.fail = True
        session = QuizSession(client)
        with pytest.raises(ChatRequestError):
            asyncio.run(session.generate("text", 1, 1))
        assert session.is_generating is False
        assert session.questions == []


class TestAnswers:
    def test_all_answered_requires_every_question(self):
        session, _ = generated_session()
        session.set_answer(1, "4")
        session.set_answer(2, "True")
        assert not session.all_answered()
        session.toggle_multi_answer(3, "2")
        assert session.all_answered()

    def test_multi_answers_joined(self):
        session, _ = generated_session()
        multi = session.questions[2]
        session.toggle_multi_answer(3, "2")
        session.toggle_multi_answer(3, "4")
        session.toggle_multi_answer(3, "3")
        session.toggle_multi_answer(3, "4")
        assert session.answer_for(multi) == "2, 3"

    def test_check_requires_all_answers(self):
        session, client = generated_session()
        with pytest.raises(QuizValidationError):
            asyncio.run(session.check_answers())
        assert len(client.calls) == 1

    def test_check_sends_one_bundled_request(self):
        session, client = generated_session()
        session.set_answer(1, "4")
        session.set_answer(2, "False")
        session.toggle_multi_answer(3, "2")
        session.toggle_multi_answer(3, "3")

        feedback = asyncio.run(session.check_answers())

        assert feedback == "Score: 3/3" and session.feedback == feedback
        payload = client.calls[-1]
        assert payload["action"] == "check-answers"
        assert payload["answers"] == [
            {"questionId": 1, "question": "2 + 2?", "correctAnswer": "4", "userAnswer": "4"},
            {"questionId": 2, "question": "Sky is blue", "correctAnswer": "True", "userAnswer": "False"},
            {"questionId": 3, "question": "Pick primes", "correctAnswer": "2, 3", "userAnswer": "2, 3"},
        ]
        assert session.is_checking is False

    def test_new_generate_replaces_questions_and_answers(self):
        session, _ = generated_session()
        session.set_answer(1, "4")
        asyncio.run(session.generate("other", 4, 5, num_questions=3, question_types=["mcq"]))
        assert session.answer_for(session.questions[0]) == ""
