import logging
from typing import Iterable

from pydantic import ValidationError

from studybrain.client.chat import PDF_CHAT, ChatClient
from studybrain.client.errors import ChatRequestError, QuizValidationError
from studybrain.config import settings
from studybrain.schemas.chat import AnswerSubmission, QuizQuestion

logger = logging.getLogger(__name__)

QUESTION_TYPES = ("mcq", "true_false", "fill_blank", "multiple_correct", "short")
DEFAULT_QUESTION_TYPES = ("mcq", "true_false")


class QuizSession:
    """One generated question set and the reader's answers to it.

    Questions are replaced on every ``generate`` and never cached across
    page ranges.
    """

    def __init__(self, client: ChatClient, max_pages: int | None = None, max_questions: int | None = None):
        self.client = client
        self.max_pages = max_pages or settings.quiz_max_pages
        self.max_questions = max_questions or settings.quiz_max_questions
        self.questions: list[QuizQuestion] = []
        self.feedback: str | None = None
        self.is_generating = False
        self.is_checking = False
        self._page_text = ""
        self._language = "english"
        self._answers: dict[int, str] = {}
        self._multi_answers: dict[int, list[str]] = {}

    def validate(self, page_from: int, page_to: int, num_questions: int, question_types: Iterable[str]) -> list[str]:
        if page_from < 1 or page_to < page_from:
            raise QuizValidationError(f"Invalid page range {page_from}-{page_to}")
        if page_to - page_from + 1 > self.max_pages:
            raise QuizValidationError(f"Maximum {self.max_pages} pages allowed for a quiz")
        if not 1 <= num_questions <= self.max_questions:
            raise QuizValidationError(f"Number of questions must be between 1 and {self.max_questions}")
        types = list(dict.fromkeys(question_types))
        if not types:
            raise QuizValidationError("Select at least one question type")
        unknown = [t for t in types if t not in QUESTION_TYPES]
        if unknown:
            raise QuizValidationError(f"Unknown question types: {', '.join(unknown)}")
        return types

    async def generate(
        self,
        page_text: str,
        page_from: int,
        page_to: int,
        num_questions: int = 5,
        question_types: Iterable[str] = DEFAULT_QUESTION_TYPES,
        language: str = "english",
    ) -> list[QuizQuestion]:
        types = self.validate(page_from, page_to, num_questions, question_types)
        self.is_generating = True
        try:
            data = await self.client.post_action(
                PDF_CHAT,
                {
                    "action": "quiz",
                    "messages": [],
                    "pageText": page_text,
                    "language": language,
                    "numQuestions": num_questions,
                    "questionTypes": types,
                    "pageFrom": page_from,
                    "pageTo": page_to,
                },
            )
            try:
                questions = [QuizQuestion.model_validate(q) for q in data.get("questions") or []]
            except ValidationError as e:
                raise ChatRequestError("Malformed quiz response") from e
        finally:
            self.is_generating = False

        if not questions:
            raise ChatRequestError("No questions generated")
        logger.info("Generated %d quiz questions for pages %d-%d", len(questions), page_from, page_to)
        self.questions = questions
        self.feedback = None
        self._page_text = page_text
        self._language = language
        self._answers.clear()
        self._multi_answers.clear()
        return questions

    def set_answer(self, question_id: int, value: str) -> None:
        self._answers[question_id] = value

    def toggle_multi_answer(self, question_id: int, value: str) -> None:
        current = self._multi_answers.setdefault(question_id, [])
        if value in current:
            current.remove(value)
        else:
            current.append(value)

    def answer_for(self, question: QuizQuestion) -> str:
        if question.type == "multiple_correct":
            return ", ".join(self._multi_answers.get(question.id, []))
        return self._answers.get(question.id, "")

    def all_answered(self) -> bool:
        return bool(self.questions) and all(self.answer_for(q) for q in self.questions)

    async def check_answers(self) -> str:
        if not self.all_answered():
            raise QuizValidationError("Please answer all questions")
        submissions = [
            AnswerSubmission(
                question_id=q.id,
                question=q.question,
                correct_answer=q.correct_answer,
                user_answer=self.answer_for(q),
            ).model_dump(by_alias=True)
            for q in self.questions
        ]
        self.is_checking = True
        try:
            data = await self.client.post_action(
                PDF_CHAT,
                {
                    "action": "check-answers",
                    "messages": [],
                    "pageText": self._page_text,
                    "language": self._language,
                    "answers": submissions,
                },
            )
        finally:
            self.is_checking = False

        feedback = data.get("feedback")
        if not isinstance(feedback, str):
            raise ChatRequestError("Malformed feedback response")
        self.feedback = feedback
        return feedback
