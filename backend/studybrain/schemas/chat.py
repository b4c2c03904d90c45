from typing import Literal
from pydantic import BaseModel, Field

QuestionType = Literal["mcq", "true_false", "fill_blank", "multiple_correct", "short"]
ChatAction = Literal["translate", "quiz", "check-answers"]


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class QuizQuestion(BaseModel):
    id: int
    question: str
    type: QuestionType
    options: list[str] | None = None  # mcq / true_false / multiple_correct
    correct_answer: str = Field(alias="correctAnswer")

    class Config:
        populate_by_name = True


class AnswerSubmission(BaseModel):
    question_id: int = Field(alias="questionId")
    question: str
    correct_answer: str = Field(alias="correctAnswer")
    user_answer: str = Field(alias="userAnswer")

    class Config:
        populate_by_name = True


class PdfChatRequest(BaseModel):
    messages: list[ChatMessage] = []
    page_text: str | None = Field(None, alias="pageText")
    action: ChatAction | None = None
    language: str | None = None
    num_questions: int | None = Field(None, alias="numQuestions")
    question_types: list[QuestionType] | None = Field(None, alias="questionTypes")
    answers: list[AnswerSubmission] | None = None
    page_from: int | None = Field(None, alias="pageFrom")
    page_to: int | None = Field(None, alias="pageTo")

    class Config:
        populate_by_name = True


class VideoChatRequest(BaseModel):
    messages: list[ChatMessage] = []
    video_id: str = Field(alias="videoId")
    video_title: str | None = Field(None, alias="videoTitle")
    current_time: int | None = Field(None, alias="currentTime")
    start_time: int | None = Field(None, alias="startTime")
    end_time: int | None = Field(None, alias="endTime")

    class Config:
        populate_by_name = True


class TranslateResponse(BaseModel):
    translation: str


class QuizResponse(BaseModel):
    questions: list[QuizQuestion]


class FeedbackResponse(BaseModel):
    feedback: str
