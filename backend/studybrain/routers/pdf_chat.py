import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, StreamingResponse

from studybrain.dependencies import verify_api_token
from studybrain.schemas.chat import PdfChatRequest, TranslateResponse, QuizResponse, FeedbackResponse
from studybrain.services import openai_service, prompts
from studybrain.services.openai_service import AIServiceError

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(verify_api_token)])

DEFAULT_QUESTION_TYPES = ["mcq", "short"]


def error_response(e: AIServiceError) -> JSONResponse:
    return JSONResponse(status_code=e.status_code, content={"error": e.message})


@router.post("/pdf-chat")
async def pdf_chat(body: PdfChatRequest):
    try:
        if body.action == "translate":
            return await translate(body)
        if body.action == "quiz":
            return await quiz(body)
        if body.action == "check-answers":
            return await check_answers(body)

        messages = [{"role": "system", "content": prompts.pdf_chat_prompt(body.page_text)}]
        messages += [m.model_dump() for m in body.messages]
        stream = await openai_service.open_chat_stream(messages)
    except AIServiceError as e:
        logger.warning("pdf-chat %s failed (%s): %s", body.action or "chat", e.status_code, e.message)
        return error_response(e)
    return StreamingResponse(stream, media_type="text/event-stream")


async def translate(body: PdfChatRequest) -> TranslateResponse:
    language = prompts.language_name(body.language)
    translation = await openai_service.complete(
        prompts.translate_prompt(body.page_text, body.language),
        f"Please translate and explain this page in {language}.",
    )
    return TranslateResponse(translation=translation or "Translation failed.")


async def quiz(body: PdfChatRequest) -> QuizResponse:
    num_questions = body.num_questions or 4
    question_types = list(body.question_types or DEFAULT_QUESTION_TYPES)
    language = prompts.language_name(body.language)
    data = await openai_service.complete_with_tool(
        prompts.quiz_prompt(body.page_text, body.language, num_questions, question_types, body.page_from, body.page_to),
        f"Generate {num_questions} quiz questions in {language} based on this text.",
        prompts.quiz_tool(question_types),
    )
    return QuizResponse.model_validate({"questions": data.get("questions") or []})


async def check_answers(body: PdfChatRequest) -> FeedbackResponse:
    answers = [a.model_dump(by_alias=True) for a in body.answers or []]
    feedback = await openai_service.complete(
        prompts.check_answers_prompt(body.page_text, body.language, answers),
        "Please check my answers and give feedback.",
    )
    return FeedbackResponse(feedback=feedback or "Could not evaluate answers.")
