import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, StreamingResponse

from studybrain.dependencies import verify_api_token
from studybrain.schemas.chat import VideoChatRequest
from studybrain.services import openai_service, prompts, youtube_service
from studybrain.services.openai_service import AIServiceError

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(verify_api_token)])


@router.post("/video-chat")
async def video_chat(body: VideoChatRequest):
    transcript = await youtube_service.fetch_transcript(body.video_id)
    system_prompt = prompts.video_chat_prompt(
        body.video_title, transcript, body.current_time, body.start_time, body.end_time
    )
    messages = [{"role": "system", "content": system_prompt}]
    messages += [m.model_dump() for m in body.messages]
    try:
        stream = await openai_service.open_chat_stream(messages)
    except AIServiceError as e:
        logger.warning("video-chat for %s failed (%s): %s", body.video_id, e.status_code, e.message)
        return JSONResponse(status_code=e.status_code, content={"error": e.message})
    return StreamingResponse(stream, media_type="text/event-stream")
