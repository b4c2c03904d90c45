import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from studybrain.config import settings
from studybrain.routers import pdf_chat, video_chat, youtube
from studybrain.middleware import LoggingMiddleware

log_level = getattr(logging, settings.log_level.upper(), logging.INFO)
logging.basicConfig(
    level=log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logging.getLogger("uvicorn.access").setLevel(logging.INFO)
logging.getLogger("uvicorn").setLevel(logging.INFO)

# SQL statements only when LOG_SQL is on
if settings.log_sql:
    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)
else:
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting StudyBrain API server...")
    logger.info("Root path: %s", settings.root_path or "/ (no prefix)")
    logger.info("OpenAI models: %s", settings.openai_models)
    if not settings.openai_api_key:
        logger.warning("OPENAI_API_KEY is not set; AI endpoints will answer 500")
    if not settings.youtube_api_key:
        logger.warning("YOUTUBE_API_KEY is not set; /youtube-playlist will answer 500")
    if not settings.api_token:
        logger.warning("API_TOKEN is not set; bearer check disabled")
    logger.info("Available endpoints: POST /pdf-chat, POST /video-chat, GET /youtube-playlist, GET /health")
    yield
    logger.info("Shutting down server...")


app = FastAPI(title="StudyBrain API", version="0.1.0", root_path=settings.root_path, lifespan=lifespan)

# first, so every request is logged
app.add_middleware(LoggingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(
        "Unhandled exception: %s: %s",
        exc.__class__.__name__,
        exc,
        exc_info=True,
        extra={"path": str(request.url), "method": request.method},
    )
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


app.include_router(pdf_chat.router, tags=["pdf"])
app.include_router(video_chat.router, tags=["video"])
app.include_router(youtube.router, tags=["youtube"])


@app.get("/health")
def health():
    return {"status": "ok"}
