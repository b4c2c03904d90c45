from studybrain.client.chat import AssistantAccumulator, ChatClient
from studybrain.client.gateway import SqlStudyGateway, StudyGateway, create_sql_gateway
from studybrain.client.playlist import PlaylistClient, import_playlist
from studybrain.client.quiz import QuizSession
from studybrain.client.sse import SSEDecoder, decode_sse_stream
from studybrain.client.store import FetchResult, Selection, StudyState, StudyStore
from studybrain.client.tasks import CancellableTask
from studybrain.client.translation import TranslationCache, TranslationState
from studybrain.client.tree_builder import build_exam_tree, flatten_exam_tree

__all__ = [
    "AssistantAccumulator",
    "ChatClient",
    "SqlStudyGateway",
    "StudyGateway",
    "create_sql_gateway",
    "PlaylistClient",
    "import_playlist",
    "QuizSession",
    "SSEDecoder",
    "decode_sse_stream",
    "FetchResult",
    "Selection",
    "StudyState",
    "StudyStore",
    "CancellableTask",
    "TranslationCache",
    "TranslationState",
    "build_exam_tree",
    "flatten_exam_tree",
]
