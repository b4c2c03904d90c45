from studybrain.db.session import async_session_maker, create_engine, create_session_maker, init_db, session_scope
from studybrain.db.base import Base

__all__ = ["async_session_maker", "create_engine", "create_session_maker", "init_db", "session_scope", "Base"]
