from typing import Annotated, Any
from uuid import UUID
from pydantic import BeforeValidator


def _stringify_id(value: Any) -> Any:
    return str(value) if isinstance(value, UUID) else value


# Ids travel as strings on the client side; the SQL gateway hands back UUIDs.
EntityId = Annotated[str, BeforeValidator(_stringify_id)]
