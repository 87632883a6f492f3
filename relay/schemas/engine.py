from typing import Optional

from pydantic import BaseModel


class EngineRequest(BaseModel):
    messages: list[str]  # only the triggering message, never a history window
    session_id: str
    speaker_name: Optional[str] = None
