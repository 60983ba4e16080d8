"""
what the client sends to POST /generate and what it gets back.
range checks live in the generation service so direct callers get them too;
here only the types are enforced.
"""
from pydantic import BaseModel, Field
from typing import Any, Dict, Optional


class GenerateRequest(BaseModel):
    provider_id: Optional[int] = None
    prompt: str = ""
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    stream: Optional[bool] = None
    model: Optional[str] = None


class GenerateData(BaseModel):
    content: str
    usage: Dict[str, int] = Field(default_factory=dict)


class Envelope(BaseModel):
    code: int = 0
    message: str = "success"
    data: Optional[Any] = None
