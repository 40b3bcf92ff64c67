# printdesk/db/schemas/common_schemas.py
from pydantic import BaseModel, Field
from typing import Any, List, Optional
from datetime import datetime, timezone
import uuid


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_document_key() -> str:
    return uuid.uuid4().hex


# --- Common API Messages ---
class MsgDetail(BaseModel):
    msg: str = Field(..., description="A detail message for responses.")


class ErrorDetail(BaseModel):
    loc: List[Any] = Field(default_factory=list)
    msg: str
    type: str


class ErrorResponse(BaseModel):
    detail: str
    kind: str
    errors: Optional[List[Any]] = None
