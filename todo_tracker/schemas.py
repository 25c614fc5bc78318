from datetime import date, datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

PRIORITY_PATTERN = "^P[0-4]$"
STATUS_PATTERN = "^(Todo|Done)$"


class TaskResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    due_date: date
    priority: str = Field(..., pattern=PRIORITY_PATTERN)
    status: str = Field(..., pattern=STATUS_PATTERN)
    parent_id: Optional[int] = None
    user_id: str
    created_at: Optional[datetime] = None


class TaskFilter(BaseModel):
    status: Optional[str] = Field(None, pattern=STATUS_PATTERN)
    due_before: Optional[date] = None
    due_on: Optional[date] = None
    due_after: Optional[date] = None
    due_until: Optional[date] = None
    created_from: Optional[datetime] = None
    created_before: Optional[datetime] = None


class DirectiveRequest(BaseModel):
    """Raw words of an add/subtask command, as typed on the command line"""

    words: List[str] = Field(..., min_length=1)


class TaskListResponse(BaseModel):
    tasks: List[TaskResponse]
    total: int


class Identity(BaseModel):
    user_id: str
    token_name: Optional[str] = None


class VerifyResponse(BaseModel):
    valid: bool = True
    user_id: str
    token_name: Optional[str] = None


class TokenResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    created_at: datetime
    expires_at: datetime


# Telegram webhook payloads, only the fields the bot reads
class TelegramChat(BaseModel):
    id: int


class TelegramMessage(BaseModel):
    chat: TelegramChat
    text: Optional[str] = None


class TelegramUpdate(BaseModel):
    update_id: Optional[int] = None
    message: Optional[TelegramMessage] = None


class DigestResponse(BaseModel):
    success: bool = True
    message: str
    delivered: bool
