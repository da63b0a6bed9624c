from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

# ─────────────────────────────────────────
#  МОДЕЛИ ДАННЫХ
# ─────────────────────────────────────────

class User(BaseModel):
    id: str
    email: Optional[str] = None

class Session(BaseModel):
    """Сессия, выданная сервисом авторизации"""
    user_id: str
    email: Optional[str] = None
    access_token: str = Field(..., repr=False)
    refresh_token: Optional[str] = Field(None, repr=False)
    expires_at: Optional[int] = None

class Task(BaseModel):
    id: str
    title: str
    completed: bool = False
    user_id: str
    created_at: datetime

    @classmethod
    def from_row(cls, row: dict) -> "Task":
        # id в Supabase может прийти числом (bigint) или uuid
        data = dict(row)
        data["id"] = str(data["id"])
        data["user_id"] = str(data["user_id"])
        return cls.model_validate(data)
