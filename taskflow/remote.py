"""
Внешний сервис (Supabase): авторизация и хранение задач.

Остальной код зависит только от протоколов AuthBackend и TaskBackend,
поэтому в тестах их заменяет фейк из tests/fakes.py.
"""

import logging
from contextlib import contextmanager
from typing import Callable, Optional, Protocol

import httpx
from pydantic import ValidationError
from supabase import AsyncClient, AuthError, PostgrestAPIError, acreate_client

from .config import Settings
from .models import Session, Task, User

logger = logging.getLogger(__name__)

SessionHandler = Callable[[Optional[Session]], None]

# ─────────────────────────────────────────
#  ОШИБКИ И ПОДПИСКИ
# ─────────────────────────────────────────

class RemoteError(Exception):
    """Любой сбой внешнего сервиса: сообщение сервиса или транспорта"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

class Subscription:
    """Токен отписки. release вызывается ровно один раз."""

    def __init__(self, release: Callable[[], None]):
        self._release: Optional[Callable[[], None]] = release

    @property
    def active(self) -> bool:
        return self._release is not None

    def unsubscribe(self) -> None:
        release, self._release = self._release, None
        if release is not None:
            release()

# ─────────────────────────────────────────
#  ПРОТОКОЛЫ
# ─────────────────────────────────────────

class AuthBackend(Protocol):
    async def get_session(self) -> Optional[Session]: ...

    def on_session_change(self, handler: SessionHandler) -> Subscription: ...

    async def sign_up(self, email: str, password: str) -> None: ...

    async def sign_in(self, email: str, password: str) -> None: ...

    async def get_user(self) -> Optional[User]: ...

    async def sign_out(self) -> None: ...

class TaskBackend(Protocol):
    async def select_tasks(self) -> list[Task]: ...

    async def insert_task(self, title: str, user_id: str) -> None: ...

    async def update_task(self, task_id: str, fields: dict) -> None: ...

    async def delete_task(self, task_id: str) -> None: ...

# ─────────────────────────────────────────
#  SUPABASE
# ─────────────────────────────────────────

@contextmanager
def translate_errors():
    """Переводит ошибки supabase/httpx в RemoteError"""
    try:
        yield
    except AuthError as err:
        raise RemoteError(err.message) from err
    except PostgrestAPIError as err:
        raise RemoteError(err.message or str(err)) from err
    except httpx.HTTPError as err:
        raise RemoteError(str(err) or type(err).__name__) from err

def parse_tasks(rows) -> list[Task]:
    """Строки таблицы в задачи. Битая строка считается сбоем сервиса."""
    try:
        return [Task.from_row(row) for row in rows or []]
    except (ValidationError, KeyError) as err:
        raise RemoteError(f"Malformed task row: {err}") from err

def to_session(raw) -> Optional[Session]:
    if raw is None or raw.user is None:
        return None
    return Session(
        user_id=str(raw.user.id),
        email=raw.user.email,
        access_token=raw.access_token,
        refresh_token=raw.refresh_token,
        expires_at=raw.expires_at,
    )

class SupabaseBackend:
    def __init__(self, client: AsyncClient, table: str = "todos"):
        self.client = client
        self.table = table

    @classmethod
    async def connect(cls, settings: Settings) -> "SupabaseBackend":
        url, key = settings.supabase_credentials()
        logger.info("Connecting to %s (table %r)", url, settings.todos_table)
        client = await acreate_client(url, key)
        return cls(client, settings.todos_table)

    # ── авторизация ──

    async def get_session(self) -> Optional[Session]:
        with translate_errors():
            return to_session(await self.client.auth.get_session())

    def on_session_change(self, handler: SessionHandler) -> Subscription:
        def callback(event, session):
            logger.debug("Auth event %s", event)
            handler(to_session(session))

        raw = self.client.auth.on_auth_state_change(callback)
        return Subscription(raw.unsubscribe)

    async def sign_up(self, email: str, password: str) -> None:
        with translate_errors():
            await self.client.auth.sign_up({"email": email, "password": password})

    async def sign_in(self, email: str, password: str) -> None:
        with translate_errors():
            await self.client.auth.sign_in_with_password({"email": email, "password": password})

    async def get_user(self) -> Optional[User]:
        with translate_errors():
            res = await self.client.auth.get_user()
        if res is None or res.user is None:
            return None
        return User(id=str(res.user.id), email=res.user.email)

    async def sign_out(self) -> None:
        with translate_errors():
            await self.client.auth.sign_out()

    # ── задачи ──

    async def select_tasks(self) -> list[Task]:
        # Видимость строк ограничивает RLS на стороне сервиса
        with translate_errors():
            res = await (
                self.client.table(self.table)
                .select("*")
                .order("created_at", desc=True)
                .execute()
            )
        return parse_tasks(res.data)

    async def insert_task(self, title: str, user_id: str) -> None:
        with translate_errors():
            await self.client.table(self.table).insert([{"title": title, "user_id": user_id}]).execute()

    async def update_task(self, task_id: str, fields: dict) -> None:
        with translate_errors():
            await self.client.table(self.table).update(fields).eq("id", task_id).execute()

    async def delete_task(self, task_id: str) -> None:
        with translate_errors():
            await self.client.table(self.table).delete().eq("id", task_id).execute()
