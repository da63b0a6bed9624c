"""
Экран списка задач.

Локальный список никогда не правится на месте: после каждой успешной
операции список целиком перечитывается из сервиса. Ошибки операций
пишутся в лог и больше никак не проявляются.
"""

import asyncio
import logging
from typing import Optional

from .models import Task, User
from .remote import AuthBackend, RemoteError, TaskBackend

logger = logging.getLogger(__name__)

class TodoListView:
    def __init__(self, auth: AuthBackend, tasks: TaskBackend):
        self.auth = auth
        self.tasks = tasks
        self.todos: list[Task] = []
        self.new_todo = ""
        self.loading = True
        self.user: Optional[User] = None
        self.mounted = False

    # ── загрузка ──

    async def mount(self) -> None:
        """Пользователь и список запрашиваются параллельно, без порядка"""
        self.mounted = True
        await asyncio.gather(self.fetch_user(), self.fetch_todos())

    async def fetch_user(self) -> None:
        try:
            self.user = await self.auth.get_user()
        except RemoteError as e:
            logger.error("Error fetching user: %s", e.message)

    async def reload(self) -> None:
        """Перечитать список. При ошибке прежний список остаётся."""
        self.todos = await self.tasks.select_tasks()

    async def fetch_todos(self) -> None:
        try:
            await self.reload()
        except RemoteError as e:
            logger.error("Error fetching todos: %s", e.message)
        finally:
            self.loading = False

    # ── изменения (бросают RemoteError) ──

    async def create(self, title: str, user_id: str) -> None:
        await self.tasks.insert_task(title, user_id)

    async def flip(self, task_id: str, completed: bool) -> None:
        await self.tasks.update_task(task_id, {"completed": not completed})

    async def remove(self, task_id: str) -> None:
        await self.tasks.delete_task(task_id)

    # ── операции экрана ──

    async def add(self, text: Optional[str] = None) -> bool:
        if text is not None:
            self.new_todo = text
        title = self.new_todo.strip()
        if not title:
            return False
        if self.user is None:
            logger.error("Error adding todo: No user found")
            return False
        try:
            await self.create(title, self.user.id)
        except RemoteError as e:
            logger.error("Error adding todo: %s", e.message)
            return False
        self.new_todo = ""
        await self.fetch_todos()
        return True

    async def toggle(self, task_id: str) -> None:
        task = self.find(task_id)
        if task is None:
            logger.error("Error updating todo: unknown id %s", task_id)
            return
        try:
            await self.flip(task.id, task.completed)
        except RemoteError as e:
            logger.error("Error updating todo: %s", e.message)
            return
        await self.fetch_todos()

    async def delete(self, task_id: str) -> None:
        try:
            await self.remove(task_id)
        except RemoteError as e:
            logger.error("Error deleting todo: %s", e.message)
            return
        await self.fetch_todos()

    async def sign_out(self) -> None:
        # Экран сменит уведомление о сессии, локальный список не трогаем
        try:
            await self.auth.sign_out()
        except RemoteError as e:
            logger.error("Error signing out: %s", e.message)

    def find(self, task_id: str) -> Optional[Task]:
        for t in self.todos:
            if t.id == task_id:
                return t
        return None

    # ── отображение ──

    @property
    def screen(self) -> str:
        if self.loading:
            return "loading"
        return "list" if self.todos else "empty"

    def render(self) -> dict:
        return {
            "screen": self.screen,
            "title": "My Tasks",
            "email": self.user.email if self.user else None,
            "new_todo": self.new_todo,
            "placeholder": "What needs to be done?",
            "add_label": "Add Task",
            "sign_out_label": "Sign out",
            "loading_text": "Loading your todos...",
            "empty_text": "No tasks yet. Add your first task above!",
            "items": [
                {
                    "id": t.id,
                    "title": t.title,
                    "completed": t.completed,
                    "icon": "check-circle" if t.completed else "circle",
                    "struck": t.completed,
                }
                for t in self.todos
            ],
        }
