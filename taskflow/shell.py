import logging
from typing import Optional

from .auth_view import AuthView
from .models import Session
from .remote import AuthBackend, TaskBackend
from .session import SessionController
from .todo_view import TodoListView

logger = logging.getLogger(__name__)

class AppShell:
    """
    Держит ровно один экран: вход без сессии, список задач с сессией.
    Экран пересоздаётся только когда меняется наличие сессии.
    """

    def __init__(self, controller: SessionController, auth: AuthBackend, tasks: TaskBackend):
        self.controller = controller
        self.auth = auth
        self.tasks = tasks
        self.auth_view: Optional[AuthView] = None
        self.todo_view: Optional[TodoListView] = None
        self._switch(controller.is_active)
        self._sub = controller.subscribe(self._on_session)

    @property
    def view(self) -> str:
        return "todos" if self.todo_view is not None else "auth"

    def _on_session(self, session: Optional[Session]) -> None:
        self._switch(session is not None)

    def _switch(self, active: bool) -> None:
        if active and self.todo_view is None:
            logger.info("Session started, showing task list")
            self.todo_view = TodoListView(self.auth, self.tasks)
            self.auth_view = None
        elif not active and self.auth_view is None:
            logger.info("No session, showing sign in")
            self.auth_view = AuthView(self.auth)
            self.todo_view = None

    async def render(self) -> dict:
        if self.todo_view is not None:
            view = self.todo_view
            if not view.mounted:
                await view.mount()
            return {"view": "todos", "todos": view.render()}
        return {"view": "auth", "auth": self.auth_view.render()}

    def close(self) -> None:
        self._sub.unsubscribe()
