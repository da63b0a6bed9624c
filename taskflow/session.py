import logging
from typing import Optional

from .models import Session
from .remote import AuthBackend, RemoteError, SessionHandler, Subscription

logger = logging.getLogger(__name__)

class SessionController:
    """
    Владелец текущей сессии.

    start() подписывается на изменения сессии в сервисе и один раз
    запрашивает текущую сессию. Каждое уведомление заменяет сохранённую
    сессию и передаётся подписчикам. stop() снимает все подписки.
    """

    def __init__(self, auth: AuthBackend):
        self.auth = auth
        self._session: Optional[Session] = None
        self._remote_sub: Optional[Subscription] = None
        self._listeners: dict[int, SessionHandler] = {}
        self._local_subs: dict[int, Subscription] = {}
        self._next_id = 0
        self._started = False

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def is_active(self) -> bool:
        return self._session is not None

    async def start(self) -> None:
        if self._started:
            raise RuntimeError("SessionController already started")
        self._started = True
        self._remote_sub = self.auth.on_session_change(self._set_session)
        try:
            session = await self.auth.get_session()
        except RemoteError as e:
            # Сбой запроса равен отсутствию сессии
            logger.warning("Session lookup failed: %s", e.message)
            session = None
        self._set_session(session)

    def stop(self) -> None:
        if self._remote_sub is not None:
            self._remote_sub.unsubscribe()
            self._remote_sub = None
        for sub in list(self._local_subs.values()):
            sub.unsubscribe()
        self._local_subs.clear()

    def subscribe(self, handler: SessionHandler) -> Subscription:
        key = self._next_id
        self._next_id += 1
        self._listeners[key] = handler
        sub = Subscription(lambda: self._release(key))
        self._local_subs[key] = sub
        return sub

    def _release(self, key: int) -> None:
        self._listeners.pop(key, None)
        self._local_subs.pop(key, None)

    def _set_session(self, session: Optional[Session]) -> None:
        self._session = session
        logger.debug("Session %s", "set" if session else "cleared")
        for handler in list(self._listeners.values()):
            handler(session)
