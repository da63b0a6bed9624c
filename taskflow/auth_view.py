import logging
from enum import Enum

from .remote import AuthBackend

logger = logging.getLogger(__name__)

class AuthMode(str, Enum):
    SIGN_IN = "signin"
    SIGN_UP = "signup"

class AuthView:
    """Экран входа и регистрации"""

    def __init__(self, auth: AuthBackend):
        self.auth = auth
        self.email = ""
        self.password = ""
        self.mode = AuthMode.SIGN_IN
        self.loading = False
        self.success = False

    def set_fields(self, email: str, password: str) -> None:
        self.email = email
        self.password = password

    def toggle_mode(self) -> None:
        self.mode = AuthMode.SIGN_UP if self.mode is AuthMode.SIGN_IN else AuthMode.SIGN_IN

    def continue_to_sign_in(self) -> None:
        self.success = False
        self.mode = AuthMode.SIGN_IN

    async def submit(self) -> None:
        """
        Один запрос к сервису: регистрация или вход.
        RemoteError пробрасывается наверх (там его покажут пользователю),
        поля и режим не меняются.
        """
        if self.success:
            logger.debug("Submit ignored: confirmation panel is shown")
            return
        self.loading = True
        try:
            if self.mode is AuthMode.SIGN_UP:
                await self.auth.sign_up(self.email, self.password)
                self.success = True
                logger.info("Account created for %s", self.email)
            else:
                # Переход к списку задач сделает уведомление о смене сессии
                await self.auth.sign_in(self.email, self.password)
        finally:
            self.loading = False

    def render(self) -> dict:
        if self.success:
            return {
                "screen": "success",
                "title": "Account Created Successfully!",
                "message": "You can now sign in with your credentials.",
                "action": "Continue to Sign In",
            }
        signin = self.mode is AuthMode.SIGN_IN
        return {
            "screen": "form",
            "mode": self.mode.value,
            "email": self.email,
            "loading": self.loading,
            "title": "Welcome back!" if signin else "Create your account",
            "prompt": "Don't have an account? " if signin else "Already have an account? ",
            "switch": "Sign up" if signin else "Sign in",
            "submit": "Sign in" if signin else "Create account",
        }
