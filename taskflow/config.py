"""Настройки из переменных окружения.

Секреты не нужны при импорте: их проверяет supabase_credentials() при старте.
"""

import os
from dataclasses import dataclass
from typing import Optional

ENV_PREFIX = "TASKFLOW"

def _k(suffix: str) -> str:
    return f"{ENV_PREFIX}_{suffix}"

def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v

def _first_env(*names: str, default: Optional[str] = None) -> Optional[str]:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v.strip()
    return default

def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default

@dataclass(frozen=True, slots=True)
class Settings:
    supabase_url: Optional[str]
    supabase_key: Optional[str]
    todos_table: str
    host: str
    port: int
    log_level: str

    @staticmethod
    def from_env() -> "Settings":
        return Settings(
            supabase_url=_first_env(_k("SUPABASE_URL"), "SUPABASE_URL"),
            supabase_key=_first_env(_k("SUPABASE_ANON_KEY"), "SUPABASE_ANON_KEY"),
            todos_table=_env(_k("TODOS_TABLE"), "todos") or "todos",
            host=_env(_k("HOST"), "127.0.0.1"),
            port=_env_int(_k("PORT"), 8000),
            log_level=_env(_k("LOG_LEVEL"), "INFO").upper(),
        )

    def supabase_credentials(self) -> tuple[str, str]:
        """Адрес сервиса и ключ доступа; без них клиент не запустится"""
        if not self.supabase_url:
            raise RuntimeError("SUPABASE_URL is not set")
        if not self.supabase_key:
            raise RuntimeError("SUPABASE_ANON_KEY is not set")
        return self.supabase_url, self.supabase_key

def get_settings() -> Settings:
    return Settings.from_env()
