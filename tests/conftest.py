# tests/conftest.py

from __future__ import annotations

import pytest

from taskflow.session import SessionController
from taskflow.todo_view import TodoListView

from .fakes import EMAIL, PASSWORD, FakeBackend


@pytest.fixture()
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture()
def signed_in(backend: FakeBackend) -> FakeBackend:
    """Backend with an existing account and an active session for it."""
    backend.add_account(EMAIL, PASSWORD)
    backend.start_session(EMAIL)
    return backend


@pytest.fixture()
def controller(backend: FakeBackend) -> SessionController:
    return SessionController(backend)


@pytest.fixture()
def todo_view(signed_in: FakeBackend) -> TodoListView:
    return TodoListView(signed_in, signed_in)
