# tests/test_todo_view.py

from __future__ import annotations

import asyncio
import logging

import pytest

from taskflow.remote import RemoteError
from taskflow.todo_view import TodoListView

from .fakes import EMAIL, FakeBackend


def backend_titles(backend: FakeBackend) -> list[str]:
    rows = [r for r in backend.rows if r["user_id"] == backend.session.user_id]
    rows.sort(key=lambda r: r["created_at"], reverse=True)
    return [r["title"] for r in rows]


@pytest.mark.asyncio
async def test_mount_with_zero_tasks_shows_empty_state(todo_view: TodoListView) -> None:
    assert todo_view.screen == "loading"

    await todo_view.mount()

    assert todo_view.screen == "empty"
    assert todo_view.user.email == EMAIL
    page = todo_view.render()
    assert page["screen"] == "empty"
    assert page["empty_text"] == "No tasks yet. Add your first task above!"
    assert page["items"] == []


@pytest.mark.asyncio
async def test_loading_clears_only_after_list_settles(todo_view: TodoListView, signed_in: FakeBackend) -> None:
    signed_in.gates["select_tasks"] = asyncio.Event()

    mounting = asyncio.create_task(todo_view.mount())
    for _ in range(5):
        await asyncio.sleep(0)

    assert todo_view.user is not None
    assert todo_view.loading

    signed_in.gates["select_tasks"].set()
    await mounting
    assert not todo_view.loading


@pytest.mark.asyncio
async def test_failed_list_fetch_still_ends_loading(
    todo_view: TodoListView, signed_in: FakeBackend, caplog: pytest.LogCaptureFixture
) -> None:
    signed_in.fail["select_tasks"] = "permission denied"

    with caplog.at_level(logging.ERROR, logger="taskflow.todo_view"):
        await todo_view.mount()

    assert not todo_view.loading
    assert todo_view.screen == "empty"
    assert "Error fetching todos: permission denied" in caplog.text


@pytest.mark.asyncio
async def test_malformed_row_is_logged_not_raised(
    todo_view: TodoListView, signed_in: FakeBackend, caplog: pytest.LogCaptureFixture
) -> None:
    row = signed_in.seed("Buy milk", signed_in.session.user_id)
    row["completed"] = None

    with caplog.at_level(logging.ERROR, logger="taskflow.todo_view"):
        await todo_view.mount()

    assert not todo_view.loading
    assert todo_view.todos == []
    assert "Error fetching todos: Malformed task row" in caplog.text


@pytest.mark.asyncio
async def test_add_buy_milk(todo_view: TodoListView, signed_in: FakeBackend) -> None:
    await todo_view.mount()

    added = await todo_view.add("  Buy milk ")

    assert added
    assert signed_in.ops("insert_task") == [("insert_task", "Buy milk", signed_in.session.user_id)]
    first = todo_view.render()["items"][0]
    assert first["title"] == "Buy milk"
    assert first["completed"] is False
    assert first["icon"] == "circle"
    assert first["struck"] is False
    assert todo_view.new_todo == ""


@pytest.mark.asyncio
@pytest.mark.parametrize("text", ["", "   ", "\t\n"])
async def test_blank_title_is_a_no_op(todo_view: TodoListView, signed_in: FakeBackend, text: str) -> None:
    signed_in.seed("Existing", signed_in.session.user_id)
    await todo_view.mount()
    before = list(todo_view.todos)
    calls = len(signed_in.calls)

    assert not await todo_view.add(text)

    assert signed_in.ops("insert_task") == []
    assert len(signed_in.calls) == calls
    assert todo_view.todos == before


@pytest.mark.asyncio
async def test_add_without_user_is_logged_and_skipped(
    todo_view: TodoListView, signed_in: FakeBackend, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.ERROR, logger="taskflow.todo_view"):
        assert not await todo_view.add("Buy milk")

    assert signed_in.ops("insert_task") == []
    assert "No user found" in caplog.text


@pytest.mark.asyncio
async def test_failed_add_keeps_input_and_skips_reload(todo_view: TodoListView, signed_in: FakeBackend) -> None:
    await todo_view.mount()
    signed_in.fail["insert_task"] = "network down"
    reloads = len(signed_in.ops("select_tasks"))

    assert not await todo_view.add("Buy milk")

    assert todo_view.new_todo == "Buy milk"
    assert len(signed_in.ops("select_tasks")) == reloads
    assert todo_view.todos == []


@pytest.mark.asyncio
async def test_toggle_marks_done_and_back(todo_view: TodoListView, signed_in: FakeBackend) -> None:
    await todo_view.mount()
    await todo_view.add("Buy milk")
    task_id = todo_view.todos[0].id

    await todo_view.toggle(task_id)

    item = todo_view.render()["items"][0]
    assert signed_in.ops("update_task") == [("update_task", task_id, {"completed": True})]
    assert item["completed"] is True
    assert item["icon"] == "check-circle"
    assert item["struck"] is True

    await todo_view.toggle(task_id)
    assert todo_view.todos[0].completed is False


@pytest.mark.asyncio
async def test_toggle_unknown_id_sends_nothing(todo_view: TodoListView, signed_in: FakeBackend) -> None:
    await todo_view.mount()

    await todo_view.toggle("missing")

    assert signed_in.ops("update_task") == []


@pytest.mark.asyncio
async def test_failed_toggle_is_swallowed(todo_view: TodoListView, signed_in: FakeBackend) -> None:
    signed_in.seed("Buy milk", signed_in.session.user_id)
    await todo_view.mount()
    signed_in.fail["update_task"] = "timeout"

    await todo_view.toggle(todo_view.todos[0].id)

    assert todo_view.todos[0].completed is False


@pytest.mark.asyncio
async def test_delete_removes_row(todo_view: TodoListView, signed_in: FakeBackend) -> None:
    row = signed_in.seed("Buy milk", signed_in.session.user_id)
    await todo_view.mount()

    await todo_view.delete(row["id"])

    assert todo_view.todos == []
    assert todo_view.screen == "empty"


@pytest.mark.asyncio
async def test_list_after_mutation_matches_backend(todo_view: TodoListView, signed_in: FakeBackend) -> None:
    uid = signed_in.session.user_id
    signed_in.seed("first", uid)
    signed_in.seed("someone else", "other-user")
    await todo_view.mount()
    # changes made elsewhere show up on the next reload
    signed_in.seed("from another tab", uid)
    stale = signed_in.seed("second", uid)
    signed_in.rows.remove(stale)

    await todo_view.add("third")

    assert [t.title for t in todo_view.todos] == backend_titles(signed_in)
    assert [t.title for t in todo_view.todos] == ["third", "from another tab", "first"]


@pytest.mark.asyncio
async def test_reload_failure_keeps_previous_list(todo_view: TodoListView, signed_in: FakeBackend) -> None:
    signed_in.seed("Buy milk", signed_in.session.user_id)
    await todo_view.mount()
    before = list(todo_view.todos)
    signed_in.fail["select_tasks"] = "network down"

    with pytest.raises(RemoteError):
        await todo_view.reload()

    assert todo_view.todos == before


@pytest.mark.asyncio
async def test_mutation_step_raises_remote_error(todo_view: TodoListView, signed_in: FakeBackend) -> None:
    signed_in.fail["delete_task"] = "forbidden"

    with pytest.raises(RemoteError, match="forbidden"):
        await todo_view.remove("any")


@pytest.mark.asyncio
async def test_sign_out_leaves_local_list_alone(todo_view: TodoListView, signed_in: FakeBackend) -> None:
    signed_in.seed("Buy milk", signed_in.session.user_id)
    await todo_view.mount()

    await todo_view.sign_out()

    assert signed_in.session is None
    assert [t.title for t in todo_view.todos] == ["Buy milk"]


@pytest.mark.asyncio
async def test_failed_sign_out_is_logged(
    todo_view: TodoListView, signed_in: FakeBackend, caplog: pytest.LogCaptureFixture
) -> None:
    signed_in.fail["sign_out"] = "offline"

    with caplog.at_level(logging.ERROR, logger="taskflow.todo_view"):
        await todo_view.sign_out()

    assert signed_in.session is not None
    assert "Error signing out: offline" in caplog.text
