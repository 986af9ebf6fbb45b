"""Tests for utils/user_context.py - owner identity propagation via contextvars."""

import asyncio
import threading
from uuid import uuid4

import pytest

from utils.user_context import (
    get_current_user_id,
    set_current_user_id,
    clear_current_user_id,
    user_context,
)


class TestGetCurrentUserId:

    def test_raises_without_owner(self):
        with pytest.raises(RuntimeError, match="No user context"):
            get_current_user_id()

    def test_set_then_get(self):
        owner_id = uuid4()
        set_current_user_id(owner_id)

        assert get_current_user_id() == owner_id

    def test_clear_then_get_raises(self):
        set_current_user_id(uuid4())
        clear_current_user_id()

        with pytest.raises(RuntimeError):
            get_current_user_id()


class TestUserContextManager:
    """Tests for user_context()."""

    def test_nested_restores_outer_owner(self):
        outer_id, inner_id = uuid4(), uuid4()

        with user_context(outer_id):
            with user_context(inner_id):
                assert get_current_user_id() == inner_id
            assert get_current_user_id() == outer_id

        with pytest.raises(RuntimeError):
            get_current_user_id()

    def test_cleared_when_body_raises(self):
        with pytest.raises(ValueError):
            with user_context(uuid4()):
                raise ValueError("invoice rejected")

        with pytest.raises(RuntimeError):
            get_current_user_id()


class TestIsolation:
    """Concurrent requests must never see each other's owner."""

    def test_threads_do_not_share_owner(self):
        set_current_user_id(uuid4())
        seen = []

        def worker():
            try:
                get_current_user_id()
                seen.append("leaked")
            except RuntimeError:
                seen.append("isolated")

        thread = threading.Thread(target=worker)
        thread.start()
        thread.join()

        assert seen == ["isolated"]

    def test_concurrent_tasks_keep_their_own_owner(self):
        owners = [uuid4() for _ in range(5)]

        async def handle(owner_id):
            with user_context(owner_id):
                await asyncio.sleep(0)
                return get_current_user_id()

        async def run_all():
            return await asyncio.gather(*(handle(o) for o in owners))

        assert asyncio.run(run_all()) == owners
