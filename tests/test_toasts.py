from __future__ import annotations

import asyncio
from unittest.mock import patch

import pytest

from noted.stores.toasts import ToastQueue


def test_toast_expires_after_ttl():
    async def scenario():
        queue = ToastQueue(ttl=0.05)
        toast = queue.success("Saved")
        assert [t.id for t in queue.toasts.get()] == [toast.id]
        await asyncio.sleep(0.1)
        assert queue.toasts.get() == []

    asyncio.run(scenario())


def test_default_ttl_is_three_seconds():
    async def scenario():
        queue = ToastQueue()
        loop = asyncio.get_running_loop()
        with patch.object(loop, "call_later") as call_later:
            toast = queue.info("Hello")
        call_later.assert_called_once_with(3.0, queue.dismiss, toast.id)

    asyncio.run(scenario())


def test_toasts_expire_independently():
    async def scenario():
        queue = ToastQueue(ttl=0.2)
        first = queue.error("First")
        await asyncio.sleep(0.1)
        second = queue.info("Second")
        assert [t.id for t in queue.toasts.get()] == [first.id, second.id]
        await asyncio.sleep(0.15)
        assert [t.id for t in queue.toasts.get()] == [second.id]
        await asyncio.sleep(0.1)
        assert queue.toasts.get() == []

    asyncio.run(scenario())


def test_dismiss_removes_only_that_toast():
    queue = ToastQueue()
    a = queue.success("a")
    b = queue.success("b")
    queue.dismiss(a.id)
    assert queue.toasts.get() == [b]
    queue.dismiss("missing")
    assert queue.toasts.get() == [b]


def test_unknown_toast_type_rejected():
    with pytest.raises(ValueError):
        ToastQueue().add("warning", "careful")


def test_report_uses_exception_message():
    queue = ToastQueue()
    toast = queue.report(RuntimeError("Backend unavailable"))
    assert (toast.type, toast.message) == ("error", "Backend unavailable")
    assert queue.report(RuntimeError()).message == "RuntimeError"
