from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass

from noted.config import TOAST_TTL
from noted.store import Writable

TOAST_TYPES = ("success", "error", "info")


@dataclass
class Toast:
    id: str
    type: str  # "success", "error" or "info"
    message: str


class ToastQueue:
    """Transient notifications. Each toast expires on its own timer."""

    def __init__(self, ttl: float = TOAST_TTL) -> None:
        self.ttl = ttl
        self.toasts: Writable[list[Toast]] = Writable([])

    def add(self, type: str, message: str) -> Toast:
        if type not in TOAST_TYPES:
            raise ValueError(f"Unknown toast type: {type}")
        toast = Toast(id=str(uuid.uuid4()), type=type, message=message)
        self.toasts.update(lambda items: [*items, toast])
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # no loop to expire on; the caller dismisses it
            return toast
        loop.call_later(self.ttl, self.dismiss, toast.id)
        return toast

    def dismiss(self, toast_id: str) -> None:
        self.toasts.update(lambda items: [t for t in items if t.id != toast_id])

    def success(self, message: str) -> Toast:
        return self.add("success", message)

    def error(self, message: str) -> Toast:
        return self.add("error", message)

    def info(self, message: str) -> Toast:
        return self.add("info", message)

    def report(self, exc: BaseException) -> Toast:
        return self.error(str(exc) or exc.__class__.__name__)
