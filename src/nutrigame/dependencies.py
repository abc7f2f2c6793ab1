"""Shared FastAPI dependencies."""

from fastapi import Request

from nutrigame.clock import Clock
from nutrigame.notifications.push import PushDispatcher


def get_clock(request: Request) -> Clock:
    """The app-wide time source (replaced by a fixed clock in tests)."""
    return request.app.state.clock


def get_push(request: Request) -> PushDispatcher:
    return request.app.state.push
