"""
Callback dispatch for one streaming session.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Generic, TypeVar

T = TypeVar("T")

OnData = Callable[[T], Any]
OnOpen = Callable[[], Any]
OnError = Callable[[BaseException], Any]
OnDone = Callable[[], Any]


class CallbackRouter(Generic[T]):
    """
    Invokes caller hooks while enforcing the session's dispatch limits.

    - ``on_open`` at most once, never after a terminal callback
    - ``on_data`` never after a terminal callback
    - exactly one of ``on_done`` / ``on_error``

    Exceptions raised by callbacks propagate to the caller unchanged.
    """

    def __init__(
        self,
        on_data: OnData[T],
        on_open: OnOpen | None = None,
        on_error: OnError | None = None,
        on_done: OnDone | None = None,
    ):
        self._on_data = on_data
        self._on_open = on_open
        self._on_error = on_error
        self._on_done = on_done
        self._opened = False
        self._terminated = False

    @property
    def terminated(self) -> bool:
        return self._terminated

    def open(self) -> None:
        if self._opened or self._terminated:
            return
        self._opened = True
        if self._on_open is not None:
            self._on_open()

    def data(self, message: T) -> bool:
        """Dispatch one message; returns False if the session already ended."""
        if self._terminated:
            return False
        self._on_data(message)
        return True

    def error(self, error: BaseException) -> bool:
        """Dispatch the terminal error; returns False if already terminated."""
        if self._terminated:
            return False
        self._terminated = True
        if self._on_error is not None:
            self._on_error(error)
        return True

    def done(self) -> bool:
        """Dispatch normal completion; returns False if already terminated."""
        if self._terminated:
            return False
        self._terminated = True
        if self._on_done is not None:
            self._on_done()
        return True
