"""Single-use cancellation handle owned by a request descriptor."""

from __future__ import annotations

from typing import Callable


class CancellationToken:
    """A one-shot cancellation signal.

    Callbacks registered with :meth:`add_callback` run synchronously, in
    registration order, the first time :meth:`cancel` is called. A token
    never resets; a cancelled token stays cancelled.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._callbacks: list[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()

    def add_callback(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Register *callback* and return a function that unregisters it.

        If the token is already cancelled, *callback* runs immediately.
        """
        if self._cancelled:
            callback()
            return lambda: None
        self._callbacks.append(callback)

        def _remove() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return _remove
