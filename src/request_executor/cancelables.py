"""Concrete cancelables.

``AnonymousCancelable`` delegates to a closure; ``SerialCancelable`` owns a
replaceable inner cancelable so a multi-phase operation can swap what is
currently in flight without losing an earlier cancel request.
"""

from __future__ import annotations

import threading
from collections.abc import Callable

from request_executor.ports.cancelable import ICancelable


class AnonymousCancelable:
    """Runs ``action`` on the first ``cancel()`` call only."""

    def __init__(self, action: Callable[[], None]):
        self._action: Callable[[], None] | None = action
        self._lock = threading.Lock()

    @property
    def is_canceled(self) -> bool:
        return self._action is None

    def cancel(self) -> None:
        with self._lock:
            action, self._action = self._action, None
        if action is not None:
            action()


class SerialCancelable:
    """Composite cancelable with a replaceable inner.

    Assigning a new inner cancels the previous one first, then swaps.
    Assigning while already canceled cancels the new inner immediately.
    The canceled flag never clears.
    """

    def __init__(self, cancelable: ICancelable | None = None):
        self._lock = threading.Lock()
        self._is_canceled = False
        self._cancelable: ICancelable | None = None
        if cancelable is not None:
            self.cancelable = cancelable

    @property
    def is_canceled(self) -> bool:
        return self._is_canceled

    @property
    def cancelable(self) -> ICancelable | None:
        return self._cancelable

    @cancelable.setter
    def cancelable(self, value: ICancelable | None) -> None:
        with self._lock:
            previous, self._cancelable = self._cancelable, value
            canceled = self._is_canceled
        # inner cancels run outside the lock, they may call back into us
        if previous is not None and previous is not value:
            previous.cancel()
        if canceled and value is not None:
            value.cancel()

    def cancel(self) -> None:
        with self._lock:
            if self._is_canceled:
                return
            self._is_canceled = True
            inner = self._cancelable
        if inner is not None:
            inner.cancel()
