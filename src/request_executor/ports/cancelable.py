"""Cancellation capability."""

from typing import Protocol


class ICancelable(Protocol):
    """Handle to an in-flight operation that can be told to stop.

    ``cancel`` must be idempotent: a second call is a no-op.
    """

    def cancel(self) -> None: ...
