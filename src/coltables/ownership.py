"""Shared-ownership counting for column stores and attribute sets."""

from __future__ import annotations

import threading

from coltables.errors import OwnershipError


class Owned:
    """A handle whose storage is released when its last owner lets go.

    Tables acquire every handle they hold and release each one exactly once.
    A handle starts unowned (count 0) so that values built but never placed
    in a table are simply garbage collected.
    """

    def __init__(self) -> None:
        self._ref_count = 0
        self._released = False
        self._lock = threading.Lock()

    @property
    def ref_count(self) -> int:
        """Return the number of owners currently holding this handle."""
        return self._ref_count

    @property
    def released(self) -> bool:
        """Return whether the backing storage has been released."""
        return self._released

    def acquire(self) -> None:
        """Register one more owner."""
        with self._lock:
            if self._released:
                raise OwnershipError(f"{self!r} was already released")
            self._ref_count += 1

    def release(self) -> None:
        """Drop one owner, releasing the storage when none remain."""
        with self._lock:
            if self._ref_count <= 0:
                raise OwnershipError(f"{self!r} released more times than acquired")
            self._ref_count -= 1
            if self._ref_count:
                return
            self._released = True
        self._release_storage()

    def _unacquire(self) -> None:
        """Undo an acquire that was never handed to an owner; storage is kept."""
        with self._lock:
            if self._ref_count <= 0:
                raise OwnershipError(f"{self!r} released more times than acquired")
            self._ref_count -= 1

    def _check_live(self) -> None:
        if self._released:
            raise OwnershipError(f"{self!r} was already released")

    def _release_storage(self) -> None:
        """Drop the reference to the backing storage."""
        raise NotImplementedError
