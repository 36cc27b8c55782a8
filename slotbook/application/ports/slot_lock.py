from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager


class SlotLockPort(ABC):
    @abstractmethod
    def hold(self, key: str) -> AbstractContextManager[None]:
        """
        Hold an exclusive lease on key for the duration of the with-block.
        Raises LockUnavailable if the lease cannot be taken in time.
        """
        raise NotImplementedError
