from __future__ import annotations

import threading
from typing import Iterable

from .errors import NoProviderConfigured


class ProviderPool:
    """
    Strict round-robin over the configured provider ids.

    No weighting and no health tracking: a provider that just failed is picked
    again on its next turn. The cursor is only touched inside `select()`, under
    the lock and without any await in between.
    """

    def __init__(self, provider_ids: Iterable[str] = ()):
        self._lock = threading.Lock()
        self._ids: tuple[str, ...] = tuple(str(p) for p in provider_ids)
        self._cursor = 0

    @property
    def provider_ids(self) -> tuple[str, ...]:
        return self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def select(self) -> str:
        with self._lock:
            if not self._ids:
                raise NoProviderConfigured("No LLM providers selected")
            provider_id = self._ids[self._cursor]
            self._cursor = (self._cursor + 1) % len(self._ids)
            return provider_id
