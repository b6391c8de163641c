"""
client/singleflight.py -- Collapse concurrent identical calls into one.

SingleFlight.do(key, fn) runs fn once for any number of threads that ask for
the same key at the same time. The first caller (the leader) executes fn;
everyone arriving while it runs blocks and receives the leader's result, or
the leader's exception re-raised. Once the leader finishes the key is free
again, so a later call with the same key runs fn afresh.

SessionManager uses it to make sure a burst of 401s triggers exactly one
token refresh.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Hashable
from typing import Any, Optional


class _Call:
    __slots__ = ("done", "result", "error")

    def __init__(self) -> None:
        self.done = threading.Event()
        self.result: Any = None
        self.error: Optional[BaseException] = None


class SingleFlight:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._calls: dict[Hashable, _Call] = {}

    def do(self, key: Hashable, fn: Callable[[], Any]) -> Any:
        with self._lock:
            call = self._calls.get(key)
            leader = call is None
            if leader:
                call = self._calls[key] = _Call()

        if not leader:
            call.done.wait()
            if call.error is not None:
                raise call.error
            return call.result

        try:
            call.result = fn()
        except BaseException as exc:
            call.error = exc
            raise
        finally:
            with self._lock:
                del self._calls[key]
            call.done.set()
        return call.result
