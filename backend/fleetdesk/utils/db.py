"""Transaction boundary for mutating service calls.

All writers share one re-entrant lock: the process is the single writer, and
the lock turns each lifecycle operation (including the stock check-then-apply
of an issue) into one critical section. Sessions keep their objects across
commits, so the outermost transaction expires them once the lock is held and
every check reads rows as the previous writer left them.
"""
from __future__ import annotations

import threading
from contextlib import contextmanager

_WRITE_LOCK = threading.RLock()
_depth = threading.local()


@contextmanager
def transaction(session):
    with _WRITE_LOCK:
        outermost = getattr(_depth, 'value', 0) == 0
        _depth.value = getattr(_depth, 'value', 0) + 1
        try:
            if outermost:
                session.expire_all()
            yield session
            if outermost:
                session.commit()
        except Exception:
            if outermost:
                session.rollback()
            raise
        finally:
            _depth.value -= 1

__all__ = ['transaction']
