"""Non-critical side effects.

Audit logging and session-counter flushes must be attempted but must never
fail a program.  Functions decorated with :func:`non_critical` never raise;
they return a :class:`SideEffectResult` instead.  Only a caller on the
critical path should call :meth:`SideEffectResult.raise_for_error`.
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SideEffectResult:
    ok: bool
    error: Optional[Exception] = None

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise self.error


def non_critical(func: Callable[..., Any]) -> Callable[..., SideEffectResult]:
    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> SideEffectResult:
        try:
            func(*args, **kwargs)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Warning: %s failed: %s", func.__name__, exc)
            return SideEffectResult(ok=False, error=exc)
        return SideEffectResult(ok=True)

    return wrapper
