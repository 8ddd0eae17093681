from __future__ import annotations

import logging
from collections.abc import Callable
from concurrent.futures import Executor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from typing import Any, Literal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Outcome:
    status: Literal["ok", "timeout", "error"]
    value: Any = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"


def run_bounded(fn: Callable[..., Any], *args: Any, timeout: float, executor: Executor, **kwargs: Any) -> Outcome:
    """Race ``fn`` on ``executor`` against ``timeout`` seconds.

    The call is not interrupted when the timer wins; its eventual result is
    dropped.
    """
    try:
        future = executor.submit(fn, *args, **kwargs)
        return Outcome("ok", value=future.result(timeout=timeout))
    except FutureTimeoutError:
        future.cancel()  # only effective while still queued
        logger.warning("%s did not finish within %.1fs", getattr(fn, "__name__", fn), timeout)
        return Outcome("timeout")
    except Exception as e:
        return Outcome("error", error=e)
