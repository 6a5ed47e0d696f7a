import logging
from collections import deque
from datetime import datetime, timezone
from typing import Any, Callable, Deque, Dict, List, Optional

log = logging.getLogger(__name__)


class SideEffectFailures:
    """Bounded record of swallowed side-effect errors for one worker run."""

    def __init__(self, maxlen: int = 100) -> None:
        self._entries: Deque[Dict[str, str]] = deque(maxlen=maxlen)

    def record(self, label: str, exc: BaseException) -> None:
        self._entries.append({
            "label": label,
            "error": f"{type(exc).__name__}: {exc}",
            "ts": datetime.now(timezone.utc).isoformat(),
        })

    def entries(self) -> List[Dict[str, str]]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


def best_effort(
    label: str,
    fn: Callable[..., Any],
    *args: Any,
    failures: Optional[SideEffectFailures] = None,
    **kwargs: Any,
) -> Any:
    """Run ``fn``; on error log it, note it in ``failures`` and return None."""
    try:
        return fn(*args, **kwargs)
    except Exception as exc:
        log.warning("Best-effort %s failed: %s", label, exc)
        if failures is not None:
            failures.record(label, exc)
        return None
