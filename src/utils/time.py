import time
from typing import Optional


def format_time_ago(timestamp: float, now: Optional[float] = None) -> str:
    """Compact age label: 42s, 5m, 3h, 2d, 1w."""
    now = time.time() if now is None else now
    seconds = max(0, int(now - timestamp))

    if seconds < 60:
        return f"{seconds}s"

    minutes = seconds // 60
    if minutes < 60:
        return f"{minutes}m"

    hours = minutes // 60
    if hours < 24:
        return f"{hours}h"

    days = hours // 24
    if days < 7:
        return f"{days}d"

    return f"{days // 7}w"
