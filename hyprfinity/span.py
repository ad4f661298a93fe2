"""Monitor span computation."""

from collections.abc import Sequence

from .models import Monitor, NoMonitorsError, Span

__all__ = ["compute_span", "describe_monitors"]


def describe_monitors(monitors: Sequence[Monitor]) -> str:
    """Return a one-line summary such as `DP-1:1920x1080@0,0, HDMI-A-1:...`."""
    return ", ".join(str(monitor) for monitor in monitors)


def compute_span(monitors: Sequence[Monitor]) -> Span:
    """Return the bounding box covering every monitor.

    Args:
        monitors: at least one monitor

    Raises:
        NoMonitorsError: if `monitors` is empty
    """
    if not monitors:
        raise NoMonitorsError
    min_x = min(m.x for m in monitors)
    min_y = min(m.y for m in monitors)
    max_x = max(m.x + m.width for m in monitors)
    max_y = max(m.y + m.height for m in monitors)
    return Span(origin_x=min_x, origin_y=min_y, width=max_x - min_x, height=max_y - min_y)
