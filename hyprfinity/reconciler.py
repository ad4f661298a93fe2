"""Drive a window's observed geometry onto a target geometry."""

import asyncio
from logging import Logger

from .constants import FIT_MAX_ATTEMPTS, FIT_SETTLE_DELAY, FIT_TOLERANCE_PX, MIN_DIMENSION
from .gateway import CompositorGateway, MoveWindow, ResizeWindow
from .models import FitWarning, Geometry, WindowHandle

__all__ = ["GeometryReconciler", "is_within"]


def is_within(actual: Geometry, target: Geometry, tolerance: int = FIT_TOLERANCE_PX) -> bool:
    """Tell if position and size both match `target` within `tolerance` pixels."""
    return (
        abs(actual.x - target.x) <= tolerance
        and abs(actual.y - target.y) <= tolerance
        and abs(actual.width - target.width) <= tolerance
        and abs(actual.height - target.height) <= tolerance
    )


class GeometryReconciler:
    """Bounded move/resize/measure loop.

    Decorations and size hints shift the resulting size by a (usually constant)
    offset: the measured error is added to the next resize request so the
    window converges within a few attempts.
    """

    def __init__(
        self,
        gateway: CompositorGateway,
        log: Logger,
        max_attempts: int = FIT_MAX_ATTEMPTS,
        settle_delay: float = FIT_SETTLE_DELAY,
        tolerance: int = FIT_TOLERANCE_PX,
    ) -> None:
        self.gateway = gateway
        self.log = log
        self.max_attempts = max_attempts
        self.settle_delay = settle_delay
        self.tolerance = tolerance

    async def fit(self, window: WindowHandle, target: Geometry) -> FitWarning | None:
        """Move and resize `window` until it matches `target`.

        Returns:
            None on success, a FitWarning (already logged) when the attempts ran out
        """
        req_w, req_h = target.width, target.height
        for attempt in range(1, self.max_attempts + 1):
            await self.gateway.dispatch(MoveWindow(window, target.x, target.y))
            await self.gateway.dispatch(ResizeWindow(window, req_w, req_h))
            await asyncio.sleep(self.settle_delay)

            actual = await self.gateway.get_window_geometry(window)
            if actual is None:
                self.log.debug("fit attempt %d: %s has no geometry yet", attempt, window)
                continue
            if is_within(actual, target, self.tolerance):
                self.log.debug("Window fit success on attempt %d: %s", attempt, actual)
                return None

            req_w = max(req_w + target.width - actual.width, MIN_DIMENSION)
            req_h = max(req_h + target.height - actual.height, MIN_DIMENSION)
            self.log.debug(
                "Window fit attempt %d mismatch: %s, target %s, next request=%dx%d",
                attempt,
                actual,
                target,
                req_w,
                req_h,
            )

        warning = FitWarning(target=target, actual=await self.gateway.get_window_geometry(window), attempts=self.max_attempts)
        self.log.warning("Warning: %s", warning)
        return warning
