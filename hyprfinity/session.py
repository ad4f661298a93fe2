"""Session lifecycle: launch, keep the window on the span, tear down.

The launch either reaches the ACTIVE phase with the session state saved, or
rolls back every desktop change it made (waybar, hotkey, child process).
While ACTIVE, a one second tick watches the child and re-fits its window every
other tick. SIGINT/SIGTERM only set a flag; the loop notices it and runs the
same teardown as `hyprfinity down`, once.
"""

import asyncio
import shlex
import signal
import threading
from collections.abc import Awaitable, Callable
from logging import Logger

from .config import LaunchSettings
from .constants import (
    DEFAULT_EXIT_HOTKEY_KEY,
    DEFAULT_EXIT_HOTKEY_MODS,
    GAMESCOPE_BINARY,
    REFLOW_EVERY_TICKS,
    SESSION_TICK_INTERVAL,
    STARTUP_POLL_INTERVAL,
)
from .gateway import CompositorGateway, PinWindow, SetFloating
from .launch_args import build_gamescope_args, ensure_game_command
from .models import (
    ExitCode,
    ExitHotkey,
    Geometry,
    HyprfinityError,
    SessionPhase,
    SessionState,
    SessionStateError,
    SizeSpec,
    Span,
    StartupTimeout,
    WindowHandle,
)
from .process import ManagedProcess, terminate_pid
from .reconciler import GeometryReconciler
from .sidecars import ExitHotkeyControl, WaybarControl
from .sizing import derive_internal, derive_output
from .span import compute_span, describe_monitors
from .state_file import SessionStore

__all__ = ["SessionManager", "ShutdownGuard", "teardown_session"]

SizePicker = Callable[[Span], Awaitable[SizeSpec | None]]
AppPicker = Callable[[], Awaitable[list[str]]]

DEFAULT_EXIT_HOTKEY = ExitHotkey(DEFAULT_EXIT_HOTKEY_MODS, DEFAULT_EXIT_HOTKEY_KEY)


class ShutdownGuard:
    """One-shot flag: only the first `claim()` wins."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._claimed = False

    @property
    def claimed(self) -> bool:
        """Tell if shutdown already started."""
        return self._claimed

    def claim(self) -> bool:
        """Return True the first time only."""
        with self._lock:
            if self._claimed:
                return False
            self._claimed = True
            return True


async def _best_effort(log: Logger, failed: list[str], step: str, action: Awaitable[object]) -> None:
    try:
        await action
    except (HyprfinityError, OSError) as e:
        log.error("%s failed: %s", step, e)
        failed.append(step)


def _terminate(log: Logger, pid: int) -> None:
    try:
        terminate_pid(pid)
    except ProcessLookupError:
        log.info("Gamescope process %d is already gone.", pid)
    else:
        log.info("Gamescope process %d terminated.", pid)


async def teardown_session(
    store: SessionStore,
    gateway: CompositorGateway,
    log: Logger,
    waybar: WaybarControl | None = None,
) -> list[str]:
    """End the recorded session (the `down` command).

    Every step is attempted, whatever happened to the previous ones.

    Returns:
        The names of the steps that failed

    Raises:
        SessionStateError: if there is no usable session record
    """
    state = await store.load()
    log.info("Stopping gamescope PID %d...", state.gamescope_pid)
    failed: list[str] = []

    async def stop_child() -> None:
        _terminate(log, state.gamescope_pid)

    await _best_effort(log, failed, "stop gamescope", stop_child())
    await _best_effort(log, failed, "remove session state", store.delete())
    if state.waybar_was_stopped:
        await _best_effort(log, failed, "restart waybar", (waybar or WaybarControl(log)).restart_if_stopped(True))
    if state.exit_hotkey:
        await _best_effort(log, failed, "unbind exit hotkey", ExitHotkeyControl(gateway, log).unregister(state.exit_hotkey))
    return failed


class SessionManager:  # pylint: disable=too-many-instance-attributes
    """Runs one spanned gamescope session."""

    def __init__(  # noqa: PLR0913
        self,
        gateway: CompositorGateway,
        log: Logger,
        store: SessionStore | None = None,
        *,
        waybar: WaybarControl | None = None,
        hotkeys: ExitHotkeyControl | None = None,
        reconciler: GeometryReconciler | None = None,
        process: ManagedProcess | None = None,
        size_picker: SizePicker | None = None,
        app_picker: AppPicker | None = None,
        exit_hotkey: ExitHotkey | None = DEFAULT_EXIT_HOTKEY,
        binary: str = GAMESCOPE_BINARY,
        verbose: bool = False,
        poll_interval: float = STARTUP_POLL_INTERVAL,
        tick_interval: float = SESSION_TICK_INTERVAL,
        reflow_every: int = REFLOW_EVERY_TICKS,
    ) -> None:
        self.gateway = gateway
        self.log = log
        self.store = store or SessionStore(log)
        self.waybar = waybar or WaybarControl(log)
        self.hotkeys = hotkeys or ExitHotkeyControl(gateway, log)
        self.reconciler = reconciler or GeometryReconciler(gateway, log)
        self.process = process or ManagedProcess()
        self.size_picker = size_picker
        self.app_picker = app_picker
        self.exit_hotkey = exit_hotkey
        self.binary = binary
        self.verbose = verbose
        self.poll_interval = poll_interval
        self.tick_interval = tick_interval
        self.reflow_every = max(reflow_every, 1)

        self.phase = SessionPhase.IDLE
        self.guard = ShutdownGuard()
        self._stop_requested = asyncio.Event()
        self._signals_installed: list[int] = []

        self.state: SessionState | None = None
        self.window: WindowHandle | None = None
        self.target: Geometry | None = None
        self.pin = True
        self.waybar_stopped = False
        self.bound_hotkey: ExitHotkey | None = None

    async def run(self, settings: LaunchSettings) -> ExitCode:
        """Launch the session and supervise it until it ends."""
        await self.launch(settings)
        return await self.supervise()

    # Launch {{{

    async def launch(self, settings: LaunchSettings) -> SessionState:
        """Start gamescope over the span and record the session.

        Raises:
            HyprfinityError: after rolling back the desktop changes already made
        """
        self.phase = SessionPhase.LAUNCHING
        try:
            return await self._launch(settings)
        except (Exception, asyncio.CancelledError):
            self.phase = SessionPhase.LAUNCH_FAILED
            await self._rollback()
            raise

    async def resolve_sizes(self, settings: LaunchSettings, span: Span) -> tuple[SizeSpec, SizeSpec]:
        """Return the (output, internal) sizes for `span`."""
        output = derive_output(span, (settings.output_width, settings.output_height))
        internal = derive_internal(output, settings.render_scale, (settings.virtual_width, settings.virtual_height))
        if settings.pick_size and self.size_picker:
            picked = await self.size_picker(span)
            if picked is None:
                self.log.info("No size picked, keeping %s.", internal)
            else:
                internal = derive_internal(output, settings.render_scale, (picked.width, picked.height))
        return output, internal

    async def _launch(self, settings: LaunchSettings) -> SessionState:
        monitors = await self.gateway.get_monitors()
        self.log.info("Detected monitors: %s", describe_monitors(monitors))
        span = compute_span(monitors)
        self.log.info("Calculated span: %s", span)

        output, internal = await self.resolve_sizes(settings, span)
        self.log.info("Internal render size: %s (output span %s)", internal, output)

        args = list(settings.gamescope_args)
        if self.app_picker:
            args = await ensure_game_command(args, settings.pick, self.app_picker)

        if settings.hide_waybar:
            self.waybar_stopped = await self.waybar.stop_if_running()

        args = build_gamescope_args(args, output, internal)
        argv = [self.binary, *args]
        self.log.info("Launching: %s", shlex.join(argv))
        try:
            pid = await self.process.start(argv, quiet=not self.verbose)
        except OSError as e:
            raise HyprfinityError(f"Unable to start {self.binary}: {e}") from e
        self.log.info("gamescope started with PID %d.", pid)

        window = await self.wait_for_window(pid, settings.startup_timeout_secs)
        self.log.debug("initial window selector: %s", window)
        target = Geometry.from_span(span)
        self.pin = not settings.no_pin
        await self.gateway.dispatch(SetFloating(window))
        await self.reconciler.fit(window, target)
        if self.pin:
            await self.ensure_pinned(window)
        await self._register_hotkey()

        state = SessionState(
            gamescope_pid=pid,
            span=span,
            gamescope_args=args,
            waybar_was_stopped=self.waybar_stopped,
            exit_hotkey=self.bound_hotkey,
        )
        await self.store.save(state)
        self.state, self.window, self.target = state, window, target
        self.phase = SessionPhase.ACTIVE
        return state

    async def wait_for_window(self, pid: int, timeout: float) -> WindowHandle:
        """Poll until `pid` maps a window.

        Raises:
            StartupTimeout: if nothing shows up within `timeout` seconds
            HyprfinityError: if the child exits meanwhile
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while True:
            if self.process.has_exited():
                raise HyprfinityError(f"Gamescope exited (code {self.process.returncode}) before showing a window.")
            client = await self.gateway.find_client(pid)
            if client is not None:
                return WindowHandle(pid=pid, address=client.get("address") or None)
            if loop.time() >= deadline:
                raise StartupTimeout(pid, timeout)
            await asyncio.sleep(self.poll_interval)

    async def ensure_pinned(self, window: WindowHandle) -> None:
        """Pin `window` unless it already is (the dispatcher toggles)."""
        client = await self.gateway.get_window(window)
        if client is not None and client.get("pinned"):
            return
        await self.gateway.dispatch(PinWindow(window))

    async def _register_hotkey(self) -> None:
        if self.exit_hotkey is None:
            return
        try:
            self.bound_hotkey = await self.hotkeys.register(self.exit_hotkey)
        except HyprfinityError as e:
            self.log.warning("Failed to register exit hotkey: %s", e)

    async def _rollback(self) -> None:
        failed: list[str] = []
        if self.bound_hotkey:
            await _best_effort(self.log, failed, "unbind exit hotkey", self.hotkeys.unregister(self.bound_hotkey))
            self.bound_hotkey = None
        await _best_effort(self.log, failed, "stop gamescope", self.process.stop())
        if self.waybar_stopped:
            await _best_effort(self.log, failed, "restart waybar", self.waybar.restart_if_stopped(True))
            self.waybar_stopped = False
        if failed:
            self.log.error("Rollback incomplete: %s", ", ".join(failed))

    # }}}
    # Steady state {{{

    async def supervise(self) -> ExitCode:
        """Watch the active session until the child exits or a signal arrives."""
        self._install_signal_handlers()
        self.log.info("Gamescope is running. Press Ctrl+C to stop.")
        try:
            tick = 0
            while True:
                if self._stop_requested.is_set():
                    return await self._interrupted()
                if self.process.has_exited():
                    await self._finish_normal_exit()
                    return ExitCode.SUCCESS
                if tick % self.reflow_every == 0:
                    await self.reflow()
                tick += 1
                await self._wait_stop(self.tick_interval)
        finally:
            self._remove_signal_handlers()

    async def reflow(self) -> None:
        """Re-apply floating, span geometry and pin; failures are ignored."""
        if self.state is None or self.target is None:
            return
        try:
            client = await self.gateway.find_client(self.state.gamescope_pid)
            if client is None:
                self.log.debug("reflow: no window for PID %d", self.state.gamescope_pid)
                return
            window = WindowHandle(pid=self.state.gamescope_pid, address=client.get("address") or None)
            self.log.debug("reflow window selector: %s", window)
            await self.gateway.dispatch(SetFloating(window))
            await self.reconciler.fit(window, self.target)
            if self.pin:
                await self.ensure_pinned(window)
            self.window = window
        except (HyprfinityError, OSError, ValueError, TypeError) as e:
            self.log.debug("reflow failed: %s", e)

    async def _wait_stop(self, timeout: float) -> bool:
        try:
            await asyncio.wait_for(self._stop_requested.wait(), timeout)
        except TimeoutError:
            return False
        return True

    async def _finish_normal_exit(self) -> None:
        self.phase = SessionPhase.TEARING_DOWN
        self.log.info("Gamescope exited with status %s.", self.process.returncode)
        if not await self.store.exists():
            # `hyprfinity down` already restored everything
            self.log.debug("session state already removed")
            self.phase = SessionPhase.TERMINATED
            return
        failed: list[str] = []
        if self.waybar_stopped:
            await _best_effort(self.log, failed, "restart waybar", self.waybar.restart_if_stopped(True))
        if self.bound_hotkey:
            await _best_effort(self.log, failed, "unbind exit hotkey", self.hotkeys.unregister(self.bound_hotkey))
        await _best_effort(self.log, failed, "remove session state", self.store.delete())
        self.phase = SessionPhase.TERMINATED

    async def _interrupted(self) -> ExitCode:
        self.phase = SessionPhase.TEARING_DOWN
        self.log.info("Interrupted, tearing down Gamescope session...")
        try:
            failed = await teardown_session(self.store, self.gateway, self.log, self.waybar)
        except SessionStateError as e:
            self.log.error("Failed to tear down Gamescope session: %s", e)
        else:
            if failed:
                self.log.error("Teardown incomplete: %s", ", ".join(failed))
        await self.process.stop()
        self.phase = SessionPhase.TERMINATED
        return ExitCode.INTERRUPTED

    # }}}
    # Signals {{{

    def request_shutdown(self, signum: int | None = None) -> None:
        """Signal handler: ask the steady loop to tear down, once."""
        if not self.guard.claim():
            self.log.debug("shutdown already in progress, ignoring signal %s", signum)
            return
        self.log.debug("shutdown requested (signal %s)", signum)
        self._stop_requested.set()

    def _install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for signum in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(signum, self.request_shutdown, signum)
            self._signals_installed.append(signum)

    def _remove_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for signum in self._signals_installed:
            loop.remove_signal_handler(signum)
        self._signals_installed.clear()

    # }}}
