import asyncio
import json
from unittest.mock import AsyncMock, Mock


async def wait_called(fn, timeout=1.0, count=1):
    delay = 0.0
    ival = 0.05
    while True:
        if fn.call_count >= count:
            break
        await asyncio.sleep(ival)
        delay += ival

        if delay > timeout:
            raise TimeoutError()


class MockReader:
    "A StreamReader mock, returning `data` once"

    def __init__(self, data=b""):
        self.data = data

    async def read(self, *a):
        data, self.data = self.data, b""
        return data


class MockWriter:
    "A StreamWriter mock"

    def __init__(self):
        self.write = Mock()
        self.drain = AsyncMock()
        self.close = Mock()
        self.wait_closed = AsyncMock()


MOD_MASKS = {"SUPER": 64, "SHIFT": 1, "CTRL": 4, "ALT": 8}


class FakeCompositor:
    """Simulated Hyprland control socket.

    Resize requests land `offset` pixels short (window decorations), position
    requests are applied as is. Use `fake.get_response` in place of
    `hyprfinity.gateway.get_response`.
    """

    def __init__(self, monitors=None, offset=(0, 0), sticky=False):
        self.monitors = monitors if monitors is not None else []
        self.clients = []
        self.binds = []
        self.offset = offset
        self.sticky = sticky  # ignore geometry requests
        self.commands = []
        self.fail = {}  # verb -> error reply

    def add_client(self, pid, address="0xabc", at=(0, 0), size=(800, 600), **extra):
        client = {"pid": pid, "address": address, "at": list(at), "size": list(size), "floating": False, "pinned": False}
        client.update(extra)
        self.clients.append(client)
        return client

    def _select(self, selector):
        kind, _, value = selector.strip().partition(":")
        for client in self.clients:
            if kind == "address" and client["address"] == value:
                return client
            if kind == "pid" and client["pid"] == int(value):
                return client
        return None

    def verbs(self):
        "Dispatched verbs, in order"
        return [cmd.split()[1] for cmd in self.commands if cmd.startswith("/")]

    def _dispatch(self, args):
        verb, _, rest = args.partition(" ")
        if verb in self.fail:
            return self.fail[verb]
        if verb in ("movewindowpixel", "resizewindowpixel"):
            _exact, x, tail = rest.split(" ", 2)
            y, selector = tail.split(",", 1)
            client = self._select(selector)
            if client is None:
                return "No such window found"
            if not self.sticky:
                if verb == "movewindowpixel":
                    client["at"] = [int(x), int(y)]
                else:
                    client["size"] = [int(x) - self.offset[0], int(y) - self.offset[1]]
            return "ok"
        client = self._select(rest)
        if client is None:
            return "No such window found"
        if verb == "setfloating":
            client["floating"] = True
        elif verb == "pin":
            client["pinned"] = not client["pinned"]
        return "ok"

    def _keyword(self, args):
        verb, _, rest = args.partition(" ")
        if verb in self.fail:
            return self.fail[verb]
        parts = [part.strip() for part in rest.split(",")]
        mask = sum(MOD_MASKS.get(mod, 0) for mod in parts[0].split())
        if verb == "bind":
            self.binds.append({"modmask": mask, "key": parts[1], "submap": "", "dispatcher": parts[2], "arg": parts[3]})
        elif verb == "unbind":
            self.binds = [b for b in self.binds if not (b["modmask"] == mask and b["key"] == parts[1])]
        return "ok"

    async def get_response(self, command, logger=None):
        text = command.decode()
        self.commands.append(text)
        if text.startswith("j/"):
            return json.dumps(getattr(self, text[2:]))
        base, _, args = text[1:].partition(" ")
        if base == "dispatch":
            return self._dispatch(args)
        if base == "keyword":
            return self._keyword(args)
        return "unknown request"


class FakeProcess:
    """Stands for the gamescope ManagedProcess.

    `start` maps a window on `compositor` unless `map_window` is False,
    `exit_after` makes `has_exited` turn True after that many checks.
    """

    def __init__(self, compositor=None, pid=4242, map_window=True, exit_on_start=None, exit_after=None):
        self.compositor = compositor
        self._pid = pid
        self.map_window = map_window
        self.exit_on_start = exit_on_start
        self.exit_after = exit_after
        self.checks = 0
        self.pid = None
        self.returncode = None
        self.started = []
        self.stop = AsyncMock(side_effect=self._stop)

    async def start(self, argv, quiet=True):
        self.started.append(argv)
        self.pid = self._pid
        self.returncode = self.exit_on_start
        if self.compositor is not None and self.map_window:
            self.compositor.add_client(self._pid, address="0xgamescope", at=(0, 0), size=(1280, 720))
        return self._pid

    def has_exited(self):
        self.checks += 1
        if self.exit_after is not None and self.checks > self.exit_after:
            self.returncode = 0
        return self.returncode is not None

    def exit(self, code=0):
        self.returncode = code

    async def _stop(self):
        if self.pid is not None and self.returncode is None:
            self.returncode = -15
        return self.returncode
