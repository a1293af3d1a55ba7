"""
Preview server lifecycle: bind, optionally open a browser, run until told to stop.

The server is an ordinary object owned by the caller. Shutdown is driven by an
asyncio.Event; OS signals only set that event, so tests can stop a server
without sending signals.
"""

import os
import sys
import errno
import signal
import asyncio
import logging
import subprocess
from typing import Callable, Optional

from aiohttp import web

from replay_serve.config import DEFAULT_HOST
from replay_serve.handler import create_server

logger = logging.getLogger(__name__)

LOCAL_HOSTS = ('', '127.0.0.1', 'localhost', '0.0.0.0', '::', '::1')

# seconds to wait for open connections when stopping
SHUTDOWN_TIMEOUT = 1.0


class PortInUseError(Exception):
    """The requested port is already bound by another process."""

    def __init__(self, port: int):
        super().__init__(f"Port {port} is already in use")
        self.port = port


def open_browser(url: str) -> bool:
    """
    Open url in the default browser without waiting for it.

    :return: False if the platform opener could not be started
    """
    if sys.platform == 'darwin':
        cmd = ['open', url]
    elif sys.platform == 'win32':
        # empty string is the window title expected by 'start'
        cmd = ['cmd', '/c', 'start', '', url]
    else:
        cmd = ['xdg-open', url]
    try:
        subprocess.Popen(cmd, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
    except OSError as e:
        logger.warning(f"Could not open browser with {cmd[0]}: {e}")
        return False
    return True


def install_signal_handlers(loop: asyncio.AbstractEventLoop, shutdown: asyncio.Event) -> Callable[[], None]:
    """
    Set shutdown on SIGINT or SIGTERM.

    The first signal removes both handlers, so a repeated signal never runs
    the shutdown path twice. Returns a callable that removes the handlers;
    calling it more than once is harmless. On loops without signal support
    (Windows) nothing is installed and Ctrl+C surfaces as KeyboardInterrupt.
    """
    signals = (signal.SIGINT, signal.SIGTERM)

    def remove() -> None:
        for sig in signals:
            loop.remove_signal_handler(sig)

    def on_signal(sig: signal.Signals) -> None:
        remove()
        print(f"\nReceived {sig.name}, shutting down...")
        shutdown.set()

    try:
        for sig in signals:
            loop.add_signal_handler(sig, on_signal, sig)
    except NotImplementedError:
        return lambda: None
    return remove


class PreviewServer:
    """
    HTTP server for a directory of generated output.

    Lifecycle: start() binds the listener, stop() releases it. serve() does
    both around waiting for a shutdown event. A stopped server can be
    started again.
    """

    def __init__(self, root: str, port: int, host: str = DEFAULT_HOST, open_browser: bool = False):
        """
        :param root: directory to serve, must already exist
        :param port: port to listen on; 0 picks a free port
        :param host: interface to bind
        :param open_browser: open the server URL once listening
        """
        self.root = os.path.abspath(root)
        self.port = port
        self.host = host
        self.open_browser = open_browser
        self._runner: Optional[web.ServerRunner] = None

    @property
    def url(self) -> str:
        host = 'localhost' if self.host in LOCAL_HOSTS else self.host
        return f"http://{host}:{self.port}"

    @property
    def running(self) -> bool:
        return self._runner is not None

    async def start(self) -> None:
        """
        Bind the listener and start accepting requests.

        :raises PortInUseError: if the port is taken
        :raises OSError: for any other bind failure
        """
        if self._runner is not None:
            return
        runner = web.ServerRunner(create_server(self.root), shutdown_timeout=SHUTDOWN_TIMEOUT)
        await runner.setup()
        site = web.TCPSite(runner, self.host, self.port)
        try:
            await site.start()
        except OSError as e:
            await runner.cleanup()
            if e.errno == errno.EADDRINUSE:
                raise PortInUseError(self.port) from e
            raise
        self._runner = runner

        if self.port == 0:
            self.port = runner.addresses[0][1]

        logger.info(f"Serving {self.root}")
        print(f"\nServer running at {self.url}")
        print("Press Ctrl+C to stop\n")

        if self.open_browser:
            open_browser(self.url)

    async def stop(self) -> None:
        """Stop accepting connections. Responses still in flight may be cut off."""
        if self._runner is None:
            return
        runner, self._runner = self._runner, None
        await runner.cleanup()
        print("Server stopped")

    async def serve(self, shutdown: asyncio.Event) -> None:
        """Run until shutdown is set, then stop."""
        await self.start()
        try:
            await shutdown.wait()
        finally:
            await self.stop()
