"""
Configuration for the preview server.

Defaults can be overridden through environment variables, which are read when
the CLI builds its parser so they go through the same validation as flags.
"""

import os

PORT_ENV = 'REPLAY_SERVE_PORT'
HOST_ENV = 'REPLAY_SERVE_HOST'
LOG_LEVEL_ENV = 'REPLAY_SERVE_LOG_LEVEL'

DEFAULT_PORT = 3000
DEFAULT_HOST = '127.0.0.1'
DEFAULT_LOG_LEVEL = 'INFO'

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

MIN_PORT = 1
MAX_PORT = 65535


def parse_port(value: str) -> int:
    """
    Parse a TCP port number.

    :param value: port as given on the command line
    :raises ValueError: if value is not an integer in 1..65535
    """
    try:
        port = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"invalid port: {value!r}")
    if port < MIN_PORT or port > MAX_PORT:
        raise ValueError(f"port must be between {MIN_PORT} and {MAX_PORT}, got {port}")
    return port


class ServeOptions:
    """
    Validated settings handed from the CLI to the server.
    Immutable by convention.
    """

    def __init__(self, directory: str, port: int = DEFAULT_PORT,
                 host: str = DEFAULT_HOST, open_browser: bool = False):
        self.directory = os.path.abspath(directory)
        self.port = port
        self.host = host
        self.open_browser = open_browser

    def __repr__(self) -> str:
        return (f"ServeOptions(directory={self.directory!r}, port={self.port}, "
                f"host={self.host!r}, open_browser={self.open_browser})")


def env_setting(name: str, default) -> str:
    """Raw string value of an environment override, or default as a string."""
    return os.environ.get(name, str(default))
