"""
Request dispatch for the preview server.

Every request goes through the same steps: method check, URL parsing,
percent-decoding, null byte stripping, containment check, file lookup and
finally the conditional response. Each failure maps to one status code:

    405  method other than GET/HEAD
    400  malformed percent-encoding
    403  path escapes the served root
    404  nothing to serve
    500  anything unexpected
"""

import os
import re
import logging
from typing import List
from urllib.parse import unquote, urlsplit

from aiohttp import web

from replay_serve.paths import is_path_safe, join_root, locate_resource
from replay_serve.responses import build_file_response, text_response

logger = logging.getLogger(__name__)

ALLOWED_METHODS = ('GET', 'HEAD')

SINGLE_DOT_SEGMENTS = {'.', '%2e'}
DOUBLE_DOT_SEGMENTS = {'..', '.%2e', '%2e.', '%2e%2e'}

# '%' must introduce exactly two hex digits
BAD_ESCAPE_RE = re.compile(r'%(?![0-9a-fA-F]{2})')


class BadRequestPath(ValueError):
    """The request path could not be percent-decoded."""


def request_target_path(target: str) -> str:
    """Return the still-encoded path of a raw request target, without query or fragment."""
    path = target.split('#', 1)[0].split('?', 1)[0]
    if not path.startswith('/'):
        # absolute-form target (http://host/path)
        path = urlsplit(path).path
    return path or '/'


def normalize_dot_segments(raw_path: str) -> str:
    """
    Remove '.' and '..' segments from an encoded URL path.

    Follows how browsers and WHATWG URL parsers treat http: paths: backslashes
    count as slashes, and '%2e' spellings of the dot segments are recognized.
    Only whole segments are considered, so '%2e%2e%2f' is left alone and
    decodes later into a literal '../' inside a single segment.
    """
    segments = raw_path.replace('\\', '/').split('/')
    if segments and segments[0] == '':
        segments = segments[1:]
    output: List[str] = []
    for i, segment in enumerate(segments):
        is_last = i == len(segments) - 1
        lowered = segment.lower()
        if lowered in DOUBLE_DOT_SEGMENTS:
            if output:
                output.pop()
            if is_last:
                output.append('')
        elif lowered in SINGLE_DOT_SEGMENTS:
            if is_last:
                output.append('')
        else:
            output.append(segment)
    return '/' + '/'.join(output)


def decode_path(raw_path: str) -> str:
    """
    Percent-decode a URL path exactly once.

    :raises BadRequestPath: on a truncated or non-hex escape, or on bytes
        that are not valid UTF-8
    """
    if BAD_ESCAPE_RE.search(raw_path):
        raise BadRequestPath(f"malformed percent-encoding in {raw_path!r}")
    try:
        return unquote(raw_path, encoding='utf-8', errors='strict')
    except UnicodeDecodeError as e:
        raise BadRequestPath(f"path is not valid UTF-8: {raw_path!r}") from e


def strip_null_bytes(path: str) -> str:
    """Remove NUL characters so they cannot truncate the path in OS calls."""
    return path.replace('\0', '')


class RequestHandler:
    """
    Serves files below a fixed root directory.

    Holds no per-request state; the root is the only attribute and never
    changes after construction.
    """

    def __init__(self, root: str):
        """
        :param root: directory to serve; made absolute here
        """
        self.root = os.path.abspath(root)

    async def handle(self, request: web.BaseRequest) -> web.StreamResponse:
        """Entry point for every incoming request."""
        if request.method not in ALLOWED_METHODS:
            return text_response(405, 'Method Not Allowed', {'Allow': ', '.join(ALLOWED_METHODS)})

        try:
            return await self._serve(request)
        except Exception:
            logger.exception(f"Error serving {request.method} {request.raw_path}")
            return text_response(500, 'Internal Server Error')

    async def _serve(self, request: web.BaseRequest) -> web.StreamResponse:
        raw_path = normalize_dot_segments(request_target_path(request.raw_path))

        try:
            path = decode_path(raw_path)
        except BadRequestPath as e:
            logger.debug(f"Bad request: {e}")
            return text_response(400, 'Bad Request')

        path = strip_null_bytes(path)

        target_path = join_root(self.root, path)
        if not is_path_safe(self.root, target_path):
            logger.warning(f"Blocked path traversal attempt: {request.raw_path!r} -> {target_path}")
            return text_response(403, 'Forbidden')

        file_path = await locate_resource(target_path, path.endswith('/'))
        if file_path is None:
            logger.debug(f"Not found: {path}")
            return text_response(404, 'Not Found')

        return await build_file_response(file_path, request.method, request.headers.get('If-None-Match'))


def create_server(root: str) -> web.Server:
    """
    Build the aiohttp low-level server that sends every request to a
    RequestHandler for root. No router is involved, so the handler sees all
    request targets, including ones a route pattern would not match.
    """
    handler = RequestHandler(root)
    return web.Server(handler.handle)
