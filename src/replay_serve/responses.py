"""
Response construction for served files: MIME types, ETags and cache policy.
"""

import os
import re
import hashlib
from typing import Dict, Optional

import aiofiles
from aiohttp import web

MIME_TYPES = {
    '.html': 'text/html; charset=utf-8',
    '.htm': 'text/html; charset=utf-8',
    '.css': 'text/css; charset=utf-8',
    '.js': 'text/javascript; charset=utf-8',
    '.mjs': 'text/javascript; charset=utf-8',
    '.json': 'application/json; charset=utf-8',
    '.map': 'application/json; charset=utf-8',
    '.txt': 'text/plain; charset=utf-8',
    '.md': 'text/markdown; charset=utf-8',
    '.xml': 'application/xml; charset=utf-8',
    '.svg': 'image/svg+xml',
    '.png': 'image/png',
    '.jpg': 'image/jpeg',
    '.jpeg': 'image/jpeg',
    '.gif': 'image/gif',
    '.webp': 'image/webp',
    '.avif': 'image/avif',
    '.ico': 'image/x-icon',
    '.woff': 'font/woff',
    '.woff2': 'font/woff2',
    '.ttf': 'font/ttf',
    '.otf': 'font/otf',
    '.pdf': 'application/pdf',
    '.wasm': 'application/wasm',
}
DEFAULT_MIME = 'application/octet-stream'

LONG_CACHE = 'public, max-age=31536000, immutable'
SHORT_CACHE = 'public, max-age=3600'

# name.<8+ hex>.<ext>, as emitted by bundlers for content-addressed assets
HASHED_ASSET_RE = re.compile(r'\.[a-f0-9]{8,}\.(js|css|png|jpg|jpeg|gif|svg|woff2?)$', re.IGNORECASE)


def mime_for(path: str) -> str:
    """Return the Content-Type for path based on its extension."""
    ext = os.path.splitext(path)[1].lower()
    return MIME_TYPES.get(ext, DEFAULT_MIME)


def compute_etag(content: bytes) -> str:
    """
    Compute a weak ETag for content.

    The digest only has to be stable and change with the content; it is not
    used for anything security related.
    """
    digest = hashlib.md5(content).hexdigest()
    return f'W/"{digest}"'


def is_hashed_asset(path: str) -> bool:
    """Return True if the file name embeds a content hash, e.g. app.3f9a01bc.js."""
    return HASHED_ASSET_RE.search(path) is not None


def cache_control_for(path: str) -> str:
    """Return the Cache-Control value for the file at path."""
    return LONG_CACHE if is_hashed_asset(path) else SHORT_CACHE


def text_response(status: int, reason: str, headers: Optional[Dict[str, str]] = None) -> web.Response:
    """Plain-text response used for every non-200 outcome except 304."""
    return web.Response(status=status, text=reason, headers=headers)


async def build_file_response(path: str, method: str, if_none_match: Optional[str]) -> web.Response:
    """
    Build the response for an existing file.

    GET and HEAD compute the same headers; HEAD just leaves out the body.
    A matching If-None-Match (exact string compare) yields 304 carrying only
    the ETag.

    :param path: located file to serve
    :param method: 'GET' or 'HEAD'
    :param if_none_match: raw If-None-Match header value, or None
    """
    async with aiofiles.open(path, 'rb') as f:
        content = await f.read()

    etag = compute_etag(content)
    if if_none_match == etag:
        return web.Response(status=304, headers={'ETag': etag})

    headers = {
        'Content-Type': mime_for(path),
        'Content-Length': str(len(content)),
        'ETag': etag,
        'Cache-Control': cache_control_for(path),
    }
    if method == 'HEAD':
        return web.Response(status=200, headers=headers)
    return web.Response(status=200, body=content, headers=headers)
