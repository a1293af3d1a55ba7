"""
Path resolution and resource lookup for the preview server.

Nothing in this module decides HTTP status codes; it only answers whether a
path stays inside the served root and which file, if any, a path refers to.
"""

import os
from typing import Optional

import aiofiles.os

INDEX_FILE = 'index.html'


def is_path_safe(root: str, candidate: str) -> bool:
    """
    Return True if candidate is the root itself or lies inside it.

    Both paths are normalized lexically (no filesystem access), so '..'
    segments are resolved before comparing. The comparison requires a path
    separator after the root, so '/srv/site-evil' is not inside '/srv/site'.

    :param root: served root directory
    :param candidate: absolute or relative path to check
    """
    root_abs = os.path.abspath(root)
    cand_abs = os.path.abspath(candidate)
    if cand_abs == root_abs:
        return True
    # abspath keeps the separator on filesystem roots ('/' or 'C:\\')
    prefix = root_abs if root_abs.endswith(os.sep) else root_abs + os.sep
    return cand_abs.startswith(prefix)


def join_root(root: str, request_path: str) -> str:
    """
    Join a decoded request path onto root.

    A leading '/' in request_path is relative to root, not the filesystem.
    The result is normalized but NOT certified; check it with is_path_safe.
    """
    rel_path = request_path.lstrip('/')
    return os.path.normpath(os.path.join(root, rel_path))


async def locate_resource(path: str, trailing_slash: bool) -> Optional[str]:
    """
    Find the file to serve for an already certified path.

    Directory-like requests (trailing slash, or a path that is not a regular
    file) fall back to the index.html inside that directory. A trailing slash
    after a regular file is not found, since 'file/' names no directory.

    :param path: certified absolute path
    :param trailing_slash: whether the request path ended with '/'
    :return: path of an existing regular file, or None if there is nothing to serve
    """
    is_file = not trailing_slash and await aiofiles.os.path.isfile(path)
    if not is_file:
        index_path = os.path.join(path, INDEX_FILE)
        if await aiofiles.os.path.isfile(index_path):
            return index_path
        return None
    return path
