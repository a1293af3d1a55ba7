"""
Shared fixtures: a small generated-site tree like the transcript generator emits.
"""

import pytest


def build_site(root):
    """
    Populate root with the files the server tests rely on.

    :param root: pathlib.Path of an empty directory
    :return: root
    """
    (root / "index.html").write_text("<html><body>Index</body></html>")
    (root / "test.txt").write_text("Hello World")
    (root / "style.abcd1234.css").write_text("body { color: red; }")
    (root / "script.12345678.js").write_text("console.log('hi')")
    (root / "secret.txt").write_text("secret content")
    subdir = root / "subdir"
    subdir.mkdir()
    (subdir / "index.html").write_text("<html><body>Subdir</body></html>")
    (subdir / "page.html").write_text("<html><body>Page</body></html>")
    (root / "empty").mkdir()
    return root


@pytest.fixture
def site_root(tmp_path):
    """Absolute path (str) of a freshly built site."""
    root = tmp_path / "site"
    root.mkdir()
    build_site(root)
    return str(root.resolve())
