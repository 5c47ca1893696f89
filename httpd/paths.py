"""
Maps a raw request target onto a file under the document root.

The target is never decoded or normalized. Anything containing ".." is refused
before the filesystem is touched; the composed path is then canonicalized and
must still sit inside the canonical document root, which also catches symlinks
pointing out of the tree.
"""

import os

from httpd.config import INDEX_FILE, MAX_PATH_LENGTH
from httpd.errors import PathRejectedError, PathTooLongError


def resolve_path(doc_root: str, target: str) -> str:
    # Also rejects legitimate names such as "file..txt"
    if ".." in target:
        raise PathRejectedError(f"Parent directory token in target: {target!r}")

    if "\0" in target:
        raise PathRejectedError("NUL byte in target")

    # Always root-relative, never an absolute filesystem path
    relative_path = target.lstrip("/")

    if relative_path == "":
        relative_path = INDEX_FILE
    elif relative_path.endswith("/"):
        relative_path += INDEX_FILE

    file_path = os.path.join(doc_root, relative_path)

    if len(os.fsencode(file_path)) >= MAX_PATH_LENGTH:
        raise PathTooLongError("Resolved path too long")

    if not is_within_root(doc_root, file_path):
        raise PathRejectedError(f"Target escapes document root: {target!r}")

    return file_path


def is_within_root(doc_root: str, file_path: str) -> bool:
    # For example, with a root of "/srv/www":
    #       "/srv/www/css/site.css" is inside
    #       "/srv/www/link" -> "/etc/passwd" is not, once the symlink is followed
    root_real = os.path.realpath(doc_root)
    file_real = os.path.realpath(file_path)
    return os.path.commonpath([root_real, file_real]) == root_real
