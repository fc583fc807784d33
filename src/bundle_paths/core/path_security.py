"""
Sandbox confinement checks for resolved bundle paths.

Every path produced by resolve_path() passes through validate_path_security()
before it is handed to a caller, and callers that obtain an absolute path
from elsewhere (tool arguments, stored conversation data) can run the same
check directly.

A path is allowed when it is one of the context roots (bundle, core, project)
or lies beneath one of them, both lexically and after symbolic links are
resolved:

    /proj/bmad/custom/bundles/acme/out.md   -> allowed (bundle root)
    /proj/bmad/custom/bundles/acme/link     -> blocked if link -> /etc/passwd
    /proj-other/file.txt                    -> blocked (prefix lookalike)

Error messages only say that access was denied; the roots and link targets
involved are logged, never returned to the caller.
"""
from __future__ import annotations

import logging
import os
from typing import Iterable, Optional

from .exceptions import SecurityViolationError
from .path_context import PathContext
from .settings import PathResolverSettings, get_settings

logger = logging.getLogger(__name__)


def is_within(path: str, root: str) -> bool:
    """True if path equals root or lies beneath it."""
    if path == root:
        return True
    return path.startswith(root.rstrip(os.sep) + os.sep)


def _is_within_any(path: str, roots: Iterable[str]) -> bool:
    return any(is_within(path, root) for root in roots)


def canonicalize(path: str) -> str:
    """
    Resolve every symbolic link in an absolute, normalized path.

    Existing paths (including dangling links) are resolved with realpath.
    For a path that does not exist yet, the nearest existing ancestor is
    resolved and the missing tail re-attached, so a linked ancestor
    directory is followed even though the leaf is still to be created.
    """
    if os.path.lexists(path):
        return os.path.realpath(path)

    head = path
    tail: list[str] = []
    while not os.path.lexists(head):
        parent = os.path.dirname(head)
        if parent == head:
            break
        tail.append(os.path.basename(head))
        head = parent

    return os.path.join(os.path.realpath(head), *reversed(tail))


def _normalize_candidate(path: str) -> str:
    return os.path.normpath(os.path.abspath(path))


def _canonical_roots(roots: Iterable[str]) -> list[str]:
    allowed = []
    for root in roots:
        allowed.append(root)
        real = os.path.realpath(root)
        if real != root:
            allowed.append(real)
    return allowed


def _log_blocked(path: str, reason: str) -> None:
    logger.warning(f"PATH_SECURITY: BLOCKED {path!r} - {reason}")


def validate_path_security(path: str | os.PathLike[str], context: PathContext) -> None:
    """
    Verify that a path is confined to the context's allowed roots.

    Args:
        path: Absolute path to check (relative paths are taken from the cwd)
        context: PathContext whose roots form the allow-list

    Raises:
        SecurityViolationError: On a null byte, a path outside every root,
            or a symbolic link whose target escapes every root
    """
    raw = os.fspath(path)

    if "\x00" in raw:
        _log_blocked(raw, "null byte detected")
        raise SecurityViolationError(
            "null byte detected", path=raw, reason="NULL_BYTE"
        )

    candidate = _normalize_candidate(raw)
    roots = context.roots

    if not _is_within_any(candidate, roots):
        _log_blocked(candidate, f"outside allowed roots {list(roots)}")
        raise SecurityViolationError("Access denied", path=raw)

    try:
        canonical = canonicalize(candidate)
        allowed = _canonical_roots(roots)
    except (OSError, ValueError) as e:
        _log_blocked(candidate, f"canonicalization failed: {e}")
        raise SecurityViolationError(
            "Unable to validate path", path=raw, reason="VALIDATION_FAILED"
        ) from e

    if canonical == candidate:
        return

    if not _is_within_any(canonical, allowed):
        _log_blocked(candidate, f"symbolic link resolves outside allowed roots: {canonical!r}")
        raise SecurityViolationError("Access denied", path=raw, reason="SYMLINK_ESCAPE")

    logger.info(f"PATH_SECURITY: Symbolic link resolved {candidate!r} -> {canonical!r}")


def validate_write_path(
    path: str | os.PathLike[str],
    context: PathContext,
    settings: Optional[PathResolverSettings] = None,
) -> None:
    """
    Verify that agent output may be written to a path.

    Writes are only allowed inside <project_root>/<conversations_dir>. The
    core root is always read-only.

    Args:
        path: Absolute path the caller intends to write
        context: PathContext of the bundle performing the write
        settings: Directory layout (uses global settings if not provided)

    Raises:
        SecurityViolationError: If the path fails validate_path_security()
            or is outside the writable area
    """
    validate_path_security(path, context)

    if settings is None:
        settings = get_settings()

    raw = os.fspath(path)
    candidate = _normalize_candidate(raw)

    if is_within(candidate, context.core_root):
        _log_blocked(candidate, "write into core root")
        raise SecurityViolationError(
            "Write operation denied: Core files are read-only",
            path=raw,
            reason="WRITE_DENIED",
        )

    writable_root = os.path.normpath(
        os.path.join(context.project_root, settings.conversations_dir)
    )
    if not is_within(candidate, writable_root) or not _is_within_any(
        canonicalize(candidate), _canonical_roots([writable_root])
    ):
        _log_blocked(candidate, f"write outside {writable_root!r}")
        raise SecurityViolationError(
            "Write access denied", path=raw, reason="WRITE_DENIED"
        )
