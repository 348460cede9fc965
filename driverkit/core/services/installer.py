"""
Installer: puts one entry's bytes on disk.

``install_file`` creates every missing ancestor directory and then
runs the transfer protocol in ``copy_file``: open the source
read-only, create/truncate the destination, size the destination to
match by writing its last byte, map both files and copy in one go.
The requested mode is re-applied with ``fchmod`` afterwards because
the process umask narrows the mode given to ``open``.

There is no fsync/rename step here; a crash can leave a partially
written destination, and files installed before a failure stay
in place.

Every function returns the result-dict convention
(``{"ok": True, ...}`` / ``{"ok": False, "error": ...}``) and logs the
failing step.
"""

from __future__ import annotations

import logging
import mmap
import os
import stat
import tempfile
from typing import Any

logger = logging.getLogger(__name__)

DIRECTORY_MODE = 0o755
TEMP_PREFIX = "nv-tmp-"
TEMPLATE_PREFIX = "template-"


def _fail(message: str) -> dict[str, Any]:
    logger.error(message)
    return {"ok": False, "error": message}


def _reason(exc: OSError) -> str:
    return exc.strerror or str(exc)


# ── Directories ─────────────────────────────────────────────────


def mkdir_recursive(path: str, mode: int = DIRECTORY_MODE) -> dict[str, Any]:
    """``mkdir -p``: create ``path`` and any missing parents.

    Existing directories are left alone.
    """
    if not path:
        return _fail("Cannot create a directory with an empty path")

    stripped = path.rstrip("/") or "/"
    current = "/" if stripped.startswith("/") else ""
    for part in stripped.split("/"):
        if not part:
            continue
        current = os.path.join(current, part) if current else part
        if os.path.isdir(current):
            continue
        try:
            os.mkdir(current, mode)
        except FileExistsError:
            if not os.path.isdir(current):
                return _fail(f"Failure creating directory '{current}': (File exists)")
        except OSError as e:
            return _fail(f"Failure creating directory '{current}': ({_reason(e)})")
    return {"ok": True, "path": stripped}


# ── Transfer protocol ───────────────────────────────────────────


def copy_file(src: str, dst: str, mode: int) -> dict[str, Any]:
    """Copy ``src`` to ``dst`` through memory maps and set ``mode`` exactly."""
    src_fd = dst_fd = -1
    try:
        try:
            src_fd = os.open(src, os.O_RDONLY)
        except OSError as e:
            return _fail(f"Unable to open '{src}' for copying ({_reason(e)})")

        try:
            dst_fd = os.open(dst, os.O_RDWR | os.O_CREAT | os.O_TRUNC, mode)
        except OSError as e:
            return _fail(f"Unable to create '{dst}' for copying ({_reason(e)})")

        try:
            size = os.fstat(src_fd).st_size
        except OSError as e:
            return _fail(f"Unable to determine size of '{src}' ({_reason(e)})")

        if size > 0:
            result = _mapped_copy(src, src_fd, dst, dst_fd, size)
            if not result["ok"]:
                return result

        try:
            os.fchmod(dst_fd, mode)
        except OSError as e:
            return _fail(f"Unable to set permissions {mode:04o} on '{dst}' ({_reason(e)})")

        return {"ok": True, "path": dst, "size": size}
    finally:
        if src_fd != -1:
            os.close(src_fd)
        if dst_fd != -1:
            os.close(dst_fd)


def _mapped_copy(src: str, src_fd: int, dst: str, dst_fd: int, size: int) -> dict[str, Any]:
    try:
        os.lseek(dst_fd, size - 1, os.SEEK_SET)
    except OSError as e:
        return _fail(f"Unable to set file size for '{dst}' ({_reason(e)})")
    try:
        written = os.write(dst_fd, b"\0")
    except OSError as e:
        return _fail(f"Unable to write file size for '{dst}' ({_reason(e)})")
    if written != 1:
        return _fail(f"Unable to write file size for '{dst}' (short write)")

    try:
        src_map = mmap.mmap(src_fd, size, prot=mmap.PROT_READ)
    except (OSError, ValueError) as e:
        return _fail(f"Unable to map source file '{src}' for copying ({e})")
    try:
        try:
            dst_map = mmap.mmap(dst_fd, size, prot=mmap.PROT_READ | mmap.PROT_WRITE)
        except (OSError, ValueError) as e:
            return _fail(f"Unable to map destination file '{dst}' for copying ({e})")
        try:
            dst_map[:size] = src_map[:size]
        finally:
            dst_map.close()
    finally:
        src_map.close()
    return {"ok": True}


def install_file(src: str, dst: str, mode: int) -> dict[str, Any]:
    """Install ``src`` as ``dst`` with permission bits ``mode``."""
    parent = os.path.dirname(dst) or "."
    made = mkdir_recursive(parent)
    if not made["ok"]:
        return made
    result = copy_file(src, dst, mode)
    if result["ok"]:
        logger.debug("installed %s -> %s (%04o)", src, dst, mode)
    return result


def install_symlink(target: str, link: str) -> dict[str, Any]:
    """Create ``link`` pointing at ``target``, replacing whatever is there."""
    parent = os.path.dirname(link) or "."
    made = mkdir_recursive(parent)
    if not made["ok"]:
        return made
    try:
        if os.path.lexists(link):
            os.unlink(link)
        os.symlink(target, link)
    except OSError as e:
        return _fail(f"Unable to create symbolic link '{link}' -> '{target}' ({_reason(e)})")
    logger.debug("linked %s -> %s", link, target)
    return {"ok": True, "path": link}


def get_symlink_target(path: str) -> dict[str, Any]:
    """Read the target of the symbolic link at ``path``."""
    try:
        st = os.lstat(path)
    except OSError as e:
        return {"ok": False, "error": f"Unable to get file properties for '{path}' ({_reason(e)})."}
    if not stat.S_ISLNK(st.st_mode):
        return {"ok": False, "error": f"File '{path}' is not a symbolic link."}
    try:
        return {"ok": True, "target": os.readlink(path)}
    except OSError as e:
        return {
            "ok": False,
            "error": f"Failure while reading target of symbolic link {path} ({_reason(e)}).",
        }


# ── Temporary files ─────────────────────────────────────────────


def write_temp_file(
    data: bytes,
    mode: int,
    tmpdir: str | None = None,
    prefix: str = TEMP_PREFIX,
) -> dict[str, Any]:
    """Write ``data`` to a uniquely named temporary file with ``mode``.

    The file is removed again if any step fails.
    """
    try:
        fd, path = tempfile.mkstemp(prefix=prefix, dir=tmpdir)
    except OSError as e:
        return _fail(f"Unable to create temporary file ({_reason(e)}).")

    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            os.fchmod(f.fileno(), mode)
    except OSError as e:
        remove_temp_file(path)
        return _fail(f"Unable to write temporary file '{path}' ({_reason(e)}).")
    return {"ok": True, "path": path}


def remove_temp_file(path: str | None) -> None:
    if not path:
        return
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning("Unable to remove temporary file '%s' (%s)", path, _reason(e))


# ── Template rendering ──────────────────────────────────────────


def substitute_tokens(data: bytes, replacements: list[tuple[str, str]]) -> bytes:
    """Replace each token, in order, with its replacement (literal, all occurrences)."""
    for token, replacement in replacements:
        if not token:
            continue
        data = data.replace(token.encode("utf-8"), replacement.encode("utf-8"))
    return data


def render_template(
    src: str,
    replacements: list[tuple[str, str]],
    tmpdir: str | None = None,
    mode: int = 0o600,
) -> dict[str, Any]:
    """Render ``src`` into a new temporary file.

    Returns:
        ``{"ok": True, "path": "<tmpfile>"}``; the caller owns the file
        and must remove it.
    """
    try:
        with open(src, "rb") as f:
            data = f.read()
    except OSError as e:
        return _fail(f"Unable to open '{src}' for copying ({_reason(e)})")

    if not data:
        logger.info("%s is empty; skipping.", src)
        return {"ok": False, "error": f"{src} is empty; skipping."}

    return write_temp_file(
        substitute_tokens(data, replacements), mode, tmpdir, prefix=TEMPLATE_PREFIX,
    )


def read_payload(path: str | None) -> bytes:
    """Contents of a shipped payload file, or ``b""`` when it is unavailable."""
    if not path:
        return b""
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError as e:
        logger.debug("payload %s unreadable: %s", path, _reason(e))
        return b""
