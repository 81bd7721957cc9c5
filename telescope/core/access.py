"""Access scope management: which directories a search may touch.

Grants are persisted as an ordered list of opaque tokens under a single key of
a blob store. A token is exchanged for a ``Root`` whose live handle is held
only between ``start_access()`` and ``stop_access()``.

The manager's live-handle cache is not guarded by a lock: callers must not run
two searches against the same manager concurrently.
"""

import base64
import json
import os
import stat
import sys
import threading
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Tuple

import click
from loguru import logger

from .errors import UserCancelled


# Token encoding

def create_token(path: Path) -> bytes:
    """Encode a directory as a durable token bound to its filesystem identity."""
    path = Path(path).expanduser().resolve()
    st = path.stat()
    if not stat.S_ISDIR(st.st_mode):
        raise NotADirectoryError(str(path))
    record = {"path": str(path), "dev": st.st_dev, "ino": st.st_ino}
    return json.dumps(record, sort_keys=True).encode("utf-8")


def _volume_path(dev: int, ino: int) -> Optional[Path]:
    """Current path of (dev, ino) through the macOS /.vol namespace."""
    if sys.platform != "darwin":
        return None
    import fcntl

    try:
        fd = os.open(f"/.vol/{dev}/{ino}", os.O_RDONLY)
    except OSError:
        return None
    try:
        raw = fcntl.fcntl(fd, fcntl.F_GETPATH, bytes(1024))
    except OSError:
        return None
    finally:
        os.close(fd)
    return Path(os.fsdecode(raw.split(b"\0", 1)[0]))


def locate_directory(last_path: Path, dev: Optional[int], ino: Optional[int]) -> Optional[Path]:
    """
    Find the directory with identity (dev, ino) after a move or rename.

    Uses /.vol on macOS; elsewhere only renames within the last known parent
    are found.
    """
    if dev is None or ino is None:
        return None

    located = _volume_path(dev, ino)
    if located is not None and located.is_dir():
        return located

    try:
        entries = list(os.scandir(last_path.parent))
    except OSError:
        return None
    for entry in entries:
        try:
            if not entry.is_dir(follow_symlinks=False):
                continue
            st = entry.stat(follow_symlinks=False)
        except OSError:
            continue
        if (st.st_dev, st.st_ino) == (dev, ino):
            return Path(entry.path)
    return None


def resolve_token(token: bytes) -> Tuple[Path, bool]:
    """
    Resolve a token to its directory.

    Returns (path, is_stale). A token is stale when its directory was moved
    or renamed, or when its path now names a different directory; a moved
    directory is found again by its filesystem identity.

    Raises:
        ValueError: token is not a valid record
        OSError: the directory cannot be found
    """
    try:
        record = json.loads(token)
        path = Path(record["path"])
        dev, ino = record.get("dev"), record.get("ino")
    except (KeyError, TypeError, AttributeError) as e:
        raise ValueError(f"malformed token: {e}") from e

    try:
        st = path.stat()
    except OSError:
        st = None

    if st is not None and stat.S_ISDIR(st.st_mode) and (st.st_dev, st.st_ino) == (dev, ino):
        return path, False

    moved_to = locate_directory(path, dev, ino)
    if moved_to is not None:
        return moved_to, True

    if st is None:
        raise FileNotFoundError(str(path))
    if not stat.S_ISDIR(st.st_mode):
        raise NotADirectoryError(str(path))
    return path, True


class Root:
    """A granted directory with a time-bounded read handle."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._fd: Optional[int] = None

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def is_accessing(self) -> bool:
        return self._fd is not None

    def start_access(self) -> bool:
        if self._fd is not None:
            return True
        try:
            self._fd = os.open(self.path, os.O_RDONLY | getattr(os, "O_DIRECTORY", 0))
        except OSError as e:
            logger.debug(f"Cannot start access on {self.path}: {e}")
            return False
        return True

    def stop_access(self) -> None:
        if self._fd is None:
            return
        try:
            os.close(self._fd)
        finally:
            self._fd = None

    def __fspath__(self) -> str:
        return str(self.path)

    def __repr__(self) -> str:
        state = "live" if self.is_accessing else "idle"
        return f"Root({str(self.path)!r}, {state})"


# Collaborators

class GrantStore(Protocol):
    def load(self, key: str) -> List[bytes]: ...

    def save(self, key: str, blobs: List[bytes]) -> None: ...

    def delete(self, key: str) -> None: ...


class DirectoryPicker(Protocol):
    def pick(self, message: str, prompt: str) -> List[Path]:
        """Return chosen directories; raise UserCancelled on dismissal."""
        ...


class MemoryGrantStore:
    """In-process grant store."""

    def __init__(self):
        self._data: Dict[str, List[bytes]] = {}

    def load(self, key: str) -> List[bytes]:
        return list(self._data.get(key, []))

    def save(self, key: str, blobs: List[bytes]) -> None:
        self._data[key] = list(blobs)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileGrantStore:
    """Grant store backed by a JSON file of base64-encoded blobs."""

    def __init__(self, path: Path):
        self.path = Path(path).expanduser()

    def _read(self) -> Dict[str, List[str]]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning(f"Ignoring unreadable grant store {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, List[str]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_path, self.path)

    def load(self, key: str) -> List[bytes]:
        entries = self._read().get(key, [])
        if not isinstance(entries, list):
            logger.warning(f"Ignoring malformed grant entry under {key!r}")
            return []

        blobs = []
        for encoded in entries:
            if not isinstance(encoded, str):
                continue
            try:
                blobs.append(base64.b64decode(encoded, validate=True))
            except ValueError:
                logger.warning(f"Skipping undecodable grant blob under {key!r}")
        return blobs

    def save(self, key: str, blobs: List[bytes]) -> None:
        data = self._read()
        data[key] = [base64.b64encode(b).decode("ascii") for b in blobs]
        self._write(data)

    def delete(self, key: str) -> None:
        data = self._read()
        if data.pop(key, None) is not None:
            self._write(data)


class PromptDirectoryPicker:
    """Terminal folder picker: comma-separated paths, blank input cancels."""

    def pick(self, message: str, prompt: str) -> List[Path]:
        click.echo(message)
        while True:
            try:
                raw = click.prompt(
                    f"{prompt} (comma-separated folders, blank to cancel)",
                    default="",
                    show_default=False,
                )
            except click.Abort:
                raise UserCancelled("Folder selection aborted") from None

            entries = [e.strip() for e in raw.split(",") if e.strip()]
            if not entries:
                raise UserCancelled("No folders selected")

            paths = [Path(e).expanduser() for e in entries]
            missing = [str(p) for p in paths if not p.is_dir()]
            if not missing:
                return paths
            click.echo(f"Not a folder: {', '.join(missing)}", err=True)


class AccessScopeManager:
    """
    Tracks the granted search roots and their live handles.

    Created once at process start and passed to whoever needs it; ``close()``
    releases every live handle at shutdown.
    """

    def __init__(
        self,
        store: GrantStore,
        picker: DirectoryPicker,
        key: str = "homeFolderBookmarks",
        grant_message: str = "Pick the folder(s) Telescope is allowed to search.",
        add_message: str = "Pick additional folder(s) Telescope can search.",
    ):
        self.store = store
        self.picker = picker
        self.key = key
        self.grant_message = grant_message
        self.add_message = add_message

        self._live: List[Root] = []
        self._ui_thread = threading.current_thread()

    @property
    def live_roots(self) -> List[Root]:
        return list(self._live)

    def resolve_granted_roots(self) -> List[Root]:
        """Resolve stored tokens, repair stale ones, and start access."""
        blobs = self.store.load(self.key)
        refreshed = list(blobs)
        changed = False
        roots = []

        for i, blob in enumerate(blobs):
            try:
                path, stale = resolve_token(blob)
            except (ValueError, OSError) as e:
                logger.debug(f"Dropping unresolvable grant token: {e}")
                continue

            if stale:
                try:
                    refreshed[i] = create_token(path)
                    changed = True
                    logger.info(f"Refreshed stale grant for {path}")
                except OSError as e:
                    logger.warning(f"Could not refresh stale grant for {path}: {e}")

            root = Root(path)
            if root.start_access():
                roots.append(root)

        if changed:
            self.store.save(self.key, refreshed)

        self._replace_live(roots)
        return self.live_roots

    def request_new_grant(self, message: Optional[str] = None) -> List[Root]:
        """Ask for folders and replace the whole grant with the selection."""
        self._require_ui_thread()
        paths = self.picker.pick(message or self.grant_message, "Grant Access")
        if not paths:
            raise UserCancelled("No folders selected")

        blobs = [create_token(p) for p in paths]
        self.store.save(self.key, blobs)
        logger.info(f"Granted access to {len(blobs)} folder(s)")
        return self._start_access(blobs)

    def add_to_grant(self, message: Optional[str] = None) -> List[Root]:
        """Ask for folders and append the ones not granted yet."""
        self._require_ui_thread()
        paths = self.picker.pick(message or self.add_message, "Add")
        if not paths:
            raise UserCancelled("No folders selected")

        blobs = self.store.load(self.key)
        for p in paths:
            token = create_token(p)
            if token not in blobs:
                blobs.append(token)

        self.store.save(self.key, blobs)
        return self._start_access(blobs)

    def revoke_all(self) -> None:
        """Stop all access and forget every grant."""
        self.release_all()
        self.store.delete(self.key)
        logger.info("Revoked all folder grants")

    def revoke(self, name: str) -> None:
        """Forget the grant whose folder is named ``name``."""
        blobs = self.store.load(self.key)
        remaining = []
        for blob in blobs:
            try:
                path, _ = resolve_token(blob)
            except (ValueError, OSError):
                remaining.append(blob)
                continue
            if path.name != name:
                remaining.append(blob)

        if len(remaining) == len(blobs):
            return

        self.store.save(self.key, remaining)
        logger.info(f"Revoked folder grant: {name}")
        self._start_access(remaining)

    def granted_folder_names(self) -> List[str]:
        return [root.name for root in self.resolve_granted_roots()]

    def resolve_or_request(self) -> List[Root]:
        """Existing roots, or the grant request flow when there are none."""
        roots = self.resolve_granted_roots()
        if not roots:
            roots = self.request_new_grant()
        return roots

    def release_all(self) -> None:
        """Stop access on every live root; persisted grants are untouched."""
        for root in self._live:
            root.stop_access()
        self._live = []

    def close(self) -> None:
        self.release_all()

    def _start_access(self, blobs: List[bytes]) -> List[Root]:
        roots = []
        for blob in blobs:
            try:
                path, _ = resolve_token(blob)
            except (ValueError, OSError) as e:
                logger.debug(f"Skipping unresolvable grant token: {e}")
                continue
            root = Root(path)
            if root.start_access():
                roots.append(root)
        self._replace_live(roots)
        return self.live_roots

    def _replace_live(self, roots: List[Root]) -> None:
        for root in self._live:
            root.stop_access()
        self._live = roots

    def _require_ui_thread(self) -> None:
        if threading.current_thread() is not self._ui_thread:
            raise RuntimeError("Folder picker must run on the UI-owning thread")
