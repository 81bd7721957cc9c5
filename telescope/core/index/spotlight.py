"""Spotlight index backend driven through the ``mdfind`` command."""

import asyncio
import contextlib
import os
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence

from loguru import logger

from ..errors import IndexQueryError, IndexUnavailable
from ..models import SearchHit


def _timestamp(value: Optional[float]) -> Optional[datetime]:
    return datetime.fromtimestamp(value) if value is not None else None


def stat_hit(path: str) -> SearchHit:
    """Build a hit with creation/modification times; missing files keep None."""
    try:
        st = os.stat(path)
    except OSError:
        return SearchHit(path=path)

    return SearchHit(
        path=path,
        created=_timestamp(getattr(st, "st_birthtime", None)),
        modified=_timestamp(st.st_mtime)
    )


class SpotlightIndex:
    """
    Queries the Spotlight metadata index.

    All scopes go into one ``mdfind`` invocation; gathering is finished when
    the process exits. If the awaiting task is cancelled the process is
    killed and reaped before the cancellation propagates.
    """

    def __init__(self, mdfind_path: str = "mdfind"):
        self.mdfind_path = mdfind_path

    def build_args(self, scopes: Sequence[Path], predicate: str) -> List[str]:
        args = [self.mdfind_path, "-0"]
        for scope in scopes:
            args.extend(["-onlyin", os.fspath(scope)])
        args.append(predicate)
        return args

    async def query(self, scopes: Sequence[Path], predicate: str) -> List[SearchHit]:
        args = self.build_args(scopes, predicate)
        logger.debug(f"Running index query: {args}")

        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE
            )
        except OSError as e:
            raise IndexUnavailable(f"Cannot start {self.mdfind_path}: {e}") from e

        try:
            stdout, stderr = await process.communicate()
        finally:
            if process.returncode is None:
                with contextlib.suppress(ProcessLookupError):
                    process.kill()
                await process.wait()
                logger.debug("Index query cancelled, process reaped")

        if process.returncode != 0:
            message = stderr.decode(errors="replace").strip()
            raise IndexQueryError(
                f"{self.mdfind_path} exited with {process.returncode}: {message}"
            )

        paths = [os.fsdecode(raw) for raw in stdout.split(b"\0") if raw.strip()]
        hits = await asyncio.to_thread(lambda: [stat_hit(p) for p in paths])
        logger.debug(f"Index query gathered {len(hits)} hits")
        return hits
