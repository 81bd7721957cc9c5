"""Index backend interface."""

from pathlib import Path
from typing import List, Protocol, Sequence

from ..models import SearchHit


class IndexBackend(Protocol):
    """
    Runs one predicate across several directory scopes as a single query.

    Implementations raise IndexUnavailable when the query cannot start and
    IndexQueryError when it fails after starting. Cancelling the awaiting
    task must stop the underlying query.
    """

    async def query(self, scopes: Sequence[Path], predicate: str) -> List[SearchHit]:
        ...
