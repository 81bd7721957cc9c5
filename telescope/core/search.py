"""Search execution: translate, parse, query the index, filter and cap."""

import os
import time
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import List, Optional

from loguru import logger

from .access import AccessScopeManager
from .bus import Event, EventBus
from .config import SearchConfig
from .errors import IndexQueryError, MissingCommand
from .filetypes import determine_file_type
from .index import IndexBackend
from .models import FileResult, SearchHit, SearchOutcome, TranslationResponse
from .parser import parse
from .translation import TranslationClient


class SearchState(Enum):
    """Lifecycle of one search invocation."""
    IDLE = "idle"
    TRANSLATION_PENDING = "translation_pending"
    PARSE_PENDING = "parse_pending"
    ACCESS_PENDING = "access_pending"
    QUERY_RUNNING = "query_running"
    FILTERING = "filtering"
    DONE = "done"
    FAILED = "failed"


def normalize_hint(hint: Optional[str]) -> Optional[str]:
    if not hint:
        return None
    needle = os.path.expanduser(hint.strip()).strip("/").lower()
    return needle or None


def path_matches_hint(path: str, needle: Optional[str]) -> bool:
    """
    True when ``needle`` (already normalized) names whole path segments of
    ``path``, compared case-insensitively. No needle admits every path.
    """
    if needle is None:
        return True
    return f"/{needle}/" in path.lower() + "/"


def parse_day(value: Optional[str]) -> Optional[date]:
    if value is None:
        return None
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except ValueError:
        logger.warning(f"Ignoring malformed date filter: {value!r}")
        return None


@dataclass(frozen=True)
class DateRange:
    """Inclusive range of calendar days; a missing bound is open."""
    start: Optional[date] = None
    end: Optional[date] = None

    @classmethod
    def from_response(cls, response: TranslationResponse) -> "DateRange":
        return cls(
            start=parse_day(response.start_date_filter),
            end=parse_day(response.end_date_filter)
        )

    def contains(self, moment: Optional[datetime]) -> bool:
        if moment is None:
            return True
        if moment.tzinfo is not None:
            moment = moment.astimezone()
        day = moment.date()
        if self.start is not None and day < self.start:
            return False
        if self.end is not None and day > self.end:
            return False
        return True


class SearchEngine:
    """
    Runs a natural-language query end to end.

    Translation, access and index-start failures propagate as their own
    exception types. A failure after the index query started is handled
    according to ``config.index_error_policy``.
    """

    def __init__(
        self,
        translator: TranslationClient,
        access: AccessScopeManager,
        index: IndexBackend,
        config: SearchConfig,
        event_bus: Optional[EventBus] = None
    ):
        self.translator = translator
        self.access = access
        self.index = index
        self.config = config
        self._event_bus = event_bus
        self.state = SearchState.IDLE

    async def search(self, query: str) -> SearchOutcome:
        """Translate ``query`` and execute the resulting command."""
        if not query.strip():
            return SearchOutcome()

        start_time = time.perf_counter()
        self._set_state(SearchState.TRANSLATION_PENDING, query)
        try:
            response = await self.translator.translate(query)
        except BaseException as e:
            self._fail(query, e)
            raise

        return await self._execute(query, response, start_time)

    async def execute(self, response: TranslationResponse, query: str = "") -> SearchOutcome:
        """Run an already-translated command."""
        return await self._execute(query, response, time.perf_counter())

    async def _execute(
        self,
        query: str,
        response: TranslationResponse,
        start_time: float
    ) -> SearchOutcome:
        try:
            outcome = await self._run(query, response)
        except BaseException as e:
            self._fail(query, e)
            raise

        latency_ms = (time.perf_counter() - start_time) * 1000
        self._set_state(SearchState.DONE, query)
        self._emit("search.completed", {
            "query": query,
            "latency_ms": latency_ms,
            "result_count": outcome.total_results,
            "has_more": outcome.has_more
        })
        logger.info(
            f"Search {query!r} returned {outcome.total_results} results in {latency_ms:.1f}ms"
        )
        return outcome

    async def _run(self, query: str, response: TranslationResponse) -> SearchOutcome:
        if response.search_command is None:
            raise MissingCommand("Translation response did not include a search command")

        self._set_state(SearchState.PARSE_PENDING, query)
        parsed = parse(response.search_command)
        logger.debug(f"Parsed command: hint={parsed.search_path_hint!r} predicate={parsed.predicate!r}")

        self._set_state(SearchState.ACCESS_PENDING, query)
        try:
            roots = self.access.resolve_or_request()
            if not roots:
                logger.warning("No accessible folders granted; nothing to search")
                return SearchOutcome()

            self._set_state(SearchState.QUERY_RUNNING, query)
            try:
                hits = await self.index.query([root.path for root in roots], parsed.predicate)
            except IndexQueryError as e:
                if self.config.index_error_policy == "propagate":
                    raise
                logger.error(f"Index query failed: {e}")
                hits = []

            self._set_state(SearchState.FILTERING, query)
            return self.filter_hits(hits, parsed.search_path_hint, response)
        finally:
            self.access.release_all()

    def filter_hits(
        self,
        hits: List[SearchHit],
        search_path_hint: Optional[str],
        response: TranslationResponse
    ) -> SearchOutcome:
        """Apply path and date filters in backend order, stopping at the cap."""
        needle = normalize_hint(search_path_hint)
        date_range = DateRange.from_response(response) if response.has_date_filter else None
        use_creation = response.uses_creation_date
        max_results = self.config.max_results

        files = []
        has_more = False
        for index, hit in enumerate(hits):
            if not path_matches_hint(hit.path, needle):
                continue

            if date_range is not None:
                chosen = hit.created if use_creation else hit.modified
                if not date_range.contains(chosen):
                    continue

            if len(files) == max_results:
                has_more = True
                break

            files.append(FileResult.from_hit(index, hit, determine_file_type(hit.path)))

        return SearchOutcome(files=files, total_results=len(files), has_more=has_more)

    def _set_state(self, state: SearchState, query: str) -> None:
        self.state = state
        self._emit("search.state", {"query": query, "state": state.value})

    def _fail(self, query: str, error: BaseException) -> None:
        self._set_state(SearchState.FAILED, query)
        self._emit("search.failed", {
            "query": query,
            "error_type": type(error).__name__,
            "message": str(error)
        })

    def _emit(self, event_type: str, data: dict) -> None:
        if self._event_bus is not None:
            self._event_bus.emit_nowait(Event(type=event_type, data=data, source="search_engine"))
