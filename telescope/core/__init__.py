"""Translate → parse → search pipeline."""

from .access import AccessScopeManager, JsonFileGrantStore, MemoryGrantStore, PromptDirectoryPicker, Root
from .config import Config, setup_logging
from .models import FileResult, ParsedCommand, SearchHit, SearchOutcome, TranslationRequest, TranslationResponse
from .parser import extract_scope_hint, parse
from .search import SearchEngine, SearchState
from .translation import TranslationClient

__all__ = [
    "AccessScopeManager", "JsonFileGrantStore", "MemoryGrantStore", "PromptDirectoryPicker", "Root",
    "Config", "setup_logging",
    "FileResult", "ParsedCommand", "SearchHit", "SearchOutcome", "TranslationRequest", "TranslationResponse",
    "extract_scope_hint", "parse",
    "SearchEngine", "SearchState",
    "TranslationClient",
]
