"""Split a backend search command into scope hint and predicate."""

import re
from typing import List, Optional

from .models import ParsedCommand

SCOPE_FLAG = "-onlyin"

_SCOPE_HINT_PATTERN = re.compile(r'-onlyin\s+"([^"]+)"')


def tokenize(command: str) -> List[str]:
    """
    Split on whitespace, keeping double-quoted spans together.

    Quote characters toggle quoting and are dropped from the tokens.
    """
    tokens = []
    current = []
    inside_quotes = False

    for char in command:
        if char == '"':
            inside_quotes = not inside_quotes
        elif char.isspace() and not inside_quotes:
            if current:
                tokens.append("".join(current))
                current = []
        else:
            current.append(char)

    if current:
        tokens.append("".join(current))

    return tokens


def parse(command: str) -> ParsedCommand:
    """Extract the ``-onlyin`` hint and rejoin the rest with single spaces."""
    tokens = tokenize(command)
    search_path = None
    predicate_tokens = []
    skip_next = False

    for index, token in enumerate(tokens):
        if skip_next:
            skip_next = False
            continue

        if token == SCOPE_FLAG and index + 1 < len(tokens):
            search_path = tokens[index + 1]
            skip_next = True
        else:
            predicate_tokens.append(token)

    return ParsedCommand(
        search_path_hint=search_path,
        predicate=" ".join(predicate_tokens)
    )


def extract_scope_hint(command: str) -> Optional[str]:
    """Quoted path following the scope flag, without full tokenization."""
    match = _SCOPE_HINT_PATTERN.search(command)
    return match.group(1) if match else None
