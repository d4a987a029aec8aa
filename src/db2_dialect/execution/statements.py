"""Statement splitting and classification."""
import re
from enum import Enum
from typing import List

from sqlglot.errors import TokenError
from sqlglot.tokens import Tokenizer, TokenType

from db2_dialect.common.errors import StatementSplitError

_MUTATING_RE = re.compile(r"^(?:insert|update|merge|delete)", re.IGNORECASE)


class StatementKind(str, Enum):
    MUTATING = "mutating"
    READ = "read"


def is_mutating(statement: str) -> bool:
    """True for statements answered with an affected-row count."""
    return bool(_MUTATING_RE.match(statement))


def classify(statement: str) -> StatementKind:
    return StatementKind.MUTATING if is_mutating(statement) else StatementKind.READ


def split_statements(text: str) -> List[str]:
    """Splits multi-statement SQL text on top-level semicolons.

    Each statement is returned as the original text from its first token up
    to the terminating semicolon, so comments preceding a statement are
    dropped and literal contents are untouched. Chunks holding no tokens are
    skipped.

    Args:
        text (str): SQL text holding zero or more statements.

    Returns:
        List[str]: The statements in source order.

    Raises:
        StatementSplitError: If the text cannot be tokenized (e.g. an
            unterminated string literal).
    """
    try:
        tokens = Tokenizer().tokenize(text)
    except TokenError as exc:
        raise StatementSplitError(f"Could not split query text: {exc}") from exc

    statements: List[str] = []
    start = None
    for token in tokens:
        if token.token_type == TokenType.SEMICOLON:
            if start is not None:
                statements.append(text[start:token.start].strip())
            start = None
        elif start is None:
            start = token.start
    if start is not None:
        statements.append(text[start:].strip())
    return statements
