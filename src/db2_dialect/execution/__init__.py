from .statements import StatementKind, classify, is_mutating, split_statements
from .executor import StatementExecutor

__all__ = ["StatementKind", "classify", "is_mutating", "split_statements", "StatementExecutor"]
