import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import sqlglot
from sqlglot import exp
from sqlglot.errors import SqlglotError

from pgask.schemas.query import ValidationResult

logger = logging.getLogger(__name__)

# Matched as plain substrings, so `select update_count from t` is rejected too.
PROHIBITED_KEYWORDS: Tuple[str, ...] = (
    "insert",
    "update",
    "delete",
    "drop",
    "alter",
    "create",
    "truncate",
    "merge",
    "grant",
    "revoke",
)

_MODIFYING_NODES = (
    exp.Insert,
    exp.Update,
    exp.Delete,
    exp.Drop,
    exp.Create,
    exp.Alter,
    exp.Merge,
    exp.Command,
)

ONLY_SELECT = "Only SELECT queries are allowed."


class SqlRejected(Exception):
    def __init__(self, result: ValidationResult):
        super().__init__(result.reason)
        self.result = result


@dataclass(frozen=True)
class SqlPolicy:
    prohibited_keywords: Tuple[str, ...] = PROHIBITED_KEYWORDS
    # opt-in AST check on top of the keyword gate
    parse_check: bool = False
    dialect: str = "postgres"


def _parse_problem(sql: str, dialect: str) -> Optional[str]:
    """Return why the parsed statement is not a plain read query, or None."""
    try:
        ast = sqlglot.parse_one(sql, read=dialect)
    except SqlglotError as e:
        return f"SQL parse failed: {e}"

    if not isinstance(ast, exp.Query):
        return ONLY_SELECT

    node = ast.find(*_MODIFYING_NODES)
    if node is not None:
        return f"Query contains a data-modifying construct: {node.key.upper()}"
    return None


def check_sql_query(sql: str, policy: Optional[SqlPolicy] = None) -> ValidationResult:
    policy = policy or SqlPolicy()
    lowered = sql.lower()

    if not lowered.strip().startswith("select"):
        return ValidationResult(ok=False, reason=ONLY_SELECT)

    for keyword in policy.prohibited_keywords:
        if keyword in lowered:
            return ValidationResult(
                ok=False,
                reason=f"Query contains prohibited keyword: {keyword}",
                keyword=keyword,
            )

    if policy.parse_check:
        problem = _parse_problem(sql, policy.dialect)
        if problem:
            return ValidationResult(ok=False, reason=problem)

    return ValidationResult(ok=True)


def validate_sql_query(sql: str, policy: Optional[SqlPolicy] = None) -> bool:
    result = check_sql_query(sql, policy)
    if not result:
        logger.error("Error: %s", result.reason)
    return result.ok
