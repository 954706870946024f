import logging
from pathlib import Path
from typing import List, Optional, Union

from openai import OpenAI, OpenAIError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from tabulate import tabulate

from pgask.core.config import LLMSettings
from pgask.db.introspection import (
    fetch_schema_description,
    fetch_server_version,
    load_static_schema,
)
from pgask.db.session import Database
from pgask.schemas.query import StatementResult
from pgask.services.llm.llm_client import EmptyCompletion, build_prompt, generate_sql
from pgask.services.query.sql_validator import SqlPolicy, SqlRejected, check_sql_query

logger = logging.getLogger(__name__)


def split_statements(sql: str) -> List[str]:
    return [s.strip() for s in sql.split(";") if s.strip()]


def print_result(result: StatementResult) -> None:
    if not result.rows:
        print("(no rows)")
        return
    print(tabulate(result.rows, headers=result.columns, tablefmt="github"))


def execute_sql_query(
    db: Database,
    sql: str,
    policy: Optional[SqlPolicy] = None,
) -> List[StatementResult]:
    """
    Run every statement in `sql` on a single connection, in order.
    The first statement that fails the gate raises SqlRejected and
    nothing after it is executed.
    """
    results: List[StatementResult] = []
    try:
        with db.connect("query execution") as conn:
            for statement in split_statements(sql):
                verdict = check_sql_query(statement, policy)
                if not verdict:
                    raise SqlRejected(verdict)

                logger.info("Executing query: %s", statement)
                cursor = conn.execute(text(statement))
                result = StatementResult(
                    sql=statement,
                    columns=list(cursor.keys()),
                    rows=[tuple(row) for row in cursor.all()],
                )
                print_result(result)
                results.append(result)
    except SQLAlchemyError as e:
        logger.error("Error executing SQL query: %s", e)
        raise
    return results


def run_nl_query(
    question: str,
    *,
    db: Database,
    client: OpenAI,
    llm_settings: LLMSettings,
    schema_name: str = "public",
    static_schema_path: Optional[Union[str, Path]] = None,
    policy: Optional[SqlPolicy] = None,
) -> bool:
    """
    question -> schema/version -> completion -> gate -> execution.
    Every failure is logged and stops the run; returns True only when all
    statements were executed.
    """
    try:
        if static_schema_path is None:
            schema_text = fetch_schema_description(db, schema_name)
            version = fetch_server_version(db)
        else:
            schema_text = load_static_schema(static_schema_path)
            version = None

        prompt = build_prompt(question, schema_text, version)
        sql = generate_sql(client, prompt, llm_settings)
        execute_sql_query(db, sql, policy)
    except SqlRejected as e:
        logger.error("Invalid query, remaining statements were not executed: %s", e)
        return False
    except (EmptyCompletion, OpenAIError) as e:
        logger.error("Error fetching response from the completion endpoint: %s", e)
        return False
    except SQLAlchemyError as e:
        logger.error("Database error, query aborted: %s", e)
        return False
    except (OSError, UnicodeDecodeError) as e:
        logger.error("Could not read static schema: %s", e)
        return False
    return True
