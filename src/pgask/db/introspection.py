import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Union

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from pgask.db.session import Database
from pgask.schemas.query import ColumnInfo, SchemaDescription

logger = logging.getLogger(__name__)

SCHEMA_QUERY = text(
    """
    SELECT table_name, column_name, data_type, is_nullable
    FROM information_schema.columns
    WHERE table_schema = :schema
    ORDER BY table_name, ordinal_position
    """
)

VERSION_QUERY = text("SHOW server_version")


def build_schema_description(rows: Iterable[Mapping[str, Any]]) -> SchemaDescription:
    tables: Dict[str, List[ColumnInfo]] = {}
    for row in rows:
        tables.setdefault(row["table_name"], []).append(
            ColumnInfo(
                name=row["column_name"],
                data_type=row["data_type"],
                nullable=row["is_nullable"] != "NO",
            )
        )
    return SchemaDescription(tables=tables)


def fetch_schema_description(db: Database, schema: str = "public") -> str:
    """Read the column catalog for `schema` and render it as pseudo DDL."""
    try:
        with db.connect("schema introspection") as conn:
            rows = conn.execute(SCHEMA_QUERY, {"schema": schema}).mappings().all()
    except SQLAlchemyError as e:
        logger.error("Error fetching schema from the database: %s", e)
        raise

    description = build_schema_description(rows)
    if not description.tables:
        logger.warning("No tables found in schema %r", schema)
    logger.debug("Schema description:\n%s", description.render())
    return description.render()


def fetch_server_version(db: Database) -> str:
    try:
        with db.connect("version lookup") as conn:
            version = conn.execute(VERSION_QUERY).scalar_one()
    except SQLAlchemyError as e:
        logger.error("Error fetching PostgreSQL version: %s", e)
        raise

    logger.info("PostgreSQL version: %s", version)
    return str(version)


def load_static_schema(path: Union[str, Path]) -> str:
    """Fixed schema text for databases that should not be introspected."""
    schema_text = Path(path).read_text(encoding="utf-8").strip()
    if not schema_text:
        logger.warning("Static schema file %s is empty", path)
    return schema_text
