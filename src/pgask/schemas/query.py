from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict


class ColumnInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    data_type: str
    nullable: bool = True

    def render(self) -> str:
        not_null = "" if self.nullable else " NOT NULL"
        return f"{self.name} {self.data_type.upper()}{not_null}"


class SchemaDescription(BaseModel):
    """Tables in catalog order, each with its columns in ordinal order."""

    model_config = ConfigDict(frozen=True)

    tables: Dict[str, List[ColumnInfo]]

    def render(self) -> str:
        blocks = []
        for table, columns in self.tables.items():
            body = ",\n  ".join(c.render() for c in columns)
            blocks.append(f"CREATE TABLE {table} (\n  {body}\n);")
        return "\n\n".join(blocks).strip()


class Prompt(BaseModel):
    model_config = ConfigDict(frozen=True)

    system: str
    user: str


class ValidationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    ok: bool
    reason: Optional[str] = None
    keyword: Optional[str] = None

    def __bool__(self) -> bool:
        return self.ok


class StatementResult(BaseModel):
    sql: str
    columns: List[str]
    rows: List[Tuple[Any, ...]]

    @property
    def row_count(self) -> int:
        return len(self.rows)
