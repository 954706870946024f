from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import ArgumentError


def normalize_database_url(url: str) -> str:
    """Point bare postgres URLs at the psycopg 3 driver."""
    if url.startswith("postgres://"):
        url = "postgresql://" + url[len("postgres://"):]
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


class DatabaseSettings(BaseSettings):
    host: str = "localhost"
    port: int = Field(default=5432, ge=1, le=65535)
    user: str = "postgres"
    password: SecretStr = SecretStr("postgres")
    name: str = "postgres"
    schema_name: str = "public"
    # DATABASE_URL wins over the individual fields when set
    url: Optional[str] = Field(default=None, validation_alias="DATABASE_URL")

    model_config = SettingsConfigDict(
        env_prefix="PGASK_DB_",
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("host", "user", "name", "schema_name")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value

    @field_validator("url")
    @classmethod
    def _parseable_url(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        try:
            make_url(normalize_database_url(value))
        except (ArgumentError, ValueError) as e:
            raise ValueError(f"not a database URL: {e}") from e
        return value

    def sqlalchemy_url(self) -> URL:
        if self.url:
            return make_url(normalize_database_url(self.url))
        return URL.create(
            "postgresql+psycopg",
            username=self.user,
            password=self.password.get_secret_value(),
            host=self.host,
            port=self.port,
            database=self.name,
        )


class LLMSettings(BaseSettings):
    api_key: SecretStr
    model: str = "gpt-4o"
    base_url: Optional[str] = None

    model_config = SettingsConfigDict(env_prefix="OPENAI_", extra="ignore")


class Settings(BaseModel):
    """Everything one invocation needs, validated once at startup."""

    db: DatabaseSettings
    llm: LLMSettings

    model_config = ConfigDict(frozen=True)


def load_settings() -> Settings:
    return Settings(db=DatabaseSettings(), llm=LLMSettings())
