import logging
import re
from typing import Optional

from openai import OpenAI

from pgask.core.config import LLMSettings
from pgask.schemas.query import Prompt

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a SQL expert. Write only SELECT queries for PostgreSQL{version}. "
    "Given the following database schema:\n"
    "{schema}\n"
    "Write a SQL query to answer the user's question. "
    "Respond only with the SQL query."
)

_CODE_FENCE_RE = re.compile(r"```sql|```")


class EmptyCompletion(Exception):
    pass


def build_prompt(question: str, schema_text: str, version: Optional[str] = None) -> Prompt:
    """The version is left out when the schema comes from a static file."""
    version_part = f" version {version}" if version else ""
    system = SYSTEM_PROMPT.format(version=version_part, schema=schema_text)
    return Prompt(system=system, user=question.strip())


def create_client(settings: LLMSettings) -> OpenAI:
    return OpenAI(
        api_key=settings.api_key.get_secret_value(),
        base_url=settings.base_url,
    )


def request_completion(client: OpenAI, prompt: Prompt, settings: LLMSettings) -> str:
    response = client.chat.completions.create(
        model=settings.model,
        messages=[
            {"role": "system", "content": prompt.system},
            {"role": "user", "content": prompt.user},
        ],
        temperature=0,
    )

    content = response.choices[0].message.content if response.choices else None
    if not content:
        raise EmptyCompletion("No response from the completion endpoint")
    return content


def extract_sql(raw: str) -> str:
    return _CODE_FENCE_RE.sub("", raw).strip()


def generate_sql(client: OpenAI, prompt: Prompt, settings: LLMSettings) -> str:
    raw = request_completion(client, prompt, settings)
    sql = extract_sql(raw)
    logger.info("Extracted SQL query: %s", sql)
    return sql
