import logging
from contextlib import contextmanager
from typing import Iterator, Union

from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Connection, make_url
from sqlalchemy.pool import NullPool

from pgask.core.config import DatabaseSettings

logger = logging.getLogger(__name__)


class Database:
    """
    Hands out one short-lived connection per `connect()` block.
    Nothing is pooled or shared between blocks.
    """

    def __init__(self, url: Union[str, URL]):
        self.url = make_url(url)

    @classmethod
    def from_settings(cls, settings: DatabaseSettings) -> "Database":
        return cls(settings.sqlalchemy_url())

    @contextmanager
    def connect(self, purpose: str = "query") -> Iterator[Connection]:
        engine = create_engine(self.url, poolclass=NullPool)
        try:
            logger.debug("Connecting to %s", self.url.render_as_string(hide_password=True))
            conn = engine.connect()
            logger.info("Connected to the database for %s.", purpose)
            try:
                yield conn
            finally:
                conn.close()
                logger.info("Database connection closed after %s.", purpose)
        finally:
            engine.dispose()
