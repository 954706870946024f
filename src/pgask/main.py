import argparse
import logging
import sys
import time
from typing import List, Optional

from dotenv import load_dotenv
from openai import OpenAIError
from pydantic import ValidationError

from pgask.core.config import load_settings
from pgask.db.session import Database
from pgask.services.llm.llm_client import create_client
from pgask.services.query.query_service import run_nl_query
from pgask.services.query.sql_validator import SqlPolicy

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pgask",
        description="Ask a PostgreSQL database a question in plain language.",
    )
    parser.add_argument("question", nargs="*", help="Natural language question.")
    parser.add_argument(
        "--model",
        default=None,
        help="Chat model to use. Defaults to env OPENAI_MODEL or gpt-4o.",
    )
    parser.add_argument(
        "--schema-file",
        default=None,
        help="Use the schema text in this file instead of reading the catalog.",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Also parse every statement and reject anything that is not a read query.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format=LOG_FORMAT,
    )

    question = " ".join(args.question).strip()
    if not question:
        logger.error("Please provide a question as a command-line argument.")
        return 1

    try:
        settings = load_settings()
    except ValidationError as e:
        logger.error("Invalid configuration: %s", e)
        return 1

    llm_settings = settings.llm
    if args.model:
        llm_settings = llm_settings.model_copy(update={"model": args.model})

    try:
        client = create_client(llm_settings)
    except OpenAIError as e:
        logger.error("Could not create the completion client: %s", e)
        return 1

    started = time.perf_counter()
    run_nl_query(
        question,
        db=Database.from_settings(settings.db),
        client=client,
        llm_settings=llm_settings,
        schema_name=settings.db.schema_name,
        static_schema_path=args.schema_file,
        policy=SqlPolicy(parse_check=args.strict),
    )
    logger.info("Finished in %.3fs", time.perf_counter() - started)
    return 0


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
