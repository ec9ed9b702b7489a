"""factstore entry point."""

import json
import logging
import os
import sys

from dotenv import find_dotenv, load_dotenv

from .config import StoreSettings
from .logging import configure_logger
from .seed import DEFAULT_CORPUS, load_corpus
from .store import FactStore, NotFoundError, StoreError

USAGE = "usage: factstore {migrate|random}"
COMMANDS = ("migrate", "random")


def run_migrate(store: FactStore, settings: StoreSettings) -> int:
    """Bootstrap the schema, seed it, and report."""
    corpus = load_corpus(settings.seed_file) if settings.seed_file else DEFAULT_CORPUS
    report = store.schema().run_migrations(corpus, reset=settings.reset_on_migrate)
    if report.reset is False:
        print("Warning: existing facts could not be cleared", file=sys.stderr)
    print(f"Migrations complete: {len(report.seeded)} fact(s) seeded")
    return 0


def run_random(store: FactStore) -> int:
    """Print one random fact as JSON."""
    try:
        fact = store.random()
    except NotFoundError as e:
        print(str(e), file=sys.stderr)
        return 1
    print(json.dumps(fact.to_dict()))
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    load_dotenv(find_dotenv(usecwd=True))

    args = sys.argv[1:] if argv is None else argv
    if len(args) != 1 or args[0] not in COMMANDS:
        print(USAGE, file=sys.stderr)
        return 2
    command = args[0]

    logging.basicConfig(
        level=os.environ.get("FACTSTORE_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = StoreSettings.from_env()
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 1

    try:
        store = FactStore.from_settings(settings, query_log=configure_logger(settings.log_dir))
    except StoreError as e:
        print(str(e), file=sys.stderr)
        return 1

    try:
        if command == "migrate":
            return run_migrate(store, settings)
        return run_random(store)
    except (StoreError, ValueError, OSError) as e:
        print(f"{command} failed: {e}", file=sys.stderr)
        return 1
    finally:
        store.close()


if __name__ == "__main__":
    sys.exit(main())
