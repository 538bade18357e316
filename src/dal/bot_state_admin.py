import argparse
import asyncio
import logging
import sys

from common.config.state_store import StateStoreSettings
from common.errors.state_errors import StateStoreError
from dal.factory import get_bot_data_store

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


async def _close_client(store) -> None:
    close = getattr(store.client, "close", None)
    if close is not None:
        await close()


async def _ensure(settings: StateStoreSettings) -> None:
    store = get_bot_data_store(settings)
    try:
        await store.initialize_async(timeout_seconds=settings.init_timeout_seconds)
        logger.info(f"Container ready: {settings.database_id}/{settings.collection_id}")
    finally:
        await _close_client(store)


async def _drop(settings: StateStoreSettings) -> None:
    store = get_bot_data_store(settings)
    try:
        if await store.delete_container_if_exists_async():
            logger.info(f"Dropped database {settings.database_id}")
        else:
            logger.info(f"Database {settings.database_id} did not exist")
    finally:
        await _close_client(store)


def main(argv=None):
    """Run the bot-state admin CLI."""
    parser = argparse.ArgumentParser(description="Bot-state store management CLI")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("ensure", help="Create the database and collection if missing")
    subparsers.add_parser("drop", help="Delete the database if it exists")

    args = parser.parse_args(argv)
    commands = {"ensure": _ensure, "drop": _drop}
    if args.command not in commands:
        parser.print_help()
        return

    try:
        settings = StateStoreSettings.from_env()
        asyncio.run(commands[args.command](settings))
    except (StateStoreError, ValueError) as e:
        logger.error(f"{args.command} failed: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
