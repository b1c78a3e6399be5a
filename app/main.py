"""Command line entry point for the kryptograf persister.

    $ kryptograf-persister -db ~/test.db -addr 127.0.0.1:11185

Flags default to the values from settings (environment or ``.env``). The
process blocks until it is stopped and exits 0 after a clean stop, 1 when the
service stops for any other reason.
"""

import argparse
import sys
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import ValidationError

from infrastructure.configuration import Settings, ServerSettings, StorageSettings
from infrastructure.logging import configure_logging, get_module_logger
from server.lifecycle import ListenerError, SignalReceived, run_service

logger = get_module_logger()


def parse_args(argv: Optional[List[str]], settings: Settings) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="kryptograf-persister",
        description=(
            "API server persisting json kryptograf messages or any other json "
            'key-value pair in the format {"key_string":"base64_encoded_byte_slice"}.'
        ),
    )
    parser.add_argument(
        "-protocol",
        "--protocol",
        default=settings.server.PROTOCOL,
        help="Network protocol to listen on (default %(default)r)",
    )
    parser.add_argument(
        "-addr",
        "--addr",
        default=settings.server.ADDRESS,
        help="Address to bind the Persister http server to (default %(default)r)",
    )
    parser.add_argument(
        "-db",
        "--db",
        default=settings.storage.DB_FILE,
        help="Persistence file used as backend for the storage API (default %(default)r)",
    )
    parser.add_argument(
        "-encryption-key-env",
        "--encryption-key-env",
        dest="encryption_key_env",
        default=settings.storage.ENCRYPTION_KEY_ENV,
        help=(
            "Environment variable to retrieve the encryption key used to load "
            "and store data in the persistence file (default %(default)r)"
        ),
    )
    return parser.parse_args(argv)


def build_settings(args: argparse.Namespace, base: Settings) -> Settings:
    """Overlay command line flags on settings loaded from the environment."""
    return Settings(
        server=ServerSettings(PROTOCOL=args.protocol, ADDRESS=args.addr),
        storage=StorageSettings(
            DB_FILE=args.db,
            ENCRYPTION_KEY_ENV=args.encryption_key_env,
            MAX_SURROGATE_ATTEMPTS=base.storage.MAX_SURROGATE_ATTEMPTS,
        ),
    )


def cli(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    base = Settings()
    configure_logging(log_level=base.LOG_LEVEL, is_production=base.is_production)

    args = parse_args(argv, base)
    try:
        settings = build_settings(args, base)
    except ValidationError as e:
        logger.error("invalid_configuration", error=str(e))
        return 1

    encryption_key = settings.storage.resolve_encryption_key()

    try:
        run_service(settings, encryption_key)
    except (SignalReceived, ListenerError) as e:
        logger.error("service_terminated", error=str(e))
        return 1
    except Exception as e:  # pylint: disable=broad-except
        logger.exception("service_failed", error=str(e))
        return 1

    logger.info("service_exited", summary="OK")
    return 0


if __name__ == "__main__":
    sys.exit(cli())
