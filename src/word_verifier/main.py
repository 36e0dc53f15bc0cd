"""Main entry point for the verification worker outside Lambda."""

import argparse
import logging
import sys

from word_verifier.config import config
from word_verifier.handlers.verification import run_worker_loop
from word_verifier.infrastructure.database import create_schema
from word_verifier.infrastructure.dependency_injection import DependenciesContainer

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[
        logging.StreamHandler(sys.stdout),
    ],
)
logger = logging.getLogger(__name__)


def run_worker(init_schema: bool = False) -> None:
    """
    Poll the verification queue until interrupted.

    Args:
        init_schema: Create missing tables before polling.
    """
    logger.info("=" * 60)
    logger.info("Starting verification worker")
    logger.info("=" * 60)

    # Validate config
    config.validate()

    container = DependenciesContainer()

    if init_schema:
        create_schema(container.engine())

    gateway = container.gateway()
    logger.info("Known models: %d providers", len(gateway.registry.as_dict()))

    run_worker_loop(
        sqs_receiver=container.sqs_receiver(),
        store=container.store(),
        gateway=gateway,
    )


def main():
    """Entry point with CLI argument parsing."""
    parser = argparse.ArgumentParser(
        description="Verify queued word batches against AI models"
    )
    parser.add_argument(
        "--init-schema",
        action="store_true",
        help="Create the database tables if they do not exist",
    )

    args = parser.parse_args()

    try:
        run_worker(init_schema=args.init_schema)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(0)
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
