"""
Web entrypoint - runs the FastAPI server.
"""

import argparse
import logging
import os

import uvicorn

logging.basicConfig(
    level=getattr(logging, os.environ.get("LOG_LEVEL", "INFO")),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


def main():
    from meet_scheduler.config import load_config
    from meet_scheduler.web import create_app

    parser = argparse.ArgumentParser(description="Run the meeting scheduler web API")
    parser.add_argument(
        "--config",
        help="Path to config file (default: search standard locations)",
        default=os.environ.get("MEET_CONFIG"),
    )
    args = parser.parse_args()

    config = load_config(args.config)
    app = create_app(config)

    logger.info(f"Starting Meet Scheduler on {config.web.host}:{config.web.port}")

    uvicorn.run(
        app,
        host=config.web.host,
        port=config.web.port,
        log_level="info",
    )


if __name__ == "__main__":
    main()
