"""Command-line entry point: ``python -m filedepot [--config PATH]``."""
import argparse
import logging
import sys

import uvicorn

from filedepot.config import ConfigError, default_config_path, load_config, set_config

logger = logging.getLogger("filedepot")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="filedepot", description=__doc__)
    parser.add_argument(
        "--config",
        default=None,
        help=f"path to the config file (default: {default_config_path()})",
    )
    args = parser.parse_args(argv)

    # Import here so logging is configured before the config is read.
    from filedepot.main import app

    try:
        config = load_config(args.config)
    except ConfigError as e:
        logger.error("Load config error: %s", e)
        return 1

    set_config(config)
    logger.info("Server starting on port: %d", config.port)
    uvicorn.run(app, host=config.host, port=config.port, log_level=config.logging.level)
    return 0


if __name__ == "__main__":
    sys.exit(main())
