"""Command line entry point: ``python -m meme_day``."""

import argparse
import asyncio
import json
import os
import sys
from pathlib import Path

from .config import ConfigError, default_config, load_config, validate_config
from .logger import setup_logger
from .orchestrator import PipelineOrchestrator
from .scheduler import Scheduler


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="meme_day",
        description="Fetch the top headline of the day, summarize it and pick a cover image."
    )
    parser.add_argument("--config", default="config/config.yaml",
                        help="YAML configuration file (built-in defaults when it does not exist)")
    parser.add_argument("--output", help="write the edition JSON to this file")
    parser.add_argument("--query", help="search query for feeds with a {query} endpoint")
    parser.add_argument("--schedule", action="store_true",
                        help="keep running and refresh daily at the configured run_time")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config) if os.path.exists(args.config) else default_config()
        if args.output:
            config.output_file = Path(args.output)
        validate_config(config)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    setup_logger(config.log_file, level=config.log_level)
    pipeline = PipelineOrchestrator(config)

    if args.schedule:
        Scheduler(pipeline, run_time=config.run_time, query=args.query).start()
        return 0

    edition = asyncio.run(pipeline.run_pipeline(args.query))
    print(json.dumps(edition.to_dict(), indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
