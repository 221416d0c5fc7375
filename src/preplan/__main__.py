"""Run the pre-plan API server: ``python -m preplan``."""

from __future__ import annotations

import argparse
import logging

import uvicorn

from preplan.core.config import Settings
from preplan.web.app import create_app

logger = logging.getLogger("preplan")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the PrePlan Checker API server.")
    parser.add_argument("--host", type=str, default=None, help="Bind address.")
    parser.add_argument("--port", type=int, default=None, help="Listen port.")
    parser.add_argument("--log-level", type=str, default=None, help="Logging level.")
    return parser.parse_args(argv)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)

    overrides = {
        key: value
        for key, value in {"host": args.host, "port": args.port, "log_level": args.log_level}.items()
        if value is not None
    }
    settings = Settings().model_copy(update=overrides)

    configure_logging(settings.log_level)
    if not settings.geocoder.mapbox_token:
        logger.info("No Mapbox token configured; geocoding via Nominatim only")
    logger.info("PrePlan server running on http://%s:%d", settings.host, settings.port)

    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
