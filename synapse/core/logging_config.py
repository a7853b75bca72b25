import logging

from synapse.config import settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: str = None) -> None:
    logging.basicConfig(
        level=getattr(logging, (level or settings.log_level).upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%dT%H:%M:%SZ",
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def log_step(logger: logging.Logger, tag: str, step: str, **details) -> None:
    """Log a function step as "[TAG] step - k=v, ..."."""
    if details:
        rendered = ", ".join(f"{k}={v}" for k, v in details.items())
        logger.info("[%s] %s - %s", tag, step, rendered)
    else:
        logger.info("[%s] %s", tag, step)
