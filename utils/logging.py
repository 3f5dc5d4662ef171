import logging
import os
import sys


_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(server)s | %(message)s"


class _ServerFieldFilter(logging.Filter):
    """Fill the server field for records not logged through ServerLogger."""

    def filter(self, record):
        if not hasattr(record, "server"):
            record.server = "-"
        return True


def setup_logging(server_name: str, level: str, log_file: str = "") -> None:
    formatter = logging.Formatter(
        fmt=_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
    else:
        handler = logging.StreamHandler(sys.stderr)

    handler.setFormatter(formatter)
    handler.addFilter(_ServerFieldFilter())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    logging.getLogger(__name__).debug(f"Logging configured for {server_name}")


class ServerLogger(logging.LoggerAdapter):
    def process(self, msg, kwargs):
        extra = kwargs.get("extra", {})
        extra["server"] = self.extra["server"]
        kwargs["extra"] = extra
        return msg, kwargs


def get_logger(name: str, server_name: str) -> ServerLogger:
    logger = logging.getLogger(name)
    return ServerLogger(logger, {"server": server_name})
