import os
from dataclasses import dataclass


_ALLOWED_LOG_LEVELS = {
    "DEBUG",
    "INFO",
    "WARNING",
    "ERROR",
    "CRITICAL",
}

# Protocol name -> default listening port
DEFAULT_PORTS = {
    "echo": 10000,
    "prime": 10001,
    "means": 10002,
    "chat": 10003,
}

_DEFAULT_MAX_FRAME_SIZE = 1024 * 1024


def _require_env(name: str) -> str:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        raise RuntimeError(f"Missing required env var: {name}")
    return value.strip()


def _optional_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip()


def _parse_port(raw: str) -> int:
    try:
        port = int(raw)
    except ValueError:
        raise RuntimeError(f"PORT must be an integer, got: {raw}")

    if not (0 < port < 65536):
        raise RuntimeError(f"Invalid PORT value: {port}")

    return port


def _parse_positive_int(name: str, raw: str) -> int:
    try:
        value = int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got: {raw}")

    if value <= 0:
        raise RuntimeError(f"{name} must be positive, got: {value}")

    return value


@dataclass(frozen=True)
class Config:
    protocol: str
    host: str
    port: int
    log_level: str
    log_file: str
    max_frame_size: int


def load_config() -> Config:
    protocol = _require_env("PROTOCOL").lower()
    if protocol not in DEFAULT_PORTS:
        raise RuntimeError(
            f"Invalid PROTOCOL: {protocol} "
            f"(allowed: {', '.join(sorted(DEFAULT_PORTS))})"
        )

    host = _optional_env("HOST", "0.0.0.0")
    port = _parse_port(_optional_env("PORT", str(DEFAULT_PORTS[protocol])))

    log_level = _optional_env("LOG_LEVEL", "INFO").upper()
    if log_level not in _ALLOWED_LOG_LEVELS:
        raise RuntimeError(
            f"Invalid LOG_LEVEL: {log_level} "
            f"(allowed: {', '.join(sorted(_ALLOWED_LOG_LEVELS))})"
        )

    log_file = os.getenv("LOG_FILE", "").strip()

    max_frame_size = _parse_positive_int(
        "MAX_FRAME_SIZE",
        _optional_env("MAX_FRAME_SIZE", str(_DEFAULT_MAX_FRAME_SIZE)),
    )

    return Config(
        protocol=protocol,
        host=host,
        port=port,
        log_level=log_level,
        log_file=log_file,
        max_frame_size=max_frame_size,
    )
