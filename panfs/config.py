import configparser
import os
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_BASE_URL = "https://pan.teambition.com"
DEFAULT_ACCOUNT_URL = "https://www.teambition.com"

SESSION_ID_ENV = "TEAMBITION_SESSIONID"
SESSION_ID_SIG_ENV = "TEAMBITION_SESSIONID_SIG"


@dataclass
class TeambitionConfig:
    session_id: str
    session_id_sig: str
    base_url: str = DEFAULT_BASE_URL
    account_url: str = DEFAULT_ACCOUNT_URL  # Personal organization lookup

    def __repr__(self) -> str:
        return (
            f"TeambitionConfig(session_id='***', session_id_sig='***', "
            f"base_url={self.base_url!r}, account_url={self.account_url!r})"
        )


@dataclass
class CacheConfig:
    capacity: int = 256  # Folder path -> node ID entries


@dataclass
class ConnectionConfig:
    timeout_seconds: int = 30


@dataclass
class LogConfig:
    level: str = "INFO"
    file: str = "panfs.log"
    console: bool = True


@dataclass
class AppConfig:
    teambition: TeambitionConfig
    cache: CacheConfig = field(default_factory=CacheConfig)
    connection: ConnectionConfig = field(default_factory=ConnectionConfig)
    logging: LogConfig = field(default_factory=LogConfig)


def _parse_int(section: configparser.SectionProxy, key: str) -> int:
    value = section.get(key)
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Invalid {key} value in config: '{value}' - must be an integer")


def _parse_bool(value: str) -> bool:
    return value.lower() in ("true", "1", "yes")


def load_config(config_path: str | None = None, **cli_args) -> AppConfig:
    """
    Load configuration from an INI file, the environment and/or CLI arguments.
    CLI arguments take precedence over the config file, which takes
    precedence over the environment.

    Args:
        config_path: Path to the INI configuration file.
        **cli_args: Key-value pairs from command line arguments.

    Returns:
        AppConfig: The populated configuration object.

    Raises:
        FileNotFoundError: If config_path is provided but does not exist.
        ValueError: If the session credential is missing or a value is invalid.
    """
    teambition_config = {
        "session_id": os.environ.get(SESSION_ID_ENV) or None,
        "session_id_sig": os.environ.get(SESSION_ID_SIG_ENV) or None,
        "base_url": DEFAULT_BASE_URL,
        "account_url": DEFAULT_ACCOUNT_URL,
    }
    cache_config = {
        "capacity": 256,
    }
    connection_config = {
        "timeout_seconds": 30,
    }
    log_config = {
        "level": "INFO",
        "file": "panfs.log",
        "console": True,
    }

    # Parse INI file if provided
    if config_path is not None:
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        parser = configparser.ConfigParser()
        parser.read(config_file, encoding="utf-8")

        # Load [teambition] section
        if parser.has_section("teambition"):
            tb_section = parser["teambition"]
            for key in ("session_id", "session_id_sig", "base_url", "account_url"):
                if tb_section.get(key):
                    teambition_config[key] = tb_section.get(key)

        # Load [cache] section
        if parser.has_section("cache"):
            cache_section = parser["cache"]
            if cache_section.get("capacity"):
                cache_config["capacity"] = _parse_int(cache_section, "capacity")

        # Load [connection] section
        if parser.has_section("connection"):
            conn_section = parser["connection"]
            if conn_section.get("timeout_seconds"):
                connection_config["timeout_seconds"] = _parse_int(conn_section, "timeout_seconds")

        # Load [logging] section
        if parser.has_section("logging"):
            log_section = parser["logging"]
            if log_section.get("level"):
                log_config["level"] = log_section.get("level")
            if log_section.get("file") is not None:
                log_config["file"] = log_section.get("file")
            if log_section.get("console"):
                log_config["console"] = _parse_bool(log_section.get("console"))

    # Override with CLI arguments (cli_args take precedence)
    if cli_args.get("session_id") is not None:
        teambition_config["session_id"] = cli_args["session_id"] or None
    if cli_args.get("session_id_sig") is not None:
        teambition_config["session_id_sig"] = cli_args["session_id_sig"] or None
    if cli_args.get("base_url") is not None:
        teambition_config["base_url"] = cli_args["base_url"]
    if cli_args.get("cache_capacity") is not None:
        cache_config["capacity"] = int(cli_args["cache_capacity"])
    if cli_args.get("timeout") is not None:
        connection_config["timeout_seconds"] = int(cli_args["timeout"])
    if cli_args.get("debug"):
        log_config["level"] = "DEBUG"
        log_config["console"] = True

    # Validate required fields
    missing_fields = [
        key for key in ("session_id", "session_id_sig") if not teambition_config[key]
    ]
    if missing_fields:
        raise ValueError(f"Missing required configuration fields: {', '.join(missing_fields)}")

    if cache_config["capacity"] < 1:
        raise ValueError(f"Invalid cache capacity: {cache_config['capacity']}. Must be at least 1.")
    if connection_config["timeout_seconds"] < 1:
        raise ValueError(
            f"Invalid timeout_seconds: {connection_config['timeout_seconds']}. Must be at least 1."
        )

    return AppConfig(
        teambition=TeambitionConfig(
            session_id=teambition_config["session_id"],
            session_id_sig=teambition_config["session_id_sig"],
            base_url=teambition_config["base_url"].rstrip("/"),
            account_url=teambition_config["account_url"].rstrip("/"),
        ),
        cache=CacheConfig(capacity=cache_config["capacity"]),
        connection=ConnectionConfig(timeout_seconds=connection_config["timeout_seconds"]),
        logging=LogConfig(
            level=log_config["level"],
            file=log_config["file"],
            console=log_config["console"],
        ),
    )
