"""
Configuration loading from config.yaml.

Uses typed dataclasses throughout so the rest of the app gets IDE
completion and type-checker support without touching raw dicts.
"""

from __future__ import annotations

import logging
import logging.handlers
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class EngineConfig:
    path: str = "stockfish"
    args: list[str] = field(default_factory=list)
    handshake_timeout: float = 10.0   # per handshake step
    search_timeout: float = 15.0      # live-play bestmove deadline
    stop_grace: float = 0.5           # wait after "stop" for a late bestmove
    analysis_depth: int = 20
    analysis_timeout: float = 30.0

    @property
    def command(self) -> list[str]:
        return [self.path, *self.args]


@dataclass
class StorageConfig:
    games_file: str = "./data/games.json"

    @property
    def games_path(self) -> Path:
        return Path(self.games_file)


@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 8000


@dataclass
class LoggingConfig:
    level: str = "INFO"
    file: str = "./logs/chessreview.log"


@dataclass
class Config:
    engine: EngineConfig = field(default_factory=EngineConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_config(path: str | Path = "config.yaml") -> Config:
    """
    Load and validate config.yaml.

    The STOCKFISH_PATH environment variable, when set, overrides engine.path.

    Raises:
        FileNotFoundError: config.yaml is missing.
        ValueError: required fields are absent or invalid.
    """
    cfg_path = Path(path)
    if not cfg_path.exists():
        raise FileNotFoundError(
            f"Config file not found: {cfg_path.resolve()}\n"
            "Copy config.example.yaml to config.yaml and set engine.path."
        )

    with cfg_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    try:
        engine_raw = raw.get("engine") or {}
        engine_cfg = EngineConfig(
            path=str(engine_raw.get("path", "stockfish")),
            args=[str(a) for a in engine_raw.get("args") or []],
            handshake_timeout=float(engine_raw.get("handshake_timeout", 10.0)),
            search_timeout=float(engine_raw.get("search_timeout", 15.0)),
            stop_grace=float(engine_raw.get("stop_grace", 0.5)),
            analysis_depth=int(engine_raw.get("analysis_depth", 20)),
            analysis_timeout=float(engine_raw.get("analysis_timeout", 30.0)),
        )
        env_path = os.environ.get("STOCKFISH_PATH")
        if env_path:
            engine_cfg.path = env_path

        storage_raw = raw.get("storage") or {}
        server_raw = raw.get("server") or {}
        logging_raw = raw.get("logging") or {}

        config = Config(
            engine=engine_cfg,
            storage=StorageConfig(
                games_file=str(storage_raw.get("games_file", "./data/games.json")),
            ),
            server=ServerConfig(
                host=str(server_raw.get("host", "0.0.0.0")),
                port=int(server_raw.get("port", 8000)),
            ),
            logging=LoggingConfig(
                level=str(logging_raw.get("level", "INFO")).upper(),
                file=str(logging_raw.get("file", "./logs/chessreview.log")),
            ),
        )
        _validate(config)
        return config

    except (AttributeError, KeyError, TypeError) as exc:
        raise ValueError(f"Invalid config.yaml structure: {exc}") from exc


def _validate(config: Config) -> None:
    eng = config.engine
    if not eng.path:
        raise ValueError("engine.path must not be empty")
    for name in ("handshake_timeout", "search_timeout", "analysis_timeout"):
        if getattr(eng, name) <= 0:
            raise ValueError(f"engine.{name} must be > 0")
    if eng.stop_grace < 0:
        raise ValueError("engine.stop_grace must be >= 0")
    if eng.analysis_depth < 1:
        raise ValueError("engine.analysis_depth must be >= 1")
    if config.logging.level not in _LOG_LEVELS:
        raise ValueError(
            f"logging.level must be one of {_LOG_LEVELS}, got '{config.logging.level}'"
        )


def setup_logging(cfg: LoggingConfig, *, console: bool = True) -> logging.Logger:
    """Configure the root logger once: a rotating file, plus the console unless disabled."""
    log_file = Path(cfg.file)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    handlers: list[logging.Handler] = [
        logging.handlers.RotatingFileHandler(
            log_file, maxBytes=2 * 1024 * 1024, backupCount=3,  # 2 MB × 3 files
            encoding="utf-8",
        ),
    ]
    if console:
        handlers.append(logging.StreamHandler())

    logging.basicConfig(
        level=getattr(logging, cfg.level),
        format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
        handlers=handlers,
    )
    return logging.getLogger("chessreview")
