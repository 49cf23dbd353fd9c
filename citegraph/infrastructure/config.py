"""
CITEGRAPH CONFIG - Graph Configuration

Configuration is read once from a TOML file (the `[graph]` section) and
turned into a GraphConfig. Keyword overrides win over the file.

Usage:
    from citegraph.infrastructure.config import load_config

    config = load_config(Path("citegraph.toml"), publish_events=False)
    graph = CitationGraph("root", config=config)

Example citegraph.toml:
    [graph]
    publish_events = true
    event_source = "library"
    log_level = "DEBUG"
    mutation_log_size = 500
    mutation_log_path = "./logs"
"""
import logging
import tomllib
import warnings
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

DEFAULT_CONFIG_PATH = Path("citegraph.toml")


@dataclass
class GraphConfig:
    """Configuration for a CitationGraph and its observers."""
    publish_events: bool = True             # Publish GraphEvents after each mutation
    event_source: str = "citation_graph"    # `source` field of published events
    log_level: Optional[str] = None         # Level for the `citegraph` logger. None = leave as is.
    mutation_log_size: int = 10000          # In-memory mutation buffer size
    mutation_log_path: Optional[Path] = None  # Directory for JSONL logs. None = no file log.

    def __post_init__(self):
        if isinstance(self.mutation_log_path, str):
            self.mutation_log_path = Path(self.mutation_log_path)
        if self.mutation_log_size <= 0:
            raise ValueError(f"mutation_log_size must be positive, got {self.mutation_log_size}")
        if self.log_level is not None and not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ValueError(f"Unknown log level: {self.log_level}")


def load_toml_config(path: Union[str, Path] = DEFAULT_CONFIG_PATH) -> Dict[str, Any]:
    """
    Load the `[graph]` section of a TOML file.

    Returns:
        Dict with the section's keys, or {} if the file is missing or invalid
    """
    try:
        with open(path, "rb") as f:
            return tomllib.load(f).get("graph", {})
    except (OSError, tomllib.TOMLDecodeError) as e:
        warnings.warn(f"Failed to load config from TOML: {e}")
        return {}


def load_config(path: Optional[Union[str, Path]] = None, **overrides: Any) -> GraphConfig:
    """
    Build a GraphConfig from a TOML file plus keyword overrides.

    Args:
        path: TOML file to read. None skips the file entirely.
        **overrides: Field values that take precedence over the file

    Raises:
        ValueError: On unknown keys or invalid values
    """
    values: Dict[str, Any] = {}
    if path is not None:
        values.update(load_toml_config(path))
    values.update(overrides)

    known = {f.name for f in fields(GraphConfig)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ValueError(f"Unknown config keys: {', '.join(unknown)}")

    return GraphConfig(**values)


def apply_logging(config: GraphConfig) -> None:
    """Set the package logger level from the config, if it names one."""
    if config.log_level is None:
        return
    logging.getLogger("citegraph").setLevel(config.log_level.upper())
