"""Configuration management — load/save TOML config files."""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path

from ..protocol.framing import FramingConfig
from ..protocol.lossy import LossConfig

DEFAULT_CONFIG_PATH = Path("~/.config/fountaincast/config.toml").expanduser()


@dataclass
class AppConfig:
    """Top-level application configuration."""

    # Fragmenting
    max_fragment_len: int = 200
    min_fragment_len: int = 10

    # Part stream
    first_seq_num: int = 0
    redundancy: float = 0.5

    # Loss simulation
    loss_rate: float = 0.2
    burst_len: int = 3
    duplicate_rate: float = 0.0
    shuffle: bool = True
    seed: int = 42

    # Logging
    log_level: str = "INFO"

    def to_framing_config(self) -> FramingConfig:
        return FramingConfig(
            max_fragment_len=self.max_fragment_len,
            min_fragment_len=self.min_fragment_len,
            first_seq_num=self.first_seq_num,
            redundancy=self.redundancy,
        )

    def to_loss_config(self) -> LossConfig:
        return LossConfig(
            loss_rate=self.loss_rate,
            burst_len=self.burst_len,
            duplicate_rate=self.duplicate_rate,
            shuffle=self.shuffle,
            seed=self.seed,
        )


def load_config(path: Path | str | None = None) -> AppConfig:
    """Load configuration from a TOML file.

    Falls back to defaults if the file doesn't exist. Section names are
    only for grouping: keys are matched by name across all sections.
    """
    if path is None:
        path = DEFAULT_CONFIG_PATH
    path = Path(path)

    config = AppConfig()

    if not path.exists():
        return config

    try:
        import tomllib
    except ImportError:
        import tomli as tomllib  # type: ignore[no-redef]

    with open(path, "rb") as f:
        data = tomllib.load(f)

    flat = _flatten_toml(data)

    for fld in fields(AppConfig):
        if fld.name in flat:
            default = getattr(config, fld.name)
            setattr(config, fld.name, _coerce(fld.name, default, flat[fld.name]))

    return config


def save_config(config: AppConfig, path: Path | str | None = None) -> None:
    """Save configuration to a TOML file."""
    if path is None:
        path = DEFAULT_CONFIG_PATH
    path = Path(path)

    path.parent.mkdir(parents=True, exist_ok=True)

    lines = [
        "# fountaincast configuration",
        "",
        "[fragments]",
        f"max_fragment_len = {config.max_fragment_len}",
        f"min_fragment_len = {config.min_fragment_len}",
        "",
        "[stream]",
        f"first_seq_num = {config.first_seq_num}",
        f"redundancy = {float(config.redundancy)}",
        "",
        "[simulation]",
        f"loss_rate = {float(config.loss_rate)}",
        f"burst_len = {config.burst_len}",
        f"duplicate_rate = {float(config.duplicate_rate)}",
        f"shuffle = {'true' if config.shuffle else 'false'}",
        f"seed = {config.seed}",
        "",
        "[logging]",
        f'log_level = "{config.log_level}"',
        "",
    ]

    with open(path, "w") as f:
        f.write("\n".join(lines))


def _coerce(name: str, default: object, value: object) -> object:
    """Convert a TOML value to the type of the field's default.

    Integers are accepted for float fields; any other mismatch raises
    ValueError rather than being cast.
    """
    if isinstance(default, bool):
        ok = isinstance(value, bool)
    elif isinstance(default, int):
        ok = isinstance(value, int) and not isinstance(value, bool)
    elif isinstance(default, float):
        ok = isinstance(value, (int, float)) and not isinstance(value, bool)
    else:
        ok = isinstance(value, type(default))
    if not ok:
        raise ValueError(
            f"config key {name!r} expects {type(default).__name__}, "
            f"got {type(value).__name__}")
    return type(default)(value)


def _flatten_toml(data: dict) -> dict:
    """Merge nested TOML tables into one flat dict of leaf keys."""
    result = {}
    for key, value in data.items():
        if isinstance(value, dict):
            result.update(_flatten_toml(value))
        else:
            result[key] = value
    return result
