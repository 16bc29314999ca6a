"""
Morphing configuration.

Mirrors the per-location settings a web server passes to the morpher:
which strategy to run and its parameters, plus where the site's files
live. Configurations can be built in code or loaded from JSON:

    {
        "probabilistic": true,
        "root": "/var/www/$http_host",
        "alias": 0,
        "dist_html_size": "Normal/20000,5000",
        "dist_obj_number": "dists/obj_num.dist",
        "dist_obj_size": "LogNormal/8,1.5"
    }
"""

import json
from dataclasses import dataclass, field, fields
from pathlib import Path

from alpaca.distribution import Distributions
from alpaca.errors import ConfigError
from alpaca.strategies import DeterministicStrategy, MorphStrategy, ProbabilisticStrategy


@dataclass
class DeterministicConfig:
    """Parameters for DeterministicStrategy."""
    obj_num: int = 5
    obj_size: int = 5000
    max_obj_size: int = 50000


@dataclass
class ProbabilisticConfig:
    """Distribution specs for ProbabilisticStrategy ("Name/params" or a .dist path)."""
    dist_html_size: str = ""
    dist_obj_number: str = ""
    dist_obj_size: str = ""


@dataclass
class MorphConfig:
    """Complete configuration for morphing pages of one site location."""
    probabilistic: bool = False
    deterministic: DeterministicConfig = field(default_factory=DeterministicConfig)
    distributions: ProbabilisticConfig = field(default_factory=ProbabilisticConfig)
    root: str = ""       # may contain $http_host
    alias: int = 0

    @classmethod
    def from_dict(cls, data: dict) -> "MorphConfig":
        """
        Build a config from a flat mapping of setting names to values.

        Raises:
            ConfigError: On unknown keys or values of the wrong type.
        """
        det_keys = {f.name for f in fields(DeterministicConfig)}
        dist_keys = {f.name for f in fields(ProbabilisticConfig)}
        top_keys = {"probabilistic", "root", "alias"}

        unknown = set(data) - det_keys - dist_keys - top_keys
        if unknown:
            raise ConfigError(f"unknown configuration keys: {sorted(unknown)}")

        try:
            det = DeterministicConfig(**{k: int(v) for k, v in data.items() if k in det_keys})
            alias = int(data.get("alias", 0))
        except (TypeError, ValueError) as e:
            raise ConfigError(f"invalid numeric setting: {e}") from e

        if alias < 0:
            raise ConfigError(f"alias must be >= 0, got {alias}")

        probabilistic = data.get("probabilistic", False)
        if not isinstance(probabilistic, bool):
            raise ConfigError(f"probabilistic must be true or false, got {probabilistic!r}")

        for key in sorted(dist_keys | {"root"}):
            if key in data and not isinstance(data[key], str):
                raise ConfigError(f"{key} must be a string, got {data[key]!r}")
        dists = ProbabilisticConfig(**{k: v for k, v in data.items() if k in dist_keys})

        return cls(
            probabilistic=probabilistic,
            deterministic=det,
            distributions=dists,
            root=data.get("root", ""),
            alias=alias,
        )

    @classmethod
    def from_file(cls, path: str | Path) -> "MorphConfig":
        """Load a config from a JSON file."""
        try:
            data = json.loads(Path(path).read_text())
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"cannot load config {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"config {path} must hold a JSON object")
        return cls.from_dict(data)

    def build_strategy(self) -> MorphStrategy:
        """
        Construct the configured strategy.

        Raises:
            AlpacaError: If the parameters or distributions are invalid.
        """
        if self.probabilistic:
            d = self.distributions
            if not (d.dist_html_size and d.dist_obj_number and d.dist_obj_size):
                raise ConfigError("probabilistic morphing needs all three distributions")
            return ProbabilisticStrategy(
                Distributions.from_specs(d.dist_html_size, d.dist_obj_number, d.dist_obj_size)
            )

        d = self.deterministic
        return DeterministicStrategy(d.obj_num, d.obj_size, d.max_obj_size)


def resolve_strategy(strategy_config) -> MorphStrategy:
    """Accept a MorphConfig, a ready MorphStrategy, or a plain dict."""
    if isinstance(strategy_config, MorphStrategy):
        return strategy_config
    if isinstance(strategy_config, dict):
        strategy_config = MorphConfig.from_dict(strategy_config)
    if isinstance(strategy_config, MorphConfig):
        return strategy_config.build_strategy()
    raise ConfigError(f"unsupported strategy config {type(strategy_config).__name__}")
