"""
Errors raised while morphing a page.

Everything the library raises on purpose derives from AlpacaError, so
callers embedding the morpher in a server can catch one type and fall
back to serving the unmorphed response.
"""


class AlpacaError(Exception):
    """Base class for all morphing errors."""


class ParseError(AlpacaError):
    """A distribution spec, distribution file, or token could not be parsed."""


class ConfigError(AlpacaError):
    """Morphing configuration is missing or inconsistent."""


class InvalidRange(AlpacaError):
    """Deterministic size bounds are inconsistent."""


class PathEscape(AlpacaError):
    """A resolved resource path left the virtual host's alias prefix."""

    def __init__(self, path: str, own_path: str, alias: int):
        self.path = path
        self.own_path = own_path
        self.alias = alias
        super().__init__(
            f"{path} escapes the first {alias} characters of {own_path}"
        )


class SamplingError(AlpacaError):
    """A distribution could not produce a value."""


class SamplingExhausted(SamplingError):
    """Rejection sampling used up its retry budget."""

    def __init__(self, dist_name: str, floor: int, attempts: int):
        self.dist_name = dist_name
        self.floor = floor
        self.attempts = attempts
        super().__init__(
            f"SAMPLE_LIMIT={attempts} reached for distribution {dist_name} "
            f"(needed a value >= {floor})"
        )
