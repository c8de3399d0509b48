"""Process-wide logging configuration.

The configuration is built once at start-up (in code, or from the
environment through ``LoggingConfig.from_env``) and published with
``configure()``. Loggers read it on every call; it is never mutated after
publication.
"""

import os
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from scopedlog.core.levels import Severity
from scopedlog.core.ports import LogSinkPort

ENV_LEVEL = "SCOPEDLOG_LEVEL"


@dataclass(frozen=True)
class LoggingConfig:
    """Minimum level and sinks.

    Attributes:
        minimum_level: Records below this level are dropped.
        sinks: Sinks that receive every record passing the gate, in order.
        category_levels: Per-category minimum overrides keyed by dotted
            logger-name prefix, e.g. {"app.db": Severity.WARNING}.
    """

    minimum_level: Severity = Severity.INFORMATION
    sinks: tuple[LogSinkPort, ...] = ()
    category_levels: Mapping[str, Severity] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def __post_init__(self) -> None:
        object.__setattr__(self, "minimum_level", Severity.parse(self.minimum_level))
        object.__setattr__(self, "sinks", tuple(self.sinks))
        levels = {k: Severity.parse(v) for k, v in self.category_levels.items()}
        object.__setattr__(self, "category_levels", MappingProxyType(levels))

    def minimum_for(self, category: str) -> Severity:
        """Minimum level for a category, using the longest matching prefix."""
        best: str | None = None
        for prefix in self.category_levels:
            if category == prefix or category.startswith(prefix + "."):
                if best is None or len(prefix) > len(best):
                    best = prefix
        if best is None:
            return self.minimum_level
        return self.category_levels[best]

    @classmethod
    def from_env(
        cls,
        sinks: Iterable[LogSinkPort] = (),
        environ: Mapping[str, str] | None = None,
        **overrides: object,
    ) -> "LoggingConfig":
        """Build a config whose minimum level comes from SCOPEDLOG_LEVEL.

        Args:
            sinks: Sinks to register.
            environ: Environment mapping (default: ``os.environ``).
            **overrides: Other LoggingConfig fields.

        Raises:
            ValueError: If SCOPEDLOG_LEVEL does not name a level.
        """
        env = os.environ if environ is None else environ
        level = env.get(ENV_LEVEL, Severity.INFORMATION.label)
        return cls(minimum_level=Severity.parse(level), sinks=tuple(sinks), **overrides)


_config = LoggingConfig()


def configure(config: LoggingConfig) -> LoggingConfig:
    """Publish ``config`` as the process-wide configuration."""
    global _config
    _config = config
    return config


def get_config() -> LoggingConfig:
    return _config
