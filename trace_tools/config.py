"""Analysis configuration: defaults, YAML config files, environment overrides.

Precedence (lowest to highest): built-in defaults, YAML file, environment
(TRACE_TOOLS_*), explicit CLI flags.

Example config.yaml:

    top_n: 5
    failure_policy: actionable_only   # or: partial
    exclude_recent_input: false
    max_enrichment_workers: 4
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from trace_tools.errors import ConfigError
from trace_tools.failure_codes import FailurePolicy
from trace_tools.layout_shift import DEFAULT_TOP_N

ENV_PREFIX = "TRACE_TOOLS_"

DEFAULT_MAX_ENRICHMENT_WORKERS = 4


def _to_bool(raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    text = str(raw).strip().lower()
    if text in {"1", "true", "yes", "on"}:
        return True
    if text in {"0", "false", "no", "off", ""}:
        return False
    raise ConfigError(f"Not a boolean: {raw!r}")


def _to_positive_int(name: str, raw: Any) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None
    if isinstance(raw, bool) or value < 1:
        raise ConfigError(f"{name} must be a positive integer, got {raw!r}")
    return value


@dataclass(frozen=True)
class AnalysisConfig:
    top_n: int = DEFAULT_TOP_N
    failure_policy: FailurePolicy = FailurePolicy.ACTIONABLE_ONLY
    exclude_recent_input: bool = False
    max_enrichment_workers: int = DEFAULT_MAX_ENRICHMENT_WORKERS

    def __post_init__(self) -> None:
        # Normalize loosely-typed values (YAML strings, env vars) on construction.
        try:
            policy = FailurePolicy(self.failure_policy)
        except ValueError:
            choices = ", ".join(p.value for p in FailurePolicy)
            raise ConfigError(
                f"Unknown failure_policy {self.failure_policy!r} (expected one of: {choices})"
            ) from None
        object.__setattr__(self, "failure_policy", policy)
        object.__setattr__(self, "top_n", _to_positive_int("top_n", self.top_n))
        object.__setattr__(
            self,
            "max_enrichment_workers",
            _to_positive_int("max_enrichment_workers", self.max_enrichment_workers),
        )
        object.__setattr__(self, "exclude_recent_input", _to_bool(self.exclude_recent_input))

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> AnalysisConfig:
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ConfigError(f"Unknown config key(s): {', '.join(unknown)}")
        return cls(**dict(values))

    @classmethod
    def from_yaml(cls, path: Path | str) -> AnalysisConfig:
        import yaml

        config_path = Path(path)
        try:
            with open(config_path, "r") as f:
                values = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigError(f"Cannot read config {config_path}: {exc}") from exc

        if values is None:
            values = {}
        if not isinstance(values, dict):
            raise ConfigError(f"{config_path}: expected a mapping at top level")
        return cls.from_mapping(values)

    def with_env(self, environ: Optional[Mapping[str, str]] = None) -> AnalysisConfig:
        """Return a copy with TRACE_TOOLS_<FIELD> environment overrides applied."""
        environ = os.environ if environ is None else environ
        overrides: Dict[str, Any] = {}
        for f in fields(self):
            raw = environ.get(ENV_PREFIX + f.name.upper())
            if raw is not None and raw.strip():
                overrides[f.name] = raw.strip()
        return replace(self, **overrides) if overrides else self

    def with_overrides(self, **overrides: Any) -> AnalysisConfig:
        """Return a copy with every non-None override applied."""
        present = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **present) if present else self

    def to_dict(self) -> Dict[str, Any]:
        return {
            "top_n": self.top_n,
            "failure_policy": self.failure_policy.value,
            "exclude_recent_input": self.exclude_recent_input,
            "max_enrichment_workers": self.max_enrichment_workers,
        }


def load_config(
    path: Path | str | None = None,
    environ: Optional[Mapping[str, str]] = None,
) -> AnalysisConfig:
    """Build the effective config from an optional YAML file plus the environment."""
    config = AnalysisConfig.from_yaml(path) if path is not None else AnalysisConfig()
    return config.with_env(environ)
