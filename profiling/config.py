"""
Configuration

Frozen configuration objects for every layer, aggregated by AppConfig.

Precedence (lowest to highest):
1. Dataclass defaults
2. JSON file passed to AppConfig.load()
3. PROFILE_INSIGHTS_* environment variables
"""

from __future__ import annotations
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple
import json
import os


ENV_PREFIX = "PROFILE_INSIGHTS_"

# Hard ceiling for concurrently pending fetches per source.
MAX_IN_FLIGHT_CAP = 2


class ConfigError(ValueError):
    """Invalid configuration value."""


# =============================================================================
# LAYER CONFIGS
# =============================================================================

@dataclass(frozen=True)
class StoreConfig:
    """Retention for each time-series store. None keeps every sample."""
    max_samples: Optional[int] = 300

    def __post_init__(self):
        if self.max_samples is not None and self.max_samples < 1:
            raise ConfigError("max_samples must be >= 1 or None")


@dataclass(frozen=True)
class HeuristicThresholds:
    """
    Empirical detector thresholds.

    Values are percentages unless suffixed otherwise. cpu_high_usage_ms
    assumes a 1 second sampling window.
    """
    heap_growth_warning_pct: float = 20.0
    heap_consumer_share_pct: float = 10.0
    cpu_consumer_share_pct: float = 5.0
    cpu_high_usage_ms: float = 20.0
    top_consumers: int = 5
    runtime_prefix: str = "runtime."
    total_series_name: str = "total"
    cpu_keep_substrings: Tuple[str, ...] = ("GC", "malloc", "memclr")


@dataclass(frozen=True)
class PromptConfig:
    top_functions: int = 10
    package_groups: int = 5
    hot_path_growth_pct: float = 20.0
    hot_path_share_pct: float = 10.0


@dataclass(frozen=True)
class AnalysisConfig:
    """External analysis endpoint (Ollama-compatible /api/generate)."""
    base_url: str = "http://localhost:11434"
    model: str = "codellama"
    temperature: float = 0.7
    num_predict: int = 2000
    timeout_seconds: float = 120.0


@dataclass(frozen=True)
class SamplingConfig:
    interval_seconds: float = 1.0
    max_in_flight: int = 1
    fetch_timeout_seconds: float = 5.0
    result_history: int = 100
    targets_path: Optional[str] = None

    def __post_init__(self):
        if self.interval_seconds <= 0:
            raise ConfigError("interval_seconds must be positive")
        if not 1 <= self.max_in_flight <= MAX_IN_FLIGHT_CAP:
            raise ConfigError(
                f"max_in_flight must be between 1 and {MAX_IN_FLIGHT_CAP}"
            )


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    json: bool = False


@dataclass(frozen=True)
class MetricsConfig:
    """Points kept per metric name. Running totals cover every point."""
    max_points: int = 1000

    def __post_init__(self):
        if self.max_points < 1:
            raise ConfigError("max_points must be >= 1")


# =============================================================================
# AGGREGATE
# =============================================================================

@dataclass(frozen=True)
class AppConfig:
    store: StoreConfig = field(default_factory=StoreConfig)
    thresholds: HeuristicThresholds = field(default_factory=HeuristicThresholds)
    prompt: PromptConfig = field(default_factory=PromptConfig)
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    sampling: SamplingConfig = field(default_factory=SamplingConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    metrics: MetricsConfig = field(default_factory=MetricsConfig)

    @classmethod
    def load(
        cls,
        path: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None
    ) -> 'AppConfig':
        """Load from an optional JSON file, then apply environment overrides."""
        config = cls()

        if path is not None:
            with open(path, 'r', encoding='utf-8') as f:
                config = cls.from_dict(json.load(f))

        return config.with_env(os.environ if environ is None else environ)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'AppConfig':
        sections = {
            "store": StoreConfig,
            "thresholds": HeuristicThresholds,
            "prompt": PromptConfig,
            "analysis": AnalysisConfig,
            "sampling": SamplingConfig,
            "logging": LoggingConfig,
            "metrics": MetricsConfig,
        }
        unknown = set(data) - set(sections)
        if unknown:
            raise ConfigError(f"Unknown config sections: {sorted(unknown)}")

        kwargs = {}
        for name, section_cls in sections.items():
            if name in data:
                kwargs[name] = _build_section(section_cls, data[name])
        return cls(**kwargs)

    def with_env(self, environ: Mapping[str, str]) -> 'AppConfig':
        """Return a copy with PROFILE_INSIGHTS_* overrides applied."""
        def get(key: str) -> Optional[str]:
            return environ.get(ENV_PREFIX + key)

        config = self

        analysis_overrides: Dict[str, Any] = {}
        if get("OLLAMA_URL"):
            analysis_overrides["base_url"] = get("OLLAMA_URL")
        if get("MODEL"):
            analysis_overrides["model"] = get("MODEL")
        if analysis_overrides:
            config = replace(config, analysis=replace(config.analysis, **analysis_overrides))

        if get("MAX_SAMPLES"):
            raw = get("MAX_SAMPLES")
            max_samples = None if raw.lower() == "none" else _to_int("MAX_SAMPLES", raw)
            config = replace(config, store=StoreConfig(max_samples=max_samples))

        sampling_overrides: Dict[str, Any] = {}
        if get("INTERVAL"):
            sampling_overrides["interval_seconds"] = _to_float("INTERVAL", get("INTERVAL"))
        if get("MAX_IN_FLIGHT"):
            sampling_overrides["max_in_flight"] = _to_int("MAX_IN_FLIGHT", get("MAX_IN_FLIGHT"))
        if get("TARGETS"):
            sampling_overrides["targets_path"] = get("TARGETS")
        if sampling_overrides:
            config = replace(config, sampling=replace(config.sampling, **sampling_overrides))

        logging_overrides: Dict[str, Any] = {}
        if get("LOG_LEVEL"):
            logging_overrides["level"] = get("LOG_LEVEL").upper()
        if get("LOG_JSON"):
            logging_overrides["json"] = get("LOG_JSON").lower() in ("1", "true", "yes")
        if logging_overrides:
            config = replace(config, logging=replace(config.logging, **logging_overrides))

        if get("METRICS_HISTORY"):
            max_points = _to_int("METRICS_HISTORY", get("METRICS_HISTORY"))
            config = replace(config, metrics=MetricsConfig(max_points=max_points))

        return config


def _build_section(section_cls, values: Mapping[str, Any]):
    allowed = {f.name for f in fields(section_cls)}
    unknown = set(values) - allowed
    if unknown:
        raise ConfigError(f"Unknown keys for {section_cls.__name__}: {sorted(unknown)}")
    kwargs = dict(values)
    # JSON has no tuples
    if section_cls is HeuristicThresholds and "cpu_keep_substrings" in kwargs:
        kwargs["cpu_keep_substrings"] = tuple(kwargs["cpu_keep_substrings"])
    return section_cls(**kwargs)


def _to_int(key: str, raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{ENV_PREFIX}{key} must be an integer, got '{raw}'")


def _to_float(key: str, raw: str) -> float:
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{ENV_PREFIX}{key} must be a number, got '{raw}'")
