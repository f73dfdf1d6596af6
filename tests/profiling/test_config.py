"""
Configuration Tests

Defaults, JSON loading and PROFILE_INSIGHTS_* overrides.
"""

import json

import pytest

from profiling.config import (
    AppConfig,
    ConfigError,
    HeuristicThresholds,
    MetricsConfig,
    SamplingConfig,
    StoreConfig,
)


class TestDefaults:

    def test_named_thresholds(self):
        thresholds = HeuristicThresholds()

        assert thresholds.heap_growth_warning_pct == 20.0
        assert thresholds.heap_consumer_share_pct == 10.0
        assert thresholds.cpu_consumer_share_pct == 5.0
        assert thresholds.cpu_high_usage_ms == 20.0
        assert thresholds.top_consumers == 5
        assert thresholds.cpu_keep_substrings == ("GC", "malloc", "memclr")

    def test_analysis_defaults(self):
        config = AppConfig()

        assert config.analysis.base_url == "http://localhost:11434"
        assert config.analysis.model == "codellama"
        assert config.analysis.temperature == 0.7
        assert config.analysis.num_predict == 2000
        assert config.sampling.max_in_flight == 1

    def test_invalid_values_rejected(self):
        with pytest.raises(ConfigError):
            StoreConfig(max_samples=0)
        with pytest.raises(ConfigError):
            SamplingConfig(max_in_flight=3)
        with pytest.raises(ConfigError):
            SamplingConfig(interval_seconds=0)
        with pytest.raises(ConfigError):
            MetricsConfig(max_points=0)


class TestLoad:

    def test_json_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({
            "store": {"max_samples": 50},
            "thresholds": {"cpu_keep_substrings": ["GC"]},
            "analysis": {"model": "llama3"},
        }))

        config = AppConfig.load(path, environ={})

        assert config.store.max_samples == 50
        assert config.thresholds.cpu_keep_substrings == ("GC",)
        assert config.analysis.model == "llama3"
        assert config.analysis.base_url == "http://localhost:11434"

    def test_unknown_section_rejected(self):
        with pytest.raises(ConfigError):
            AppConfig.from_dict({"storage": {}})

    def test_unknown_key_rejected(self):
        with pytest.raises(ConfigError):
            AppConfig.from_dict({"store": {"max": 1}})

    def test_environment_overrides_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"analysis": {"model": "llama3"}}))

        config = AppConfig.load(path, environ={
            "PROFILE_INSIGHTS_MODEL": "mistral",
            "PROFILE_INSIGHTS_OLLAMA_URL": "http://ollama:11434",
            "PROFILE_INSIGHTS_MAX_SAMPLES": "none",
            "PROFILE_INSIGHTS_INTERVAL": "0.5",
            "PROFILE_INSIGHTS_MAX_IN_FLIGHT": "2",
            "PROFILE_INSIGHTS_LOG_LEVEL": "debug",
            "PROFILE_INSIGHTS_LOG_JSON": "true",
        })

        assert config.analysis.model == "mistral"
        assert config.analysis.base_url == "http://ollama:11434"
        assert config.store.max_samples is None
        assert config.sampling.interval_seconds == 0.5
        assert config.sampling.max_in_flight == 2
        assert config.logging.level == "DEBUG"
        assert config.logging.json is True

    def test_bad_environment_value(self):
        with pytest.raises(ConfigError):
            AppConfig.load(environ={"PROFILE_INSIGHTS_MAX_SAMPLES": "lots"})

    def test_metrics_history(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"metrics": {"max_points": 200}}))

        assert AppConfig.load(path, environ={}).metrics.max_points == 200
        assert AppConfig.load(environ={"PROFILE_INSIGHTS_METRICS_HISTORY": "25"}).metrics.max_points == 25
        assert AppConfig().metrics == MetricsConfig(max_points=1000)
