"""
Target Registry Tests
"""

import json

import pytest

from profiling.contracts.base import ProfileType
from sampling.registry import DEFAULT_TARGETS_PATH, TargetRegistry


class TestTargetRegistry:

    def test_default_file_loads(self):
        registry = TargetRegistry.load()

        assert DEFAULT_TARGETS_PATH.exists()
        assert registry.total_count >= 2
        assert registry.get("local-heap").profile_type == ProfileType.HEAP

    def test_enabled_and_by_type(self, tmp_path):
        path = tmp_path / "targets.json"
        path.write_text(json.dumps({"targets": [
            {"id": "a", "profile_type": "heap", "url": "http://a/heap"},
            {"id": "b", "profile_type": "CPU", "url": "http://b/cpu", "enabled": False},
            {"id": "c", "profile_type": "cpu", "url": "http://c/cpu"},
        ]}))

        registry = TargetRegistry.load(path)

        assert [t.target_id for t in registry.all_targets()] == ["a", "b", "c"]
        assert [t.target_id for t in registry.enabled_targets()] == ["a", "c"]
        assert [t.target_id for t in registry.by_profile_type(ProfileType.CPU)] == ["b", "c"]
        assert registry.by_profile_type(ProfileType.GOROUTINE) == []
        assert registry.enabled_count == 2
        assert registry.get("missing") is None

    def test_unknown_profile_type(self):
        with pytest.raises(ValueError):
            TargetRegistry.from_dict({"targets": [{"id": "x", "profile_type": "block", "url": "u"}]})
