"""
Target Registry

Loads and manages profiling targets from targets.json.
"""

from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Optional
import json

from profiling.contracts.base import ProfileType

from .contracts import ProfileTarget


DEFAULT_TARGETS_PATH = Path(__file__).parent.parent / 'config' / 'targets.json'


@dataclass
class TargetRegistry:
    """
    Registry of configured profiling endpoints.

    JSON shape: {"targets": [{"id", "profile_type", "url", "enabled"}]}
    """

    _targets: Dict[str, ProfileTarget]
    _by_profile_type: Dict[ProfileType, List[ProfileTarget]]

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> 'TargetRegistry':
        """Load registry from targets.json."""
        if config_path is None:
            config_path = DEFAULT_TARGETS_PATH

        with open(config_path, 'r', encoding='utf-8') as f:
            config = json.load(f)

        return cls.from_dict(config)

    @classmethod
    def from_dict(cls, config: dict) -> 'TargetRegistry':
        targets = {}
        by_profile_type = {pt: [] for pt in ProfileType}

        for target_data in config.get('targets', []):
            target = ProfileTarget(
                target_id=target_data['id'],
                profile_type=ProfileType.parse(target_data['profile_type']),
                url=target_data['url'],
                enabled=target_data.get('enabled', True)
            )
            targets[target.target_id] = target
            by_profile_type[target.profile_type].append(target)

        return cls(_targets=targets, _by_profile_type=by_profile_type)

    def get(self, target_id: str) -> Optional[ProfileTarget]:
        return self._targets.get(target_id)

    def all_targets(self) -> Iterator[ProfileTarget]:
        yield from self._targets.values()

    def enabled_targets(self) -> Iterator[ProfileTarget]:
        for target in self._targets.values():
            if target.enabled:
                yield target

    def by_profile_type(self, profile_type: ProfileType) -> List[ProfileTarget]:
        return self._by_profile_type.get(profile_type, [])

    @property
    def total_count(self) -> int:
        return len(self._targets)

    @property
    def enabled_count(self) -> int:
        return sum(1 for t in self._targets.values() if t.enabled)
