"""Feature gates that switch optional behaviour on or off."""

from __future__ import annotations

import logging
from collections.abc import Mapping

log = logging.getLogger(__name__)

GPT_BASED_UUID = "GPTBasedUUID"

SUPPORTED_FEATURES = (GPT_BASED_UUID,)

DEFAULT_FEATURE_GATES = {GPT_BASED_UUID: False}

_TRUE_VALUES = frozenset({"1", "t", "T", "TRUE", "true", "True"})


class FeatureError(ValueError):
    """Raised for an unknown or malformed feature flag."""


class FeatureGate(Mapping):
    """Mapping of feature name to its enabled state."""

    def __init__(self, defaults=None, supported=SUPPORTED_FEATURES):
        self._flags: dict[str, bool] = dict(defaults or {})
        self._supported = frozenset(supported)

    def __getitem__(self, feature):
        return self._flags[feature]

    def __iter__(self):
        return iter(self._flags)

    def __len__(self):
        return len(self._flags)

    def __repr__(self):
        return f"FeatureGate({self._flags!r})"

    def is_enabled(self, feature):
        """True only if the feature is known to the gate and enabled."""
        return self._flags.get(feature, False)

    def set_feature_flags(self, features):
        """Apply flags given as ``Name`` or ``Name=bool``.

        Flags are applied in order; the first bad one raises
        :class:`FeatureError` and leaves earlier ones applied.
        """
        if not features:
            log.debug("No feature gates are set")
            return
        for feature in features:
            parts = feature.split("=")
            if len(parts) > 2:
                raise FeatureError(f"incorrect format. cannot parse feature {feature}")
            name = parts[0]
            enabled = parts[1] in _TRUE_VALUES if len(parts) == 2 else True
            if name not in self._supported:
                raise FeatureError(f"unknown feature flag {name}")
            self._flags[name] = enabled
            log.info("Feature gate: %s, state: %s", name, "enabled" if enabled else "disabled")


def new_feature_gate():
    """A gate holding the application's default feature states."""
    return FeatureGate(DEFAULT_FEATURE_GATES, SUPPORTED_FEATURES)


feature_gates = new_feature_gate()