"""Labeller protocol and label merging."""

from typing import Dict, Iterable, Mapping, Protocol

from kudeploy.core.errors import ConfigError


class Labeller(Protocol):
    """Anything that contributes labels to deployed manifests.

    Example:
        class TeamLabeller:
            def labels(self) -> Dict[str, str]:
                return {"team": "payments"}
    """

    def labels(self) -> Dict[str, str]:
        """Return the labels this contributor wants on every manifest."""
        ...


class StaticLabeller:
    """Labeller returning a fixed mapping."""

    def __init__(self, labels: Mapping[str, str]):
        self._labels = dict(labels)

    def labels(self) -> Dict[str, str]:
        return dict(self._labels)

    @classmethod
    def parse(cls, values: Iterable[str]) -> "StaticLabeller":
        """Build a labeller from ``KEY=VALUE`` strings."""
        labels = {}
        for value in values:
            key, sep, label = value.partition("=")
            if not sep or not key:
                raise ConfigError(f"label must be KEY=VALUE, got {value!r}")
            labels[key] = label
        return cls(labels)


def merge_labels(labellers: Iterable[Labeller]) -> Dict[str, str]:
    """Fold the labels of several labellers into one mapping.

    Labellers are applied in order, so a later labeller's value wins when
    two of them contribute the same key.

    Args:
        labellers: Ordered labellers

    Returns:
        Merged label mapping (empty if there are no labellers)
    """
    merged: Dict[str, str] = {}
    for labeller in labellers:
        merged.update(labeller.labels())
    return merged
