"""
Form state for one scale being filled in.

A ScaleInstance always holds a valid value for every parameter: it starts
from the scale's defaults and only changes through ``select``, which rejects
values outside the visible options.
"""

import logging
from collections.abc import Mapping
from typing import Dict, Iterator, List, Optional

from bedside_scales.core.errors import PreconditionViolation
from bedside_scales.core.models import OptionSpec, ScaleDefinition
from bedside_scales.core.scoring.visibility import (
    check_preconditions,
    dependents_of,
    visible_options,
)

logger = logging.getLogger(__name__)


class ScaleInstance(Mapping):
    """Current selections of a scale form, readable as a ``{key: value}`` mapping."""

    def __init__(self, definition: ScaleDefinition, values: Optional[Dict[str, int]] = None):
        self.definition = definition
        current = {p.key: p.default for p in definition.parameters}
        if values:
            current.update(values)
        check_preconditions(definition, current)
        self._values = current

    @classmethod
    def default(cls, definition: ScaleDefinition) -> "ScaleInstance":
        return cls(definition)

    def __getitem__(self, key: str) -> int:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"ScaleInstance({self.definition.id!r}, {self._values!r})"

    @property
    def selections(self) -> Dict[str, int]:
        """Copy of the current selections as a plain dict."""
        return dict(self._values)

    def visible_options(self, key: str) -> List[OptionSpec]:
        return visible_options(self.definition, key, self._values)

    def select(self, key: str, value: int) -> None:
        """Select one option for a parameter.

        Parameters whose options depend on ``key`` are re-resolved; a
        dependent value that is no longer visible falls back to its default,
        or to the first visible option.

        Raises:
            PreconditionViolation: if ``key`` is unknown or ``value`` is not visible.
        """
        allowed = [option.value for option in self.visible_options(key)]
        if value not in allowed:
            raise PreconditionViolation(
                f"Value {value!r} is not a visible option of "
                f"'{self.definition.id}.{key}' (allowed: {allowed})"
            )
        self._values[key] = value

        for dependent in dependents_of(self.definition, key):
            options = self.visible_options(dependent)
            visible = [option.value for option in options]
            if self._values[dependent] in visible:
                continue
            default = self.definition.parameter(dependent).default
            replacement = default if default in visible else visible[0]
            logger.debug(
                "Scale '%s': %s=%s hides %s=%s, resetting to %s",
                self.definition.id, key, value, dependent, self._values[dependent], replacement,
            )
            self._values[dependent] = replacement

    def reset(self) -> None:
        """Return every parameter to the scale's initial state."""
        self._values = {p.key: p.default for p in self.definition.parameters}

    def snapshot(self) -> str:
        return snapshot_parameters(self.definition, self)


def snapshot_parameters(definition: ScaleDefinition, values: Mapping) -> str:
    """Human-readable rendering of the selections, e.g. ``Eye(4), Verbal(5), Motor(6)``.

    Stored with saved results as an opaque display string.
    """
    return ", ".join(
        f"{p.snapshot_label}({values[p.key]})" for p in definition.parameters
    )
