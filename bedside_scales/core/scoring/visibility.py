"""
Option-set resolution for context-dependent parameters.

Some scales change the options of one parameter depending on another
selection (NEWS2 switches the SpO2 thresholds with the oxygenation scale).
Resolution is a pure function of the current values.
"""

from typing import List, Mapping

from bedside_scales.core.errors import PreconditionViolation
from bedside_scales.core.models import OptionSpec, ScaleDefinition


def visible_options(
    definition: ScaleDefinition, parameter_key: str, values: Mapping[str, int]
) -> List[OptionSpec]:
    """Return the options currently selectable for ``parameter_key``.

    Args:
        definition: The scale the parameter belongs to
        parameter_key: Key of the parameter to resolve
        values: Current selections, used to resolve the controlling parameter

    Returns:
        The option set in display order.
    """
    parameter = definition.parameter(parameter_key)
    if parameter is None:
        raise PreconditionViolation(
            f"Scale '{definition.id}' has no parameter '{parameter_key}'"
        )

    rule = parameter.visibility_rule
    if rule is None:
        return list(parameter.options)

    if rule.depends_on not in values:
        raise PreconditionViolation(
            f"Cannot resolve options of '{parameter_key}': "
            f"no value for '{rule.depends_on}'"
        )
    return list(rule.option_sets.get(values[rule.depends_on], parameter.options))


def dependents_of(definition: ScaleDefinition, parameter_key: str) -> List[str]:
    """Keys of the parameters whose options depend on ``parameter_key``."""
    return [
        p.key
        for p in definition.parameters
        if p.visibility_rule is not None and p.visibility_rule.depends_on == parameter_key
    ]


def check_preconditions(definition: ScaleDefinition, values: Mapping[str, int]) -> None:
    """Fail fast unless ``values`` holds exactly one visible value per parameter.

    Raises:
        PreconditionViolation: on a missing or unknown key, or a value outside
            the parameter's visible options.
    """
    expected = set(definition.parameter_keys)
    missing = [key for key in definition.parameter_keys if key not in values]
    if missing:
        raise PreconditionViolation(
            f"Scale '{definition.id}' is missing values for {missing}"
        )
    unknown = sorted(key for key in values if key not in expected)
    if unknown:
        raise PreconditionViolation(
            f"Scale '{definition.id}' has no parameters {unknown}"
        )

    for key in definition.parameter_keys:
        value = values[key]
        allowed = [option.value for option in visible_options(definition, key, values)]
        if value not in allowed:
            raise PreconditionViolation(
                f"Value {value!r} is not a visible option of '{definition.id}.{key}' "
                f"(allowed: {allowed})"
            )
