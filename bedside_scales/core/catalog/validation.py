"""
Definition checks run when the catalog is loaded.

A scale that passes these checks can always be scored: every parameter has a
non-empty option set, every default is selectable, and the interpretation
bands resolve exactly one band for every score the scale can produce.
"""

import logging
from typing import Dict, Sequence, Tuple

from bedside_scales.core.errors import DefinitionError
from bedside_scales.core.models import (
    CovariateAdjustedCutoffRule,
    InterpretationBand,
    OptionSpec,
    ScaleDefinition,
    SumWithOverrideRule,
)

logger = logging.getLogger(__name__)


def attainable_range(definition: ScaleDefinition) -> Tuple[int, int]:
    """Lowest and highest total the scored parameters can add up to."""
    low = 0
    high = 0
    for parameter in definition.scored_parameters:
        values = parameter.all_option_values()
        low += values[0]
        high += values[-1]
    return low, high


def _check_option_set(scale_id: str, parameter_key: str, options: Sequence[OptionSpec]) -> None:
    if not options:
        raise DefinitionError(f"parameter '{parameter_key}' has no options", scale_id)
    values = [option.value for option in options]
    if len(values) != len(set(values)):
        raise DefinitionError(
            f"parameter '{parameter_key}' has duplicate option values {values}",
            scale_id,
        )


def _check_parameters(definition: ScaleDefinition) -> None:
    scale_id = definition.id
    if not definition.parameters:
        raise DefinitionError("at least one parameter is required", scale_id)

    keys = definition.parameter_keys
    duplicates = sorted({key for key in keys if keys.count(key) > 1})
    if duplicates:
        raise DefinitionError(f"duplicate parameter keys {duplicates}", scale_id)

    if not definition.scored_parameters:
        raise DefinitionError("no parameter contributes to the total", scale_id)

    defaults: Dict[str, int] = {p.key: p.default for p in definition.parameters}
    for parameter in definition.parameters:
        _check_option_set(scale_id, parameter.key, parameter.options)
        rule = parameter.visibility_rule
        if rule is None:
            visible = parameter.options
        else:
            controller = definition.parameter(rule.depends_on)
            if controller is None or controller.key == parameter.key:
                raise DefinitionError(
                    f"parameter '{parameter.key}' depends on unknown parameter '{rule.depends_on}'",
                    scale_id,
                )
            if controller.visibility_rule is not None:
                raise DefinitionError(
                    f"parameter '{parameter.key}' depends on '{controller.key}', "
                    "which is itself context-dependent",
                    scale_id,
                )
            for option_set in rule.option_sets.values():
                _check_option_set(scale_id, parameter.key, option_set)
            visible = rule.option_sets.get(defaults[controller.key], parameter.options)

        if parameter.default not in {option.value for option in visible}:
            raise DefinitionError(
                f"default {parameter.default} of parameter '{parameter.key}' "
                "is not one of its options",
                scale_id,
            )


def _check_scoring_rule(definition: ScaleDefinition) -> None:
    scale_id = definition.id
    rule = definition.scoring_rule

    if isinstance(rule, SumWithOverrideRule):
        for key in rule.override_parameters:
            parameter = definition.parameter(key)
            if parameter is None:
                raise DefinitionError(f"override watches unknown parameter '{key}'", scale_id)
            if not parameter.contributes_to_total:
                raise DefinitionError(
                    f"override watches parameter '{key}', which is not scored", scale_id
                )

    elif isinstance(rule, CovariateAdjustedCutoffRule):
        covariate = definition.parameter(rule.covariate)
        if covariate is None:
            raise DefinitionError(f"unknown covariate parameter '{rule.covariate}'", scale_id)
        if covariate.contributes_to_total:
            raise DefinitionError(
                f"covariate '{rule.covariate}' must not contribute to the total", scale_id
            )
        missing = [v for v in covariate.all_option_values() if v not in rule.offsets]
        if missing:
            raise DefinitionError(
                f"no cutoff offset for covariate values {missing}", scale_id
            )


def _check_partition(
    scale_id: str,
    bands: Sequence[InterpretationBand],
    low: int,
    high: int,
    shift: int = 0,
    context: str = "",
) -> None:
    for score in range(low, high + 1):
        matching = [band.label for band in bands if band.matches(score, shift)]
        if not matching:
            raise DefinitionError(
                f"no interpretation band matches score {score}{context}", scale_id
            )
        if len(matching) > 1:
            raise DefinitionError(
                f"score {score}{context} matches several bands {matching}", scale_id
            )


def _check_bands(definition: ScaleDefinition) -> None:
    scale_id = definition.id
    if not definition.interpretation_bands:
        raise DefinitionError("at least one interpretation band is required", scale_id)

    low, high = attainable_range(definition)
    rule = definition.scoring_rule
    if isinstance(rule, CovariateAdjustedCutoffRule):
        covariate = definition.parameter(rule.covariate)
        for value in covariate.all_option_values():
            cutoff = rule.cutoff_for(value)
            _check_partition(
                scale_id,
                definition.interpretation_bands,
                low,
                high,
                shift=cutoff,
                context=f" (cutoff {cutoff} for {rule.covariate}={value})",
            )
    else:
        _check_partition(scale_id, definition.interpretation_bands, low, high)


def validate_definition(definition: ScaleDefinition) -> ScaleDefinition:
    """Check a definition and return it unchanged.

    Raises:
        DefinitionError: if the scale cannot be scored for every input.
    """
    _check_parameters(definition)
    _check_scoring_rule(definition)
    _check_bands(definition)
    logger.debug("Scale '%s' passed definition checks", definition.id)
    return definition
