#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Scoring Engine

Turns a filled-in scale into a total score and an interpretation. One engine
serves every scale in the catalog: the scale definition carries the
parameters, the scoring rule and the interpretation bands, and the engine
dispatches on the rule kind.

Rule kinds:
1. sum - total of the scored parameters, interpreted by the bands
2. sum_with_override - as sum, but one critical parameter forces the override band
3. covariate_adjusted_cutoff - bands are read relative to a cutoff shifted
   by a covariate parameter (e.g. education level)

Evaluation is a pure function of its inputs.
"""

import logging
from typing import Callable, Dict, List, Mapping

from bedside_scales.core.errors import DefinitionError
from bedside_scales.core.models import (
    CovariateAdjustedCutoffRule,
    InterpretationBand,
    ScaleDefinition,
    ScoreResult,
    SumWithOverrideRule,
)
from bedside_scales.core.scoring.visibility import check_preconditions

logger = logging.getLogger(__name__)

__all__ = [
    "evaluate",
    "total_score",
    "resolve_band",
]


def total_score(definition: ScaleDefinition, values: Mapping[str, int]) -> int:
    """Sum of the values of the parameters that contribute to the total."""
    return sum(values[p.key] for p in definition.scored_parameters)


def resolve_band(
    definition: ScaleDefinition, score: int, shift: int = 0
) -> InterpretationBand:
    """First band, in declaration order, whose range holds ``score``.

    Args:
        definition: Scale whose bands are searched
        score: Total score to interpret
        shift: Added to both band bounds (the adjusted cutoff for
            covariate-adjusted scales)

    Raises:
        DefinitionError: if no band matches. Catalog validation rules this out
            for every attainable score.
    """
    for band in definition.interpretation_bands:
        if band.matches(score, shift):
            return band
    raise DefinitionError(
        f"no interpretation band matches score {score} (shift {shift})", definition.id
    )


def _result(score: int, band: InterpretationBand, **extra) -> ScoreResult:
    return ScoreResult(
        total_score=score,
        interpretation_label=band.label,
        severity=band.severity,
        **extra,
    )


def _score_sum(definition: ScaleDefinition, values: Mapping[str, int]) -> ScoreResult:
    score = total_score(definition, values)
    return _result(score, resolve_band(definition, score))


def _score_sum_with_override(
    definition: ScaleDefinition, values: Mapping[str, int]
) -> ScoreResult:
    rule: SumWithOverrideRule = definition.scoring_rule
    score = total_score(definition, values)

    watched: List[str] = rule.override_parameters or [
        p.key for p in definition.scored_parameters
    ]
    triggers = [key for key in watched if values[key] >= rule.override_threshold]
    if triggers:
        logger.debug(
            "Scale '%s': override triggered by %s (total %d)", definition.id, triggers, score
        )
        return _result(score, rule.override_band, overridden=True)

    return _result(score, resolve_band(definition, score))


def _score_covariate_adjusted(
    definition: ScaleDefinition, values: Mapping[str, int]
) -> ScoreResult:
    rule: CovariateAdjustedCutoffRule = definition.scoring_rule
    score = total_score(definition, values)
    cutoff = rule.cutoff_for(values[rule.covariate])
    return _result(score, resolve_band(definition, score, shift=cutoff), cutoff=cutoff)


_RULE_HANDLERS: Dict[str, Callable[[ScaleDefinition, Mapping[str, int]], ScoreResult]] = {
    "sum": _score_sum,
    "sum_with_override": _score_sum_with_override,
    "covariate_adjusted_cutoff": _score_covariate_adjusted,
}


def evaluate(definition: ScaleDefinition, instance: Mapping[str, int]) -> ScoreResult:
    """
    Score a filled-in scale.

    Args:
        definition: The scale being scored
        instance: One selected option value per parameter, e.g. a ScaleInstance
            or a plain ``{"eye": 4, "verbal": 5, "motor": 6}`` mapping

    Returns:
        ScoreResult with the total, the interpretation label and its severity.

    Raises:
        PreconditionViolation: if a parameter is missing, unknown, or holds a
            value outside its currently visible options.
    """
    values = dict(instance)
    check_preconditions(definition, values)

    handler = _RULE_HANDLERS[definition.scoring_rule.kind]
    result = handler(definition, values)
    logger.debug(
        "Scale '%s' scored %d -> %s", definition.id, result.total_score, result.interpretation_label
    )
    return result
