"""
Defines the Pydantic data models used throughout the application.

These models describe the clinical scales themselves (parameters, options,
scoring rules and interpretation bands), the outcome of scoring a filled-in
form, and the results kept in the history log.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field


class ScaleCategory(str, Enum):
    """Population a scale is intended for."""

    ADULT = "Adult"
    PEDIATRIC = "Pediatric"


class Severity(str, Enum):
    """Clinical weight of an interpretation band, lowest first."""

    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    CRITICAL = "critical"


class OptionSpec(BaseModel):
    """One selectable answer for a parameter."""

    model_config = ConfigDict(frozen=True)

    value: int = Field(..., description="Points contributed when selected.")
    label: str = Field(..., description="Text shown to the observer.")


class VisibilityRule(BaseModel):
    """Makes a parameter's option set depend on another parameter's value.

    ``option_sets`` is keyed by the controlling parameter's value. When the
    controlling value has no entry the parameter's own ``options`` apply.
    """

    model_config = ConfigDict(frozen=True)

    depends_on: str = Field(..., description="Key of the controlling parameter.")
    option_sets: Dict[int, Tuple[OptionSpec, ...]] = Field(
        ..., description="Option set to show for each controlling value."
    )


class ParameterSpec(BaseModel):
    """One observation axis of a scale."""

    model_config = ConfigDict(frozen=True)

    key: str = Field(..., description="Unique key within the scale.", min_length=1)
    label: str = Field(..., description="Display label of the observation.")
    short_label: Optional[str] = Field(
        None, description="Abbreviation used in saved parameter snapshots."
    )
    options: Tuple[OptionSpec, ...] = Field(
        ..., description="Default option set, in display order."
    )
    default: int = Field(..., description="Value selected when a form starts.")
    contributes_to_total: bool = Field(
        True,
        description="False for context parameters (toggles, covariates) left out of the sum.",
    )
    visibility_rule: Optional[VisibilityRule] = Field(
        None, description="Context-dependent option sets, if any."
    )

    @property
    def snapshot_label(self) -> str:
        return self.short_label or self.label

    def all_option_values(self) -> List[int]:
        """Every value this parameter can hold under any context."""
        values = {option.value for option in self.options}
        if self.visibility_rule:
            for option_set in self.visibility_rule.option_sets.values():
                values.update(option.value for option in option_set)
        return sorted(values)


class InterpretationBand(BaseModel):
    """A contiguous score range mapped to one interpretation.

    ``min`` and ``max`` are inclusive; ``None`` leaves that side open. Under a
    covariate-adjusted rule both bounds are offsets from the adjusted cutoff.
    """

    model_config = ConfigDict(frozen=True)

    min: Optional[int] = Field(None, description="Inclusive lower bound.")
    max: Optional[int] = Field(None, description="Inclusive upper bound.")
    label: str = Field(..., description="Interpretation shown for this band.")
    severity: Severity = Field(..., description="Clinical weight of the band.")

    def matches(self, score: int, shift: int = 0) -> bool:
        if self.min is not None and score < self.min + shift:
            return False
        if self.max is not None and score > self.max + shift:
            return False
        return True


class SumRule(BaseModel):
    """Total is the sum of the selected values; bands alone decide."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["sum"] = "sum"


class SumWithOverrideRule(BaseModel):
    """Sum, but a single critical parameter forces the override band."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["sum_with_override"] = "sum_with_override"
    override_threshold: int = Field(
        ..., description="A watched parameter at or above this value triggers the override."
    )
    override_parameters: Tuple[str, ...] = Field(
        default_factory=tuple,
        description="Parameters watched for the override. Empty means every scored parameter.",
    )
    override_band: InterpretationBand = Field(
        ..., description="Interpretation forced when the override triggers."
    )


class CovariateAdjustedCutoffRule(BaseModel):
    """Sum of the scored parameters against a cutoff shifted by a covariate."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["covariate_adjusted_cutoff"] = "covariate_adjusted_cutoff"
    covariate: str = Field(..., description="Key of the covariate parameter.")
    base_cutoff: int = Field(..., description="Cutoff before adjustment.")
    offsets: Dict[int, int] = Field(
        ..., description="Cutoff offset for each covariate value."
    )

    def cutoff_for(self, covariate_value: int) -> int:
        return self.base_cutoff + self.offsets[covariate_value]


ScoringRule = Annotated[
    Union[SumRule, SumWithOverrideRule, CovariateAdjustedCutoffRule],
    Field(discriminator="kind"),
]


class ScaleDefinition(BaseModel):
    """A complete clinical scale: its parameters and how to read them."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Stable key, e.g. 'glasgow'.", min_length=1)
    display_name: str = Field(..., description="Name shown in menus and history.")
    description: str = Field("", description="One-line purpose of the scale.")
    category: ScaleCategory = Field(..., description="Adult or pediatric.")
    max_score: Optional[int] = Field(None, description="Informational maximum score.")
    parameters: Tuple[ParameterSpec, ...] = Field(
        ..., description="Observation axes in display order."
    )
    scoring_rule: ScoringRule = Field(
        default_factory=SumRule, description="How totals become interpretations."
    )
    interpretation_bands: Tuple[InterpretationBand, ...] = Field(
        ..., description="Evaluated top-down; the first matching band wins."
    )

    def parameter(self, key: str) -> Optional[ParameterSpec]:
        for parameter in self.parameters:
            if parameter.key == key:
                return parameter
        return None

    @property
    def parameter_keys(self) -> List[str]:
        return [parameter.key for parameter in self.parameters]

    @property
    def scored_parameters(self) -> List[ParameterSpec]:
        return [p for p in self.parameters if p.contributes_to_total]


class ScoreResult(BaseModel):
    """Outcome of evaluating a filled-in scale."""

    model_config = ConfigDict(frozen=True)

    total_score: int = Field(..., description="Sum of the scored parameters.")
    interpretation_label: str = Field(..., description="Label of the resolved band.")
    severity: Severity = Field(..., description="Severity of the resolved band.")
    overridden: bool = Field(
        False, description="True when an override replaced the band-derived interpretation."
    )
    cutoff: Optional[int] = Field(
        None, description="Adjusted cutoff, for covariate-adjusted scales."
    )


class SaveContext(BaseModel):
    """Descriptive data stored alongside a score."""

    scale_id: str = Field(..., min_length=1)
    scale_name: str
    category: ScaleCategory
    description: str = ""
    parameters_snapshot: str = Field(
        "", description="Human-readable rendering of the selected values."
    )

    @classmethod
    def for_scale(cls, definition: ScaleDefinition, parameters_snapshot: str) -> "SaveContext":
        return cls(
            scale_id=definition.id,
            scale_name=definition.display_name,
            category=definition.category,
            description=definition.description,
            parameters_snapshot=parameters_snapshot,
        )


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class StoredResult(BaseModel):
    """A saved score in the history log. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Unique identifier.", min_length=1)
    scale_id: str = Field(..., description="Catalog id of the scale.")
    scale_name: str = Field(..., description="Display name at save time.")
    category: ScaleCategory = Field(..., description="Scale category.")
    description: str = Field("", description="Scale description at save time.")
    score: int = Field(..., description="Score shown in the history list.")
    total_points: int = Field(..., description="Total points of the evaluation.")
    interpretation_label: str = Field(..., description="Interpretation at save time.")
    severity: Optional[Severity] = Field(None, description="Severity at save time.")
    parameters_snapshot: str = Field("", description="Opaque display string.")
    created_at: datetime = Field(
        default_factory=_utc_now, description="When the result was saved."
    )
