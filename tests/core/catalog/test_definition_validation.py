"""
Tests for scale definition checks

Definitions that could not be scored for every input must be rejected when
the catalog loads:
1. Empty option sets and duplicate values or keys
2. Defaults outside the option set
3. Interpretation bands with gaps or overlaps
4. Inconsistent scoring rules
"""

import copy
import unittest

from bedside_scales.core.catalog.validation import attainable_range, validate_definition
from bedside_scales.core.errors import DefinitionError
from bedside_scales.core.models import ScaleDefinition

BASE = {
    "id": "demo",
    "display_name": "Demo",
    "category": "Adult",
    "parameters": [
        {
            "key": "first",
            "label": "First",
            "default": 0,
            "options": [{"value": 0, "label": "zero"}, {"value": 1, "label": "one"}, {"value": 2, "label": "two"}],
        },
        {
            "key": "second",
            "label": "Second",
            "default": 0,
            "options": [{"value": 0, "label": "zero"}, {"value": 3, "label": "three"}],
        },
    ],
    "scoring_rule": {"kind": "sum"},
    "interpretation_bands": [
        {"min": 0, "max": 2, "label": "Low", "severity": "low"},
        {"min": 3, "label": "High", "severity": "high"},
    ],
}


def build(**changes):
    data = copy.deepcopy(BASE)
    data.update(changes)
    return ScaleDefinition.model_validate(data)


class TestAttainableRange(unittest.TestCase):
    """Tests for attainable_range"""

    def test_range_of_summed_parameters(self):
        """Lowest and highest totals add the extreme option values."""
        self.assertEqual(attainable_range(build()), (0, 5))

    def test_non_scored_parameters_ignored(self):
        """Context parameters do not widen the range."""
        parameters = copy.deepcopy(BASE["parameters"])
        parameters[1]["contributes_to_total"] = False
        self.assertEqual(attainable_range(build(parameters=parameters)), (0, 2))


class TestValidateDefinition(unittest.TestCase):
    """Tests for validate_definition"""

    def test_valid_definition_passes(self):
        """A well-formed definition is returned unchanged."""
        definition = build()
        self.assertIs(validate_definition(definition), definition)

    def test_no_parameters(self):
        """At least one parameter is required."""
        with self.assertRaises(DefinitionError):
            validate_definition(build(parameters=[]))

    def test_empty_option_set(self):
        """Every parameter needs options."""
        parameters = copy.deepcopy(BASE["parameters"])
        parameters[0]["options"] = []
        with self.assertRaisesRegex(DefinitionError, "no options"):
            validate_definition(build(parameters=parameters))

    def test_duplicate_option_values(self):
        """Option values are unique within a parameter."""
        parameters = copy.deepcopy(BASE["parameters"])
        parameters[0]["options"].append({"value": 1, "label": "another one"})
        with self.assertRaisesRegex(DefinitionError, "duplicate option values"):
            validate_definition(build(parameters=parameters))

    def test_duplicate_parameter_keys(self):
        """Parameter keys are unique within a scale."""
        parameters = copy.deepcopy(BASE["parameters"])
        parameters[1]["key"] = "first"
        with self.assertRaisesRegex(DefinitionError, "duplicate parameter keys"):
            validate_definition(build(parameters=parameters))

    def test_default_outside_options(self):
        """The initial value must be selectable."""
        parameters = copy.deepcopy(BASE["parameters"])
        parameters[1]["default"] = 1
        with self.assertRaisesRegex(DefinitionError, "default 1"):
            validate_definition(build(parameters=parameters))

    def test_gap_in_bands(self):
        """A score without a band is rejected."""
        bands = [
            {"min": 0, "max": 1, "label": "Low", "severity": "low"},
            {"min": 3, "label": "High", "severity": "high"},
        ]
        with self.assertRaisesRegex(DefinitionError, "no interpretation band matches score 2"):
            validate_definition(build(interpretation_bands=bands))

    def test_bands_not_reaching_maximum(self):
        """Bands must cover the highest attainable total."""
        bands = [{"min": 0, "max": 4, "label": "Any", "severity": "low"}]
        with self.assertRaisesRegex(DefinitionError, "score 5"):
            validate_definition(build(interpretation_bands=bands))

    def test_overlapping_bands(self):
        """A score matching two bands is rejected."""
        bands = [
            {"min": 0, "max": 3, "label": "Low", "severity": "low"},
            {"min": 3, "label": "High", "severity": "high"},
        ]
        with self.assertRaisesRegex(DefinitionError, "several bands"):
            validate_definition(build(interpretation_bands=bands))

    def test_no_bands(self):
        """At least one band is required."""
        with self.assertRaises(DefinitionError):
            validate_definition(build(interpretation_bands=[]))

    def test_visibility_rule_unknown_controller(self):
        """Option sets can only depend on an existing parameter."""
        parameters = copy.deepcopy(BASE["parameters"])
        parameters[1]["visibility_rule"] = {
            "depends_on": "missing",
            "option_sets": {0: [{"value": 0, "label": "zero"}]},
        }
        with self.assertRaisesRegex(DefinitionError, "unknown parameter 'missing'"):
            validate_definition(build(parameters=parameters))

    def test_visibility_rule_empty_option_set(self):
        """Context-dependent option sets must not be empty."""
        parameters = copy.deepcopy(BASE["parameters"])
        parameters[1]["visibility_rule"] = {"depends_on": "first", "option_sets": {1: []}}
        with self.assertRaisesRegex(DefinitionError, "no options"):
            validate_definition(build(parameters=parameters))

    def test_override_watches_unknown_parameter(self):
        """Override parameters must exist."""
        rule = {
            "kind": "sum_with_override",
            "override_threshold": 3,
            "override_parameters": ["third"],
            "override_band": {"label": "Urgent", "severity": "high"},
        }
        with self.assertRaisesRegex(DefinitionError, "unknown parameter 'third'"):
            validate_definition(build(scoring_rule=rule))

    def test_covariate_must_not_be_scored(self):
        """The covariate adjusts thresholds and stays out of the sum."""
        rule = {
            "kind": "covariate_adjusted_cutoff",
            "covariate": "second",
            "base_cutoff": 2,
            "offsets": {0: 0, 3: 1},
        }
        with self.assertRaisesRegex(DefinitionError, "must not contribute"):
            validate_definition(build(scoring_rule=rule))

    def test_covariate_offsets_cover_all_values(self):
        """Every covariate value needs a cutoff offset."""
        parameters = copy.deepcopy(BASE["parameters"])
        parameters[1]["contributes_to_total"] = False
        rule = {
            "kind": "covariate_adjusted_cutoff",
            "covariate": "second",
            "base_cutoff": 1,
            "offsets": {0: 0},
        }
        bands = [{"min": 0, "label": "Normal", "severity": "low"}, {"max": -1, "label": "Low", "severity": "high"}]
        with self.assertRaisesRegex(DefinitionError, r"no cutoff offset for covariate values \[3\]"):
            validate_definition(build(parameters=parameters, scoring_rule=rule, interpretation_bands=bands))

    def test_relative_bands_checked_for_every_covariate_value(self):
        """Shifted bands must partition the range under every cutoff."""
        parameters = copy.deepcopy(BASE["parameters"])
        parameters[1]["contributes_to_total"] = False
        rule = {
            "kind": "covariate_adjusted_cutoff",
            "covariate": "second",
            "base_cutoff": 1,
            "offsets": {0: 0, 3: 1},
        }
        good_bands = [{"min": 0, "label": "Normal", "severity": "low"}, {"max": -1, "label": "Low", "severity": "high"}]
        validate_definition(build(parameters=parameters, scoring_rule=rule, interpretation_bands=good_bands))

        gap_bands = [{"min": 1, "label": "Normal", "severity": "low"}, {"max": -1, "label": "Low", "severity": "high"}]
        with self.assertRaisesRegex(DefinitionError, "cutoff"):
            validate_definition(build(parameters=parameters, scoring_rule=rule, interpretation_bands=gap_bands))

    def test_error_names_the_scale(self):
        """DefinitionError carries the offending scale id."""
        with self.assertRaises(DefinitionError) as cm:
            validate_definition(build(interpretation_bands=[]))
        self.assertEqual(cm.exception.scale_id, "demo")
        self.assertIn("demo", str(cm.exception))


if __name__ == "__main__":
    unittest.main()
