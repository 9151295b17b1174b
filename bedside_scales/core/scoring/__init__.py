"""
Scoring engine and form state for clinical scales.
"""

from bedside_scales.core.scoring.engine import evaluate, resolve_band, total_score
from bedside_scales.core.scoring.instance import ScaleInstance, snapshot_parameters
from bedside_scales.core.scoring.visibility import check_preconditions, visible_options
