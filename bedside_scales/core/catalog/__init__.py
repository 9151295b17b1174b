"""
Scale catalog: loading, validating and looking up scale definitions.
"""

from bedside_scales.core.catalog.loader import DEFAULT_CATALOG_PATH, load_definitions
from bedside_scales.core.catalog.registry import ScaleCatalog, load_catalog
from bedside_scales.core.catalog.validation import attainable_range, validate_definition
