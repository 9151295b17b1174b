"""
Loads scale definitions from YAML.

The catalog file holds a top-level ``scales`` list; each entry is one
ScaleDefinition. Parsing problems, schema violations and failed definition
checks all surface as DefinitionError so that a broken catalog stops the
application at startup.
"""

import logging
from pathlib import Path
from typing import List, Optional, Union

import yaml
from pydantic import ValidationError

from bedside_scales.core.catalog.validation import validate_definition
from bedside_scales.core.errors import DefinitionError
from bedside_scales.core.models import ScaleDefinition

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_PATH = Path(__file__).resolve().parents[2] / "data" / "scales.yaml"


def parse_definitions(raw: object, source: str = "<catalog>") -> List[ScaleDefinition]:
    """Build and validate definitions from already-parsed YAML data."""
    if not isinstance(raw, dict) or not isinstance(raw.get("scales"), list):
        raise DefinitionError(f"{source}: expected a mapping with a 'scales' list")

    definitions = []
    seen_ids = set()
    for index, entry in enumerate(raw["scales"]):
        scale_id = entry.get("id") if isinstance(entry, dict) else None
        try:
            definition = ScaleDefinition.model_validate(entry)
        except ValidationError as e:
            logger.error("Rejected scale #%d (%s) from %s: %s", index, scale_id, source, e)
            raise DefinitionError(f"invalid definition: {e}", scale_id or f"#{index}") from e

        if definition.id in seen_ids:
            raise DefinitionError("duplicate scale id", definition.id)
        seen_ids.add(definition.id)

        try:
            definitions.append(validate_definition(definition))
        except DefinitionError as e:
            logger.error("Rejected scale from %s: %s", source, e)
            raise

    return definitions


def load_definitions(path: Optional[Union[str, Path]] = None) -> List[ScaleDefinition]:
    """Read and validate every scale in a catalog file.

    Args:
        path: YAML catalog file. Defaults to the catalog shipped with the package.

    Returns:
        Definitions in file order.

    Raises:
        DefinitionError: if the file is missing, unparsable or holds an invalid scale.
    """
    catalog_path = Path(path) if path else DEFAULT_CATALOG_PATH
    try:
        with open(catalog_path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except FileNotFoundError as e:
        raise DefinitionError(f"catalog file not found: {catalog_path}") from e
    except yaml.YAMLError as e:
        raise DefinitionError(f"error parsing catalog file {catalog_path}: {e}") from e

    definitions = parse_definitions(raw, source=str(catalog_path))
    logger.info("Loaded %d scales from %s", len(definitions), catalog_path)
    return definitions
