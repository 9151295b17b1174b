"""
The scale catalog: a read-only registry of validated scale definitions.
"""

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from bedside_scales.core.catalog.loader import load_definitions
from bedside_scales.core.catalog.validation import validate_definition
from bedside_scales.core.errors import DefinitionError, ScaleNotFoundError
from bedside_scales.core.models import ScaleCategory, ScaleDefinition

logger = logging.getLogger(__name__)


class ScaleCatalog:
    """Immutable lookup of scale definitions by id.

    Definitions are validated on construction, so every scale reachable
    through the catalog can be scored.
    """

    def __init__(self, definitions: Iterable[ScaleDefinition]):
        scales: Dict[str, ScaleDefinition] = {}
        for definition in definitions:
            if definition.id in scales:
                raise DefinitionError("duplicate scale id", definition.id)
            scales[definition.id] = validate_definition(definition)
        self._scales = scales

    def get(self, scale_id: str) -> ScaleDefinition:
        """Return the definition for ``scale_id``.

        Raises:
            ScaleNotFoundError: if no such scale exists.
        """
        try:
            return self._scales[scale_id]
        except KeyError:
            raise ScaleNotFoundError(scale_id) from None

    def all(self) -> List[ScaleDefinition]:
        """All scales grouped by category (adult first), catalog order within a group."""
        grouped = self.by_category()
        return [definition for category in ScaleCategory for definition in grouped[category]]

    def by_category(self) -> Dict[ScaleCategory, List[ScaleDefinition]]:
        grouped: Dict[ScaleCategory, List[ScaleDefinition]] = {
            category: [] for category in ScaleCategory
        }
        for definition in self._scales.values():
            grouped[definition.category].append(definition)
        return grouped

    def __contains__(self, scale_id: object) -> bool:
        return scale_id in self._scales

    def __len__(self) -> int:
        return len(self._scales)

    def __iter__(self):
        return iter(self.all())


def load_catalog(path: Optional[Union[str, Path]] = None) -> ScaleCatalog:
    """Load a catalog from YAML, the packaged catalog by default."""
    catalog = ScaleCatalog(load_definitions(path))
    logger.debug("Catalog ready with scales: %s", ", ".join(d.id for d in catalog.all()))
    return catalog
