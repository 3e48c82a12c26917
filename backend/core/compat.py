"""Host engine compatibility checks."""
import logging
from typing import Callable

from semantic_version import NpmSpec, Version

from config import settings

logger = logging.getLogger(__name__)

# A compatibility predicate answers "does the host satisfy this engines range?"
CompatibilityPredicate = Callable[[str], bool]


class EngineCompatibility:
    """Checks npm-style engine ranges against a fixed host engine version."""

    def __init__(self, engine_version: str):
        self.engine_version = Version(engine_version)

    def satisfies(self, range_spec: str) -> bool:
        """Return True if the host engine version lies inside range_spec.

        An unparseable range never matches.
        """
        if not isinstance(range_spec, str):
            logger.debug(f"Ignoring non-string engine range {range_spec!r}")
            return False
        try:
            spec = NpmSpec(range_spec)
        except ValueError as e:
            logger.debug(f"Ignoring invalid engine range '{range_spec}': {e}")
            return False
        return self.engine_version in spec


def default_predicate() -> CompatibilityPredicate:
    """Predicate for the engine version configured in settings."""
    return EngineCompatibility(settings.engine_version).satisfies
