"""Stage slug to ordered directory name mapping."""

from collections.abc import Mapping
from types import MappingProxyType

from pydantic import ValidationError

from dialectic_storage.core.config import DEFAULT_STAGE_DIR_NAMES


class StageDirectoryMapper:
    """Maps stage slugs to ordinal-prefixed directory names.

    Directory names carry the stage's position in the pipeline
    (``1_thesis``, ``2_antithesis``...) so a plain lexicographic listing of an
    iteration folder follows pipeline order. Unknown slugs map to themselves.
    """

    def __init__(self, stage_dir_names: Mapping[str, str] | None = None) -> None:
        names = dict(DEFAULT_STAGE_DIR_NAMES if stage_dir_names is None else stage_dir_names)
        self._names: Mapping[str, str] = MappingProxyType(names)
        self._slugs: Mapping[str, str] = MappingProxyType(
            {dir_name: slug for slug, dir_name in names.items()}
        )

    @property
    def stage_dir_names(self) -> Mapping[str, str]:
        return self._names

    def map_stage_slug_to_dir_name(self, stage_slug: str) -> str:
        """Return the directory name for a stage slug."""
        return self._names.get(stage_slug.strip().lower(), stage_slug)

    def map_dir_name_to_stage_slug(self, dir_name: str) -> str:
        """Reverse lookup; directory names that are not mapped are returned as-is."""
        return self._slugs.get(dir_name, dir_name)


def get_default_mapper() -> StageDirectoryMapper:
    """Build a mapper from the configured stage table, falling back to the defaults."""
    try:
        from dialectic_storage.core.config import get_settings

        return StageDirectoryMapper(get_settings().STAGE_DIR_NAMES)
    except ValidationError:
        # Settings need Supabase credentials; pure path math must work without them
        return StageDirectoryMapper()


def map_stage_slug_to_dir_name(stage_slug: str, mapper: StageDirectoryMapper | None = None) -> str:
    """
    Map a stage slug to its ordered directory name.

    Args:
        stage_slug: Stage slug (e.g. "synthesis")
        mapper: Optional mapper; the default stage table is used otherwise

    Returns:
        Directory name (e.g. "3_synthesis"), or the slug itself when unknown
    """
    return (mapper or StageDirectoryMapper()).map_stage_slug_to_dir_name(stage_slug)
