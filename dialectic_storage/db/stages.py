"""Read access to stage definitions (dialectic_stages)."""

from dialectic_storage.db.supabase_client import get_supabase

STAGES_TABLE = "dialectic_stages"


def get_stage_display_names(stage_slugs: list[str]) -> dict[str, str]:
    """Map stage slugs to their display names.

    Slugs without a row are absent from the result.
    """
    if not stage_slugs:
        return {}
    supabase = get_supabase()

    response = (
        supabase.table(STAGES_TABLE)
        .select("slug, display_name")
        .in_("slug", sorted(set(stage_slugs)))
        .execute()
    )

    return {
        row["slug"]: row["display_name"]
        for row in response.data or []
        if row.get("display_name")
    }
