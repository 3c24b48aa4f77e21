"""Reassemble a continued document from its chunk chain.

A document that needed several generation turns is stored as a root chunk and
continuation chunks, each pointing at its predecessor through
``target_contribution_id``. Assembly walks that chain from the root, writes the
concatenation over the root's own path and leaves the root as the only latest
edit.
"""

from typing import Any

from dialectic_storage.core.config import get_settings
from dialectic_storage.core.logging import get_logger
from dialectic_storage.core.schemas_storage import AssemblyResult
from dialectic_storage.db import contributions as contributions_db
from dialectic_storage.db import storage as storage_db

logger = get_logger(__name__)


class LineageError(Exception):
    """The chunk chain of a document is missing or inconsistent."""

    def __init__(self, message: str, contribution_id: str):
        self.contribution_id = contribution_id
        super().__init__(message)


def build_contribution_chain(root_id: str, rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """
    Order a document's chunks from the root to the last continuation.

    When several rows point at the same predecessor the first one in ``rows``
    wins, so callers should pass rows ordered by creation time.

    Args:
        root_id: ID of the root chunk
        rows: Candidate rows (at least ``id`` and ``target_contribution_id``)

    Returns:
        Rows in chain order, root first

    Raises:
        LineageError: If the root is not among the rows or the chain loops
    """
    by_id = {row["id"]: row for row in rows}
    if root_id not in by_id:
        raise LineageError(f"Could not find root contribution with ID: {root_id}", root_id)

    successors: dict[str, dict[str, Any]] = {}
    for row in rows:
        parent_id = row.get("target_contribution_id")
        if parent_id and parent_id not in successors:
            successors[parent_id] = row

    chain = []
    visited: set[str] = set()
    current = by_id[root_id]
    while current is not None:
        if current["id"] in visited:
            raise LineageError(
                f"Cycle detected in contribution chain at {current['id']} (root {root_id})",
                current["id"],
            )
        visited.add(current["id"])
        chain.append(current)
        current = successors.get(current["id"])

    return chain


def assemble_and_save_final_document(
    root_contribution_id: str,
    bucket: str | None = None,
) -> AssemblyResult:
    """
    Concatenate a document's chunks and store the result at the root's path.

    Args:
        root_contribution_id: ID of the document's root chunk
        bucket: Bucket to read and write; defaults to the content bucket

    Returns:
        AssemblyResult with the final full path, or an error
    """
    bucket = bucket or get_settings().SB_CONTENT_STORAGE_BUCKET

    try:
        root = contributions_db.get_contribution(root_contribution_id)
        if not root:
            raise LineageError(
                f"Could not find root contribution with ID: {root_contribution_id}",
                root_contribution_id,
            )

        rows = contributions_db.list_session_contributions(root["session_id"])
        chain = build_contribution_chain(root_contribution_id, rows)

        parts = []
        for chunk in chain:
            chunk_path = f"{chunk['storage_path']}/{chunk['file_name']}"
            try:
                data = storage_db.download_from_storage(bucket, chunk_path)
            except Exception as e:
                raise LineageError(
                    f"Failed to download chunk {chunk['id']} from {chunk_path}: {e}", chunk["id"]
                ) from e
            parts.append(data.decode("utf-8"))

        final_path = f"{root['storage_path']}/{root['file_name']}"
        storage_db.upload_to_storage(
            bucket, final_path, "".join(parts), "text/markdown", upsert=True
        )
    except Exception as e:
        logger.error(
            f"Final document assembly failed for {root_contribution_id}: {e}",
            extra={"contribution_id": root_contribution_id},
        )
        return AssemblyResult(error=str(e))

    try:
        contributions_db.set_latest_edit([chunk["id"] for chunk in chain], False)
        contributions_db.set_latest_edit([root_contribution_id], True)
    except Exception as e:
        logger.error(
            f"Assembled {final_path} but failed to update is_latest_edit flags: {e}",
            extra={"contribution_id": root_contribution_id},
        )

    logger.info(
        f"Assembled {len(chain)} chunk(s)",
        extra={
            "contribution_id": root_contribution_id,
            "storage_path": root["storage_path"],
            "file_name": root["file_name"],
        },
    )
    return AssemblyResult(final_path=final_path)
