"""API router for v1 endpoints."""

from fastapi import APIRouter

from dialectic_storage.api import contributions, files, inputs, paths

router = APIRouter()

# Path construction and parsing
router.include_router(paths.router, prefix="/paths", tags=["paths"])

# Upload registration and signed URLs
router.include_router(files.router, prefix="/files", tags=["files"])

# Continuation chain assembly
router.include_router(contributions.router, prefix="/contributions", tags=["contributions"])

# Stage input gathering
router.include_router(inputs.router, prefix="/inputs", tags=["inputs"])
