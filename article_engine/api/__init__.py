"""API router for v1 endpoints."""

from fastapi import APIRouter

from article_engine.api import brainstorm, editor, jobs, links, outline, research, writer

router = APIRouter()

# Generation stages
router.include_router(research.router, prefix="/agents", tags=["research"])
router.include_router(brainstorm.router, prefix="/agents", tags=["brainstorm"])
router.include_router(outline.router, prefix="/agents", tags=["outline"])
router.include_router(writer.router, prefix="/agents", tags=["writer"])
router.include_router(editor.router, prefix="/agents", tags=["editor"])

# Linking and similarity
router.include_router(links.router, prefix="/articles", tags=["links"])

# Job status
router.include_router(jobs.router, prefix="/jobs", tags=["jobs"])
