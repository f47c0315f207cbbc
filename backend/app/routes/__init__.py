"""API route registration."""

from fastapi import APIRouter
from .questions import router as questions_router
from .tests import router as tests_router
from .results import router as results_router


def register_all_routes(api_router: APIRouter):
    """Include all route modules on the main API router."""
    api_router.include_router(questions_router)
    api_router.include_router(tests_router)
    api_router.include_router(results_router)
