"""API routes package."""

from fastapi import APIRouter

from app.api import students, ai

api_router = APIRouter()

api_router.include_router(students.router, prefix="/students", tags=["students"])
api_router.include_router(ai.router, prefix="/ai", tags=["ai"])
