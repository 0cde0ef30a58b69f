from fastapi import APIRouter

from autopilot.api.v1.endpoints import health, intent, skills, tasks

v1_router = APIRouter()
v1_router.include_router(health.router, tags=["health"])
v1_router.include_router(intent.router, tags=["intent"])
v1_router.include_router(skills.router, tags=["skills"])
v1_router.include_router(tasks.router, tags=["tasks"])
