"""
dailyquiz/routes/__init__.py
Route registration
"""
from fastapi import APIRouter
from dailyquiz.routes import admin, participant

router = APIRouter()

router.include_router(participant.router)
router.include_router(admin.router)
