"""
Configuration endpoint
"""
from fastapi import APIRouter

from pubquiz import state


router = APIRouter(tags=["config"])


@router.get("/config")
async def get_config():
    """Public server settings (no database URL or credentials)"""
    return state.SETTINGS.model_dump(exclude={"database_url", "media_dir", "admin_team_id"})
