from fastapi import APIRouter, Depends

from meet_scheduler import __version__
from meet_scheduler.config import ServerConfig
from meet_scheduler.web import get_server_config

router = APIRouter()


@router.get("/api/health")
async def health(config: ServerConfig = Depends(get_server_config)):
    return {"status": "ok", "version": __version__, "timezone": config.timezone}
