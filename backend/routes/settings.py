"""Health check and settings endpoints."""

from fastapi import APIRouter

from backend import campaigns, storage

router = APIRouter()


@router.get("/health")
async def health():
    """Health check."""
    return {"status": "ok"}


@router.get("/settings")
async def get_settings():
    """Get global app settings (connections, role assignments, campaign tuning)."""
    return storage.get_config()


@router.patch("/settings")
async def update_settings(body: dict):
    """Update global app settings (partial merge).

    Live sessions are dropped so the next request picks up the new
    connections; campaign state itself lives in storage.
    """
    config = storage.update_config(body)
    campaigns.reset_sessions()
    return config
