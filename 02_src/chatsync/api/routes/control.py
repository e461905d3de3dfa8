"""Control routes: reset between runs and drive the demo simulator."""

from pydantic import BaseModel
from fastapi import APIRouter, HTTPException

from ...app import IApplication
from ...logging_config import get_logger

logger = get_logger(__name__)

# Set by main.py; None when running without the simulator
_sim_instance = None


class StatusResponse(BaseModel):
    status: str


class SimStatusResponse(BaseModel):
    configured: bool
    running: bool


def set_sim_instance(sim) -> None:
    global _sim_instance
    _sim_instance = sim


def get_sim_instance():
    return _sim_instance


def _require_sim():
    if _sim_instance is None:
        raise HTTPException(status_code=404, detail="SIM not configured")
    return _sim_instance


def create_control_router(app: IApplication) -> APIRouter:
    """Create control router."""
    router = APIRouter(prefix="/api/control", tags=["control"])

    @router.post("/reset", response_model=StatusResponse)
    async def reset_system() -> StatusResponse:
        """Stop the simulator, close every view and clear stored data."""
        if _sim_instance is not None:
            await _sim_instance.stop()
        try:
            await app.reset()
        except Exception as e:
            logger.error("Reset failed: %s", e, exc_info=True)
            raise HTTPException(status_code=500, detail=str(e))
        return StatusResponse(status="ok")

    @router.get("/sim", response_model=SimStatusResponse)
    async def sim_status() -> SimStatusResponse:
        if _sim_instance is None:
            return SimStatusResponse(configured=False, running=False)
        return SimStatusResponse(configured=True, running=_sim_instance.running)

    @router.post("/sim/start", response_model=StatusResponse)
    async def start_sim() -> StatusResponse:
        """Start posting as the virtual participants."""
        sim = _require_sim()
        if sim.running:
            return StatusResponse(status="already_running")
        await sim.start()
        return StatusResponse(status="ok")

    @router.post("/sim/stop", response_model=StatusResponse)
    async def stop_sim() -> StatusResponse:
        sim = _require_sim()
        await sim.stop()
        return StatusResponse(status="ok")

    return router
