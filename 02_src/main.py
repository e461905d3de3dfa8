"""Run the chatsync demo service: HTTP API plus the optional simulator."""

import os
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

from chatsync.api import create_fastapi_app
from chatsync.api.routes import control
from chatsync.logging_config import get_logger, setup_logging
from sim import Sim

PROJECT_ROOT = Path(__file__).resolve().parent.parent

logger = get_logger(__name__)


def build_sim(api_url: str) -> Sim | None:
    """Simulator posting into CHATSYNC_SIM_CHANNEL, unless CHATSYNC_SIM=off."""
    if os.getenv("CHATSYNC_SIM", "on").lower() in ("0", "off", "false", "no"):
        return None
    viewer_id = os.getenv("CHATSYNC_SIM_VIEWER", "user_me")
    return Sim(
        api_url=api_url,
        channel_id=os.getenv("CHATSYNC_SIM_CHANNEL", "demo-general"),
        viewer={"user_id": viewer_id, "name": "Me"},
    )


def main() -> None:
    load_dotenv(PROJECT_ROOT / ".env")
    setup_logging()

    host = os.getenv("API_HOST", "localhost")
    port = int(os.getenv("API_PORT", "8000"))

    control.set_sim_instance(build_sim(f"http://{host}:{port}"))
    logger.info("Serving chatsync on %s:%d", host, port)

    uvicorn.run(create_fastapi_app(), host=host, port=port, log_level="info")


if __name__ == "__main__":
    main()
