import logging

import uvicorn

from .config import HOST, get_settings

logger = logging.getLogger("letterbox")


def main() -> None:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("WS server listening on http://%s:%s", HOST, settings.port)
    # Protocol-level keepalive: a peer that misses a pong for one interval is closed
    uvicorn.run(
        "letterbox.app:app",
        host=HOST,
        port=settings.port,
        log_level=settings.log_level.lower(),
        ws="websockets",
        ws_ping_interval=settings.heartbeat_interval,
        ws_ping_timeout=settings.heartbeat_interval,
    )


if __name__ == "__main__":
    main()
