"""Run the notification dispatch service with uvicorn.

Configuration is read from ``$NDS_CONFIG`` (default: config.ini) with
``NDS_*`` environment variables as fallbacks.
"""

import uvicorn

from notification_dispatch.config_loader import load_settings
from notification_dispatch.server import build_app


if __name__ == "__main__":
    settings = load_settings()
    app = build_app(settings)
    uvicorn.run(app, host=settings.http_host, port=settings.http_port)
