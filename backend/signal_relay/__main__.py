"""Run the webhook server: python -m signal_relay"""

import uvicorn

from signal_relay.config import get_settings
from signal_relay.logging_config import configure_logging


def main():
    settings = get_settings()
    configure_logging(settings)
    uvicorn.run(
        "signal_relay.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        proxy_headers=settings.trust_proxy,
        log_config=None,
    )


if __name__ == "__main__":
    main()
