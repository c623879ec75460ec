from signal_relay.routers import system_router, webhook_router

__all__ = ["system_router", "webhook_router"]
