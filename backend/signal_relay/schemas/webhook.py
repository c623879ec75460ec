"""Webhook response schemas"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


def format_ms(value: float) -> str:
    return f"{value:.2f}ms"


class Latency(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total: str
    exchange_api: str = Field(alias="exchangeApi")


class WebhookResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str = "Trade executed successfully"
    data: Any = None
    latency: Latency
    attempts: int
    request_id: str = Field(alias="requestId")


class ErrorResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = False
    message: str
    error: Optional[str] = None
    details: Optional[dict] = None
    request_id: str = Field(alias="requestId")
