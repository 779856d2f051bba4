# app/models.py

from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, field_validator


class ChatRequest(BaseModel):
    message: str = ""

    @field_validator("message", mode="before")
    @classmethod
    def coerce_message(cls, v: Any) -> str:
        # Clients send numbers or null from time to time
        if v is None:
            return ""
        if isinstance(v, (dict, list)):
            raise ValueError("message must be a string")
        return str(v)


class ChatResponse(BaseModel):
    reply: str


class ExtractedIdentifiers(BaseModel):
    order_number: Optional[str] = None
    email: Optional[str] = None

    @property
    def has_any(self) -> bool:
        return bool(self.order_number or self.email)


class OrderRecord(BaseModel):
    id: str
    status: str
    payment_status: Optional[str] = None
    shipping_status: Optional[str] = None
    tracking_number: Optional[str] = None
    date_created: Optional[str] = None


# ---- Lookup outcomes (closed set, discriminated on "kind") ----

class LookupNotConfigured(BaseModel):
    kind: Literal["not_configured"] = "not_configured"


class LookupNotFound(BaseModel):
    kind: Literal["not_found"] = "not_found"
    order_number: Optional[str] = None
    email: Optional[str] = None


class LookupTransportError(BaseModel):
    kind: Literal["transport_error"] = "transport_error"


class LookupFound(BaseModel):
    kind: Literal["found"] = "found"
    record: OrderRecord


LookupOutcome = Union[LookupNotConfigured, LookupNotFound, LookupTransportError, LookupFound]
