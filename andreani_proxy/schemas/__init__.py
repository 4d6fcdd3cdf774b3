"""Public schema exports."""

from .auth import LoginRequest, LoginResponse
from .shipping import Bulto, CarrierAuth, QuoteParams, QuoteRequest, ShipmentRequest

__all__ = [
    "Bulto",
    "CarrierAuth",
    "LoginRequest",
    "LoginResponse",
    "QuoteParams",
    "QuoteRequest",
    "ShipmentRequest",
]
