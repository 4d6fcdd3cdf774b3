"""
Pydantic models for quote and shipment requests.

Field aliases follow the camelCase names used by the calling application and
by Andreani.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class Bulto(BaseModel):
    """A single parcel. Dimensions in centimetres, weight in grams."""

    model_config = ConfigDict(populate_by_name=True)

    alto_cm: float = Field(..., alias="altoCm", gt=0)
    ancho_cm: float = Field(..., alias="anchoCm", gt=0)
    largo_cm: float = Field(..., alias="largoCm", gt=0)
    peso: float = Field(..., gt=0, description="Weight in grams.")
    valor_declarado: float = Field(0, alias="valorDeclarado", ge=0)

    @property
    def kilos(self) -> float:
        return self.peso / 1000

    @property
    def volumen(self) -> float:
        return self.alto_cm * self.ancho_cm * self.largo_cm


class QuoteParams(BaseModel):
    """Quote parameters as sent by the calling application."""

    model_config = ConfigDict(populate_by_name=True)

    tipo_de_envio_id: Union[int, str] = Field(..., alias="tipoDeEnvioId")
    codigo_postal_destino: str = Field(..., alias="codigoPostalDestino", min_length=1)
    codigo_postal_origen: Optional[str] = Field(None, alias="codigoPostalOrigen")
    sucursal_origen: Optional[Union[int, str]] = Field(None, alias="sucursalOrigen")
    usuario_id: Optional[str] = Field(None, alias="usuarioId")
    destinatario: Optional[Dict[str, Any]] = None
    bultos: List[Bulto] = Field(..., min_length=1)


class CarrierAuth(BaseModel):
    """Optional authentication fields shared by the proxied operations."""

    username: Optional[str] = None
    password: Optional[str] = None
    token: Optional[str] = Field(None, description="Caller supplied token; bypasses the cache.")


class QuoteRequest(CarrierAuth):
    params: Optional[QuoteParams] = None


class ShipmentRequest(CarrierAuth):
    envio: Optional[Dict[str, Any]] = Field(
        None, description="Andreani shipment payload, forwarded as is."
    )


__all__ = [
    "Bulto",
    "CarrierAuth",
    "QuoteParams",
    "QuoteRequest",
    "ShipmentRequest",
]
