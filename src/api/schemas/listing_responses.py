from datetime import datetime

from pydantic import BaseModel, Field

from src.domain.entities.listing import Listing


class ListingResponse(BaseModel):
    """A listing as clients see it; keys match the stored document."""

    id: str
    title: str = Field(serialization_alias="titulo")
    description: str = Field(serialization_alias="descricao")
    price: float = Field(serialization_alias="preco")
    category: str = Field(serialization_alias="categoria")
    seller: str = Field(serialization_alias="vendedor")
    contact: str = Field(serialization_alias="whatsapp")
    condition: str = Field(serialization_alias="condicao")
    images: list[str] = Field(serialization_alias="imagens")
    created_at: datetime = Field(serialization_alias="criadoEm")
    active: bool = Field(serialization_alias="ativo")
    sold_at: datetime | None = Field(default=None, serialization_alias="vendidoEm")

    @classmethod
    def from_listing(cls, listing: Listing) -> "ListingResponse":
        return cls(
            id=listing.id,
            title=listing.title,
            description=listing.description,
            price=float(listing.price),
            category=listing.category,
            seller=listing.seller,
            contact=listing.contact,
            condition=listing.condition,
            images=list(listing.images),
            created_at=listing.created_at,
            active=listing.active,
            sold_at=listing.sold_at,
        )


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    error: str
    code: str


class ServiceInfoResponse(BaseModel):
    message: str
    version: str


class HealthResponse(BaseModel):
    status: str
    storage: str
    listings: int
