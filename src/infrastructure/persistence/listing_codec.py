"""
Mapping between Listing entities and the stored document records.

Record keys are the ones the service has always written to `produtos.json`,
so existing data files keep loading. Unknown keys are ignored here; the file
gateway keeps them on disk.
"""
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from src.domain.entities.listing import DEFAULT_CATEGORY, DEFAULT_CONDITION, MAX_IMAGES, Listing


def listing_to_record(listing: Listing) -> dict[str, Any]:
    record: dict[str, Any] = {
        "id": listing.id,
        "titulo": listing.title,
        "descricao": listing.description,
        "preco": str(listing.price),
        "categoria": listing.category,
        "vendedor": listing.seller,
        "whatsapp": listing.contact,
        "condicao": listing.condition,
        "imagens": list(listing.images),
        "criadoEm": listing.created_at.isoformat(),
        "ativo": listing.active,
    }
    if listing.sold_at is not None:
        record["vendidoEm"] = listing.sold_at.isoformat()
    return record


def listing_from_record(record: dict[str, Any]) -> Listing:
    """Raises KeyError, TypeError or ValueError for records that are not valid listings."""
    active = record.get("ativo")
    if active is None:
        active = True
    elif not isinstance(active, bool):
        raise TypeError(f"ativo must be a boolean, got {active!r}")

    sold_at = record.get("vendidoEm")
    if active and sold_at is not None:
        raise ValueError("active listing has vendidoEm")
    if not active and sold_at is None:
        raise ValueError("sold listing has no vendidoEm")

    return Listing(
        id=_required_text(record, "id"),
        title=_required_text(record, "titulo"),
        description=_required_text(record, "descricao"),
        price=_parse_price(record["preco"]),
        seller=_required_text(record, "vendedor"),
        category=_optional_text(record, "categoria", DEFAULT_CATEGORY),
        contact=_optional_text(record, "whatsapp", ""),
        condition=_optional_text(record, "condicao", DEFAULT_CONDITION),
        images=_images(record.get("imagens")),
        created_at=parse_timestamp(record["criadoEm"]),
        active=active,
        sold_at=parse_timestamp(sold_at) if sold_at is not None else None,
    )


def _required_text(record: dict[str, Any], key: str) -> str:
    value = record[key]
    if not isinstance(value, str):
        raise TypeError(f"{key} must be text, got {value!r}")
    if not value.strip():
        raise ValueError(f"{key} is blank")
    return value


def _optional_text(record: dict[str, Any], key: str, default: str) -> str:
    value = record.get(key)
    if value is None or value == "":
        return default
    if not isinstance(value, str):
        raise TypeError(f"{key} must be text, got {value!r}")
    return value


def _images(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, list) or not all(isinstance(path, str) for path in value):
        raise TypeError(f"imagens must be a list of paths, got {value!r}")
    if len(value) > MAX_IMAGES:
        raise ValueError(f"too many images ({len(value)})")
    return tuple(value)


def _parse_price(value: Any) -> Decimal:
    # JSON numbers written by older versions come back as float
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise TypeError(f"invalid price {value!r}")
    try:
        price = Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"invalid price {value!r}") from exc
    if not price.is_finite() or price < 0:
        raise ValueError(f"invalid price {value!r}")
    return price


def parse_timestamp(value: str) -> datetime:
    """Parse ISO-8601 (including a trailing "Z"); naive values are taken as UTC."""
    if not isinstance(value, str):
        raise TypeError(f"timestamp must be text, got {value!r}")
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
