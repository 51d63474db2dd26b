from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from src.domain.errors import ValidationError

DEFAULT_CATEGORY = "outros"
DEFAULT_CONDITION = "usado"
MAX_IMAGES = 5

_CENTS = Decimal("0.01")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ListingDraft:
    """
    Unvalidated input for a new listing, as it arrives from the outside.

    `price` may be raw form text or a number; `images` holds public paths
    already produced by the upload adapter.
    """

    title: str | None = None
    description: str | None = None
    price: str | int | float | Decimal | None = None
    seller: str | None = None
    category: str | None = None
    contact: str | None = None
    condition: str | None = None
    images: tuple[str, ...] = ()


@dataclass(frozen=True)
class Listing:
    """
    A single marketplace item.

    Immutable: the only state change, retirement, returns a new value via
    `mark_sold`. `sold_at` is set if and only if `active` is False.
    """

    id: str
    title: str
    description: str
    price: Decimal
    seller: str
    category: str = DEFAULT_CATEGORY
    contact: str = ""
    condition: str = DEFAULT_CONDITION
    images: tuple[str, ...] = ()
    created_at: datetime = field(default_factory=_utcnow)
    active: bool = True
    sold_at: datetime | None = None

    # -------------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------------

    @classmethod
    def create_from_draft(
        cls,
        draft: ListingDraft,
        *,
        listing_id: str,
        created_at: datetime,
    ) -> "Listing":
        """Validate and normalize a draft. Raises ValidationError."""
        title = _clean(draft.title)
        description = _clean(draft.description)
        seller = _clean(draft.seller)
        if title is None or description is None or seller is None or _is_blank(draft.price):
            raise ValidationError()

        if len(draft.images) > MAX_IMAGES:
            raise ValidationError(f"Máximo de {MAX_IMAGES} imagens por produto")

        return cls(
            id=listing_id,
            title=title,
            description=description,
            price=parse_price(draft.price),
            seller=seller,
            category=_clean(draft.category) or DEFAULT_CATEGORY,
            contact=_clean(draft.contact) or "",
            condition=_clean(draft.condition) or DEFAULT_CONDITION,
            images=tuple(draft.images),
            created_at=created_at,
        )

    # -------------------------------------------------------------------------
    # Retirement
    # -------------------------------------------------------------------------

    def mark_sold(self, sold_at: datetime | None = None) -> "Listing":
        if not self.active:
            raise ValueError(f"Listing {self.id} is already sold.")
        return replace(self, active=False, sold_at=sold_at or _utcnow())


def parse_price(raw: str | int | float | Decimal | None) -> Decimal:
    """
    Parse a price given as form text or a number into a non-negative Decimal
    rounded to cents. Accepts a comma decimal separator ("150,00").
    """
    if isinstance(raw, bool) or raw is None:
        raise ValidationError("Preço inválido")
    if isinstance(raw, str):
        text = raw.strip()
        if "," in text and "." not in text:
            text = text.replace(",", ".")
    else:
        text = str(raw)

    try:
        value = Decimal(text)
    except InvalidOperation as exc:
        raise ValidationError("Preço inválido") from exc

    if not value.is_finite() or value < 0:
        raise ValidationError("Preço inválido")
    try:
        return value.quantize(_CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation as exc:
        raise ValidationError("Preço inválido") from exc


def _is_blank(value: object) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None
