"""Catalog and transaction record models with Pydantic v2."""

from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, Field


def blank_to_none(v: Any) -> Any:
    """
    Normalize optional text cells.

    Tabular cells are always strings, so an absent optional value arrives as
    "" (or whitespace). Those become None; everything else is kept as-is.

    Args:
        v: The value to process.

    Returns:
        Any: None for blank strings, otherwise the original value.
    """
    if isinstance(v, str) and not v.strip():
        return None
    return v


OptionalText = Annotated[str | None, BeforeValidator(blank_to_none)]


class TransactionAction(str, Enum):
    """Kind of mutation a transaction log entry records."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    SALE = "sale"
    WHOLESALE = "wholesale"


class Item(BaseModel):
    """
    A catalog record: one stocked product line.

    Attributes:
        id: Local identifier. The importing store may reassign it.
        name: Display name (required, non-blank)
        code: Article code
        warehouse: Warehouse label
        number_of_boxes: Box count
        box_size_quantities: Per-box/per-size quantities as JSON text. Kept
            opaque here; the UI layer owns its schema.
        size_type: Size-type tag
        row: Optional row location
        position: Optional position location
        side: Optional side location
        image_uri: Optional path of the item's image file
        total_quantity: Aggregate quantity
        total_value: Aggregate monetary value. A negative value is the
            "price unknown" sentinel and is legitimate data.
        created_at: Unix timestamp in seconds
    """

    id: int | None = None
    name: str = Field(min_length=1)
    code: str = ""
    warehouse: str = ""
    number_of_boxes: int = 1
    box_size_quantities: str = "[]"
    size_type: str = ""
    row: OptionalText = None
    position: OptionalText = None
    side: OptionalText = None
    image_uri: OptionalText = None
    total_quantity: int = 0
    total_value: float = 0
    created_at: int | None = None

    @property
    def has_unknown_price(self) -> bool:
        """True when total_value carries the negative price sentinel."""
        return self.total_value < 0

    @property
    def staged_image_name(self) -> str | None:
        """
        Name of this item's image inside an export: ``<id>_<original file name>``.

        Returns:
            str | None: Staged file name, or None when the item has no image.
        """
        if not self.image_uri:
            return None
        original = self.image_uri.replace("\\", "/").rstrip("/").split("/")[-1]
        return f"{self.id}_{original or f'img_{self.id}'}"


class Transaction(BaseModel):
    """
    An immutable log entry describing a mutation applied to an item.

    ``item_name`` is denormalized so the entry survives deletion of the item.
    ``details`` is opaque JSON text passed through unchanged.
    """

    id: int | None = None
    action: TransactionAction
    item_id: int | None = None
    item_name: str = Field(min_length=1)
    timestamp: int
    details: OptionalText = None
