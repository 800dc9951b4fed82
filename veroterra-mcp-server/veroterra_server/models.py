"""Data models."""

from collections.abc import Mapping
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .numeric import sanitize_number


class Product(BaseModel):
    """Catalog product."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Product name (non-empty, trimmed)")
    price: float = Field(default=0.0, description="Unit price")
    pv: float = Field(default=0.0, description="Unit PV (loyalty points)")


class CatalogRecord(BaseModel):
    """
    One raw catalog row.

    Accepts both key conventions used by catalog files: capitalized
    (Name/Price/PV, as in the CSV header) and lowercase (name/price/pv,
    found in some JSON backups). The capitalized key wins unless its value
    is missing or blank, in which case the lowercase key is used.
    """

    model_config = ConfigDict(extra="ignore")

    name: str = ""
    price: float = 0.0
    pv: float = 0.0

    @model_validator(mode="before")
    @classmethod
    def _pick_keys(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        picked = {}
        for field, keys in (("name", ("Name", "name")), ("price", ("Price", "price")), ("pv", ("PV", "pv"))):
            for key in keys:
                value = data.get(key)
                if value is None or (isinstance(value, str) and not value.strip()):
                    continue
                picked[field] = value
                break
        return picked

    @field_validator("name", mode="before")
    @classmethod
    def _clean_name(cls, v: Any) -> str:
        if v is None:
            return ""
        return str(v).strip()

    @field_validator("price", "pv", mode="before")
    @classmethod
    def _clean_number(cls, v: Any) -> float:
        return sanitize_number(v)

    def to_product(self) -> Product:
        return Product(name=self.name, price=self.price, pv=self.pv)


class LineItem(BaseModel):
    """Order line. Totals are fixed when the line is created."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    price: float
    pv: float
    qty: int = Field(ge=1)
    total_price: float = Field(alias="totalPrice")
    total_pv: float = Field(alias="totalPV")


class Totals(BaseModel):
    """Order totals, recomputed from the full cart."""

    grand_price: float = Field(description="Sum of line totals plus flat shipping")
    grand_pv: float = Field(description="Sum of line PV totals")
    shipping: float = Field(description="Flat shipping included in grand_price")
    line_count: int = 0

    @property
    def grand_price_display(self) -> str:
        return f"{self.grand_price:.2f}"

    @property
    def grand_pv_display(self) -> str:
        return f"{self.grand_pv:.2f}"


class LoadResult(BaseModel):
    """Outcome of a catalog acquisition."""

    source: str = Field(description="Where the catalog was read from")
    loaded: bool = Field(description="True if the catalog was replaced")
    count: int = Field(description="Products in the active catalog after the attempt")
    message: str
    first: Optional[Product] = Field(None, description="First product of the new catalog")
