"""
Product schemas: spreadsheet candidates, canonical backend products, and the
resolution/mapping value objects produced during reconciliation.
"""

from dataclasses import dataclass
from typing import Any, Optional, Union

from pydantic import Field

from models.base import WireSchema


@dataclass(frozen=True)
class CandidateProduct:
    """
    A validated spreadsheet row awaiting resolution.

    natural_key is the supplier-printed barcode; it is never persisted as the
    canonical identifier.
    """
    name: str
    natural_key: str
    unit_price: int

    def to_create_payload(self) -> dict[str, Any]:
        """Body for POST /products, with the backend's required defaults."""
        return {
            "name": self.name,
            "barcode": self.natural_key,
            "unitPrice": self.unit_price,
            "width": 0,
            "height": 0,
            "depth": 0,
            "Weight": 0,
            "Expiration": False,
            "ExpirationDate": None,
        }


class CanonicalProduct(WireSchema):
    """
    Product as known to the backend.

    Only id and barcode are required: a stored product must classify as
    existing even when its other fields are incomplete or fractional.
    """

    id: int = Field(..., description="Server-assigned product id")
    barcode: str = Field(..., description="Canonical barcode assigned by the backend")
    name: Optional[str] = Field(None, description="Product name")
    unit_price: float = Field(0, alias="unitPrice", description="Net unit price")


@dataclass(frozen=True)
class ExistingProduct:
    """Candidate matched to a product the backend already knows."""
    product: CanonicalProduct
    natural_key: str


@dataclass(frozen=True)
class NewProduct:
    """Candidate with no backend match; will be created."""
    candidate: CandidateProduct

    @property
    def natural_key(self) -> str:
        return self.candidate.natural_key


ResolvedProduct = Union[ExistingProduct, NewProduct]


@dataclass(frozen=True)
class BarcodeMapping:
    """Supplier barcode to canonical barcode."""
    natural_key: str
    canonical_barcode: str
