"""
Reconciliation run results.
"""

from dataclasses import dataclass, field
from enum import Enum

from pydantic import Field

from models.base import BaseSchema
from models.product import BarcodeMapping, CandidateProduct, CanonicalProduct


class DuplicateKeyPolicy(str, Enum):
    """What to do with rows sharing a barcode within one upload."""
    KEEP_ALL = "keep_all"        # Resolve and create each row independently
    FIRST_WINS = "first_wins"
    LAST_WINS = "last_wins"
    REJECT = "reject"            # Drop every row of a duplicated barcode


@dataclass
class NormalizationReport:
    """Accepted candidates plus accepted/rejected row counts."""
    candidates: list[CandidateProduct] = field(default_factory=list)
    accepted: int = 0
    rejected: int = 0


@dataclass(frozen=True)
class CreationFailure:
    """A new product whose creation call failed."""
    natural_key: str
    error: str


class ReconciliationResult(BaseSchema):
    """Outcome of one spreadsheet reconciliation run."""

    catalog: list[CanonicalProduct] = Field(
        default_factory=list,
        description="Existing products first, then newly created ones"
    )
    mappings: list[BarcodeMapping] = Field(
        default_factory=list,
        description="Mappings recorded during this run"
    )
    created_count: int = Field(0, ge=0)
    reused_count: int = Field(0, ge=0)
    accepted_count: int = Field(0, ge=0, description="Rows that passed normalization")
    rejected_count: int = Field(0, ge=0, description="Rows dropped by normalization or duplicate policy")
    failures: list[CreationFailure] = Field(
        default_factory=list,
        description="Creation calls that failed; these products are not in the catalog"
    )
    duplicate_keys: list[str] = Field(
        default_factory=list,
        description="Barcodes that appeared on more than one accepted row"
    )

    @property
    def summary(self) -> str:
        """User-facing one-liner."""
        text = f"{self.created_count} new, {self.reused_count} existing products added"
        if self.failures:
            text += f", {len(self.failures)} failed"
        return text
