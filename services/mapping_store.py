"""
Barcode mapping store and upload session state.

The mapping store lives exactly as long as its UploadSession. It only grows:
mappings are appended, never edited or removed, and appending a pair that
is already present is a no-op.
"""

from typing import Iterable, Optional
import structlog

from models.product import BarcodeMapping, CanonicalProduct
from models.reconciliation import ReconciliationResult

logger = structlog.get_logger(__name__)


class BarcodeMappingStore:
    """Append-only supplier barcode → canonical barcode table."""

    def __init__(self):
        self._mappings: list[BarcodeMapping] = []
        self._seen: set[BarcodeMapping] = set()

    def __len__(self) -> int:
        return len(self._mappings)

    def __contains__(self, mapping: object) -> bool:
        return mapping in self._seen

    def append(self, mappings: Iterable[BarcodeMapping]) -> int:
        """
        Append mappings in order, skipping exact duplicates.

        Returns:
            Number of mappings actually added
        """
        added = 0
        for mapping in mappings:
            if mapping in self._seen:
                continue
            self._seen.add(mapping)
            self._mappings.append(mapping)
            added += 1
        return added

    def all(self) -> list[BarcodeMapping]:
        """Every mapping, oldest first."""
        return list(self._mappings)

    def canonical_for(self, natural_key: str) -> Optional[str]:
        """Most recently recorded canonical barcode for a supplier barcode."""
        for mapping in reversed(self._mappings):
            if mapping.natural_key == natural_key:
                return mapping.canonical_barcode
        return None

    def as_dict(self) -> dict[str, str]:
        """Latest canonical barcode per supplier barcode."""
        return {m.natural_key: m.canonical_barcode for m in self._mappings}


class UploadSession:
    """
    Catalog and mapping table of one upload session.

    The catalog is replaced wholesale after each reconciliation run; the
    mapping table accumulates across runs.
    """

    def __init__(self):
        self.catalog: list[CanonicalProduct] = []
        self.mappings = BarcodeMappingStore()
        self.runs = 0

    def record(self, result: ReconciliationResult) -> None:
        """Adopt a run's catalog and append its mappings."""
        self.catalog = list(result.catalog)
        added = self.mappings.append(result.mappings)
        self.runs += 1

        logger.info(
            "upload_session_updated",
            run=self.runs,
            catalog_size=len(self.catalog),
            mappings_added=added,
            mappings_total=len(self.mappings)
        )
