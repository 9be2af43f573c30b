"""
Barcode resolution against known inventory.

Each candidate is looked up by its supplier barcode, all lookups running
concurrently. A match makes the candidate Existing. No match, or a failed
lookup, makes it New: a transient error means the product gets created
again rather than the whole upload failing.
"""

import asyncio
from typing import Optional
import structlog

from config import settings
from integrations.backend_client import BackendClient
from models.product import (
    CandidateProduct,
    ExistingProduct,
    NewProduct,
    ResolvedProduct,
)

logger = structlog.get_logger(__name__)


class BarcodeResolver:
    """Classifies candidates as existing or new."""

    def __init__(self, backend: BackendClient, max_concurrency: Optional[int] = None):
        self.backend = backend
        self.max_concurrency = max_concurrency or settings.max_concurrent_requests

    async def resolve(self, candidates: list[CandidateProduct]) -> list[ResolvedProduct]:
        """
        Resolve every candidate.

        Lookups are independent: one failing or missing never cancels or
        alters another. Each result carries its natural key; match results
        by key, not by position.

        Args:
            candidates: Normalized candidates

        Returns:
            One ExistingProduct or NewProduct per candidate
        """
        if not candidates:
            return []

        logger.info("resolving_barcodes", count=len(candidates))

        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def _bounded(candidate: CandidateProduct) -> ResolvedProduct:
            async with semaphore:
                return await self._resolve_one(candidate)

        resolved = await asyncio.gather(*(_bounded(c) for c in candidates))

        existing = sum(1 for r in resolved if isinstance(r, ExistingProduct))
        logger.info(
            "barcodes_resolved",
            existing=existing,
            new=len(resolved) - existing
        )

        return list(resolved)

    async def _resolve_one(self, candidate: CandidateProduct) -> ResolvedProduct:
        try:
            matches = await self.backend.lookup_product_by_natural_key(candidate.natural_key)
        except Exception as e:
            logger.warning(
                "barcode_lookup_failed_treating_as_new",
                natural_key=candidate.natural_key,
                error=str(e)
            )
            return NewProduct(candidate=candidate)

        if not matches:
            return NewProduct(candidate=candidate)

        return ExistingProduct(product=matches[0], natural_key=candidate.natural_key)
