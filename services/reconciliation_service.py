"""
Reconciliation of uploaded product spreadsheets.

Flow:
    raw rows → RowNormalizer → duplicate policy → BarcodeResolver
    → create the New subset concurrently → catalog + barcode mappings

Products the backend already knows are reused (no creation call) and mapped
to their stored canonical barcode. Each creation is independent: a failure
is reported in the result and does not stop the others.
"""

import asyncio
from collections import Counter
from typing import Optional, Union
import structlog

from config import settings
from integrations.backend_client import BackendClient
from models.product import (
    BarcodeMapping,
    CandidateProduct,
    CanonicalProduct,
    ExistingProduct,
    NewProduct,
)
from models.reconciliation import (
    CreationFailure,
    DuplicateKeyPolicy,
    ReconciliationResult,
)
from parsers.spreadsheet_parser import RawRow
from services.barcode_resolver import BarcodeResolver
from services.row_normalizer import RowNormalizer

logger = structlog.get_logger(__name__)


def apply_duplicate_policy(
    candidates: list[CandidateProduct],
    policy: DuplicateKeyPolicy,
) -> tuple[list[CandidateProduct], list[str]]:
    """
    Handle candidates sharing a natural key.

    Args:
        candidates: Candidates in row order
        policy: What to keep when a key repeats

    Returns:
        Tuple of (kept candidates in row order, duplicated keys in order of
        first appearance)
    """
    counts = Counter(c.natural_key for c in candidates)
    duplicate_keys = list(dict.fromkeys(
        c.natural_key for c in candidates if counts[c.natural_key] > 1
    ))

    if not duplicate_keys or policy == DuplicateKeyPolicy.KEEP_ALL:
        return list(candidates), duplicate_keys

    if policy == DuplicateKeyPolicy.REJECT:
        dupes = set(duplicate_keys)
        return [c for c in candidates if c.natural_key not in dupes], duplicate_keys

    ordered = candidates if policy == DuplicateKeyPolicy.FIRST_WINS else list(reversed(candidates))
    seen: set[str] = set()
    kept = []
    for candidate in ordered:
        if candidate.natural_key in seen:
            continue
        seen.add(candidate.natural_key)
        kept.append(candidate)

    if policy == DuplicateKeyPolicy.LAST_WINS:
        kept.reverse()

    return kept, duplicate_keys


class ReconciliationCoordinator:
    """
    Runs one reconciliation of raw spreadsheet rows.

    The caller owns the resulting catalog and mappings (see UploadSession).
    """

    def __init__(
        self,
        backend: BackendClient,
        normalizer: Optional[RowNormalizer] = None,
        resolver: Optional[BarcodeResolver] = None,
        duplicate_policy: Optional[Union[DuplicateKeyPolicy, str]] = None,
        max_concurrency: Optional[int] = None,
    ):
        self.backend = backend
        self.normalizer = normalizer or RowNormalizer()
        self.max_concurrency = max_concurrency or settings.max_concurrent_requests
        self.resolver = resolver or BarcodeResolver(backend, max_concurrency=self.max_concurrency)
        self.duplicate_policy = DuplicateKeyPolicy(duplicate_policy or settings.duplicate_key_policy)

    async def reconcile(self, raw_rows: list[RawRow]) -> ReconciliationResult:
        """
        Reconcile uploaded rows against the backend.

        Args:
            raw_rows: Rows as read from the spreadsheet

        Returns:
            ReconciliationResult with catalog (existing first, then created),
            the mappings recorded in this run, counts, and failed creations
        """
        logger.info("reconciliation_started", row_count=len(raw_rows))

        report = self.normalizer.normalize_rows(raw_rows)
        candidates, duplicate_keys = apply_duplicate_policy(report.candidates, self.duplicate_policy)

        if duplicate_keys:
            logger.warning(
                "duplicate_natural_keys",
                keys=duplicate_keys,
                policy=self.duplicate_policy.value,
                dropped=len(report.candidates) - len(candidates)
            )

        resolved = await self.resolver.resolve(candidates)

        existing = [r for r in resolved if isinstance(r, ExistingProduct)]
        to_create = [r.candidate for r in resolved if isinstance(r, NewProduct)]

        mappings = [
            BarcodeMapping(natural_key=e.natural_key, canonical_barcode=e.product.barcode)
            for e in existing
        ]

        created, failures = await self._create_all(to_create)

        mappings.extend(
            BarcodeMapping(natural_key=candidate.natural_key, canonical_barcode=product.barcode)
            for candidate, product in created
        )

        result = ReconciliationResult(
            catalog=[e.product for e in existing] + [product for _, product in created],
            mappings=mappings,
            created_count=len(created),
            reused_count=len(existing),
            accepted_count=report.accepted,
            rejected_count=report.rejected + (len(report.candidates) - len(candidates)),
            failures=failures,
            duplicate_keys=duplicate_keys,
        )

        logger.info(
            "reconciliation_complete",
            created=result.created_count,
            reused=result.reused_count,
            rejected=result.rejected_count,
            failed=len(failures)
        )

        return result

    async def _create_all(
        self,
        candidates: list[CandidateProduct],
    ) -> tuple[list[tuple[CandidateProduct, CanonicalProduct]], list[CreationFailure]]:
        """Create every candidate concurrently; pair each outcome with its candidate."""
        if not candidates:
            return [], []

        logger.info("creating_products", count=len(candidates))

        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def _create_one(
            candidate: CandidateProduct,
        ) -> tuple[CandidateProduct, Optional[CanonicalProduct], Optional[str]]:
            async with semaphore:
                try:
                    product = await self.backend.create_product(candidate)
                except Exception as e:
                    logger.error(
                        "create_product_failed",
                        natural_key=candidate.natural_key,
                        error=str(e)
                    )
                    return candidate, None, str(e)
            return candidate, product, None

        outcomes = await asyncio.gather(*(_create_one(c) for c in candidates))

        created = [(candidate, product) for candidate, product, _ in outcomes if product is not None]
        failures = [
            CreationFailure(natural_key=candidate.natural_key, error=error)
            for candidate, product, error in outcomes
            if product is None
        ]
        return created, failures
