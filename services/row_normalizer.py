"""
Row normalization for product uploads.

Turns one raw spreadsheet row into a CandidateProduct, or rejects it.
Rejection is silent: the row is dropped and counted, with no per-row error.
"""

from decimal import InvalidOperation
from typing import Any, Iterable, Optional
import structlog

from config import settings
from models.product import CandidateProduct
from models.reconciliation import NormalizationReport
from parsers.spreadsheet_parser import RawRow
from utils.text_utils import cell_text, parse_number, round_half_up

logger = structlog.get_logger(__name__)


class RowNormalizer:
    """
    Validates raw rows against the supplier column layout.

    Pure: the same row always yields the same result.
    """

    def __init__(
        self,
        name_column: Optional[str] = None,
        natural_key_column: Optional[str] = None,
        price_column: Optional[str] = None,
    ):
        self.name_column = name_column or settings.name_column
        self.natural_key_column = natural_key_column or settings.natural_key_column
        self.price_column = price_column or settings.price_column

    def normalize(self, row: RawRow) -> Optional[CandidateProduct]:
        """
        Convert one row to a candidate.

        Name and barcode are trimmed. Price is parsed, rounded half-up to an
        integer and floored at zero.

        Returns:
            CandidateProduct, or None if name or barcode is empty or the
            price is not positive (an unparsable price counts as zero)
        """
        name = cell_text(row.get(self.name_column))
        natural_key = cell_text(row.get(self.natural_key_column))

        unit_price = self._unit_price(row.get(self.price_column))

        if not name or not natural_key or unit_price <= 0:
            return None

        return CandidateProduct(
            name=name,
            natural_key=natural_key,
            unit_price=unit_price
        )

    @staticmethod
    def _unit_price(value: Any) -> int:
        """Integer price floored at zero; 0 when unparsable or too large to round."""
        price = parse_number(value)
        if price is None:
            return 0
        try:
            return max(0, round_half_up(price))
        except InvalidOperation:
            return 0

    def normalize_rows(self, rows: Iterable[RawRow]) -> NormalizationReport:
        """Normalize every row, keeping accepted candidates in row order."""
        report = NormalizationReport()

        for row in rows:
            candidate = self.normalize(row)
            if candidate is None:
                report.rejected += 1
                continue
            report.candidates.append(candidate)
            report.accepted += 1

        logger.info(
            "rows_normalized",
            accepted=report.accepted,
            rejected=report.rejected
        )

        return report
