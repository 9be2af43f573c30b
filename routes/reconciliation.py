"""
Product upload and reconciliation routes.

POST /api/reconciliation/upload   - Reconcile a supplier spreadsheet
GET  /api/reconciliation/catalog  - Catalog from the latest upload
GET  /api/reconciliation/mappings - Every barcode mapping of this session
"""

from io import BytesIO

from fastapi import APIRouter, File, UploadFile
import structlog

from models.product import CanonicalProduct
from models.reconciliation import ReconciliationResult
from parsers.spreadsheet_parser import read_spreadsheet_rows
from routes.errors import handle_error
from services.workspace import get_workspace

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/reconciliation", tags=["Reconciliation"])


@router.post("/upload", response_model=ReconciliationResult)
async def upload_products(file: UploadFile = File(..., description="Supplier price list (.xlsx or .csv)")):
    """
    Reconcile an uploaded product spreadsheet.

    Known barcodes are reused, unknown ones are created. The session catalog
    is replaced with the result and the mappings are appended.

    Raises:
        422: File could not be read, or it has no valid product rows
    """
    try:
        content = await file.read()
        rows = read_spreadsheet_rows(BytesIO(content), filename=file.filename)

        result = await get_workspace().upload(rows)

        logger.info(
            "upload_reconciled",
            filename=file.filename,
            summary=result.summary
        )
        return result

    except Exception as e:
        return handle_error(e)


@router.get("/catalog", response_model=list[CanonicalProduct])
async def get_catalog():
    """Products available for order building."""
    return get_workspace().uploads.catalog


@router.get("/mappings")
async def get_mappings():
    """Supplier barcode → canonical barcode pairs, oldest first."""
    mappings = get_workspace().uploads.mappings.all()
    return {
        "data": [
            {"natural_key": m.natural_key, "canonical_barcode": m.canonical_barcode}
            for m in mappings
        ],
        "total": len(mappings)
    }
