"""Upload API routes."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import JSONResponse

from portfolio_upload.models.batch import Aborted, UploadCategory, UploadItem, UtilityType
from portfolio_upload.models.upload import UploadResult
from portfolio_upload.services.reporting.client import get_reporting_client
from portfolio_upload.services.upload.orchestrator import BatchUploadOrchestrator
from portfolio_upload.storage.factory import get_object_store

router = APIRouter(prefix="/api/upload", tags=["upload"])
logger = logging.getLogger(__name__)

UPLOAD_FAILED_MESSAGE = "Upload cancelled due to internal server error."

RESPONSES = {500: {"model": UploadResult, "description": "Batch aborted and rolled back"}}


def get_orchestrator() -> BatchUploadOrchestrator:
    """Build the orchestrator for one request."""
    try:
        store = get_object_store()
    except ValueError as e:
        logger.error(f"Storage backend configuration error: {e}")
        raise HTTPException(status_code=500, detail="Storage configuration error")
    return BatchUploadOrchestrator(store, get_reporting_client())


async def upload_batch(
    orchestrator: BatchUploadOrchestrator,
    files: list[UploadFile],
    category: UploadCategory,
    reference: str,
    *,
    account_id: Optional[str] = None,
    utility: Optional[UtilityType] = None,
) -> JSONResponse:
    """Run one batch and translate the outcome into the HTTP response."""
    items = [UploadItem(stream=file.file, filename=file.filename or "unnamed") for file in files]

    try:
        outcome = await orchestrator.run(
            items, category, reference, account_id=account_id, utility=utility
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if isinstance(outcome, Aborted):
        logger.error(f"Upload batch aborted: {outcome.reason}")
        result = UploadResult(success=False, error=UPLOAD_FAILED_MESSAGE)
        return JSONResponse(status_code=500, content=result.model_dump(by_alias=True))

    result = UploadResult(success=True, uploaded_files=outcome.file_names)
    return JSONResponse(status_code=200, content=result.model_dump(by_alias=True))


@router.post("/supply/gas/{portfolio_id}", response_model=UploadResult, responses=RESPONSES)
async def upload_gas_supply_meter_data(
    portfolio_id: str,
    files: list[UploadFile] = File(...),
    account_id: Optional[str] = Form(None),
    orchestrator: BatchUploadOrchestrator = Depends(get_orchestrator),
) -> JSONResponse:
    return await upload_batch(
        orchestrator, files, UploadCategory.METER_SUPPLY_DATA, portfolio_id,
        account_id=account_id, utility=UtilityType.GAS,
    )


@router.post("/supply/electricity/{portfolio_id}", response_model=UploadResult, responses=RESPONSES)
async def upload_electricity_supply_meter_data(
    portfolio_id: str,
    files: list[UploadFile] = File(...),
    account_id: Optional[str] = Form(None),
    orchestrator: BatchUploadOrchestrator = Depends(get_orchestrator),
) -> JSONResponse:
    return await upload_batch(
        orchestrator, files, UploadCategory.METER_SUPPLY_DATA, portfolio_id,
        account_id=account_id, utility=UtilityType.ELECTRICITY,
    )


@router.post("/historic/{portfolio_id}", response_model=UploadResult, responses=RESPONSES)
async def upload_historic(
    portfolio_id: str,
    files: list[UploadFile] = File(...),
    orchestrator: BatchUploadOrchestrator = Depends(get_orchestrator),
) -> JSONResponse:
    return await upload_batch(orchestrator, files, UploadCategory.HISTORIC, portfolio_id)


@router.post("/loa/{portfolio_id}", response_model=UploadResult, responses=RESPONSES)
async def upload_letter_of_authority(
    portfolio_id: str,
    files: list[UploadFile] = File(...),
    account_id: Optional[str] = Form(None),
    orchestrator: BatchUploadOrchestrator = Depends(get_orchestrator),
) -> JSONResponse:
    return await upload_batch(
        orchestrator, files, UploadCategory.LETTER_OF_AUTHORITY, portfolio_id, account_id=account_id
    )


@router.post("/sites/{portfolio_id}", response_model=UploadResult, responses=RESPONSES)
async def upload_site_list(
    portfolio_id: str,
    files: list[UploadFile] = File(...),
    account_id: Optional[str] = Form(None),
    orchestrator: BatchUploadOrchestrator = Depends(get_orchestrator),
) -> JSONResponse:
    return await upload_batch(
        orchestrator, files, UploadCategory.SITE_LIST, portfolio_id, account_id=account_id
    )


@router.post("/backing/{tender_id}/gas", response_model=UploadResult, responses=RESPONSES)
async def upload_gas_backing_sheet(
    tender_id: str,
    files: list[UploadFile] = File(...),
    orchestrator: BatchUploadOrchestrator = Depends(get_orchestrator),
) -> JSONResponse:
    return await upload_batch(
        orchestrator, files, UploadCategory.BACKING_SHEET, tender_id, utility=UtilityType.GAS
    )


@router.post("/backing/{tender_id}/electricity", response_model=UploadResult, responses=RESPONSES)
async def upload_electricity_backing_sheet(
    tender_id: str,
    files: list[UploadFile] = File(...),
    orchestrator: BatchUploadOrchestrator = Depends(get_orchestrator),
) -> JSONResponse:
    return await upload_batch(
        orchestrator, files, UploadCategory.BACKING_SHEET, tender_id, utility=UtilityType.ELECTRICITY
    )


@router.post("/offer/{tender_id}", response_model=UploadResult, responses=RESPONSES)
async def upload_offer(
    tender_id: str,
    files: list[UploadFile] = File(...),
    orchestrator: BatchUploadOrchestrator = Depends(get_orchestrator),
) -> JSONResponse:
    return await upload_batch(orchestrator, files, UploadCategory.OFFER, tender_id)


@router.post("/topline/{portfolio_id}", response_model=UploadResult, responses=RESPONSES)
async def upload_topline(
    portfolio_id: str,
    files: list[UploadFile] = File(...),
    orchestrator: BatchUploadOrchestrator = Depends(get_orchestrator),
) -> JSONResponse:
    return await upload_batch(orchestrator, files, UploadCategory.TOPLINE, portfolio_id)
