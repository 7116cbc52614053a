"""
API Routes for recurring obligations.

Provides endpoints to:
- Open a budget period (sync, reconcile and annotate)
- List, create, edit, pause and delete obligations
- Pay upcoming occurrences in advance

The owner is passed as ``user_id``; authentication happens upstream.
"""

from typing import List
from fastapi import APIRouter, Depends, HTTPException, Query, status

from ledgerflow.data.budgets.schemas import PeriodView
from ledgerflow.data.obligations.schemas import (
    ObligationCreate,
    ObligationRead,
    ObligationUpdate,
    PayableOccurrence,
    PayFutureRequest,
    PayFutureResponse,
    ToggleObligationRequest,
)
from ledgerflow.errors import NotFoundError, RecurringEngineError, ValidationError

from .pipeline import RecurringEngine, get_engine

router = APIRouter()


def _http_error(e: RecurringEngineError) -> HTTPException:
    if isinstance(e, ValidationError):
        return HTTPException(status_code=422, detail=e.message)
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=404, detail=e.message)
    return HTTPException(status_code=500, detail=f"Recurring engine error: {e.message}")


# =============================================================================
# Budget periods
# =============================================================================

@router.get("/periods/{year}/{month}", response_model=PeriodView)
async def open_period(
    year: int,
    month: int,
    user_id: str = Query(..., description="Owner of the period"),
    engine: RecurringEngine = Depends(get_engine),
):
    """
    Open a budget period.

    Synchronizes the Bills/Subscriptions categories, creates any recurring
    entries owed up to today and returns every obligation with its status.
    Sync problems are reported in ``errors`` rather than failing the request.
    """
    try:
        return await engine.open_period(user_id, year, month)
    except RecurringEngineError as e:
        raise _http_error(e)


# =============================================================================
# Obligations
# =============================================================================

@router.get("/obligations", response_model=List[ObligationRead])
async def list_obligations(
    user_id: str = Query(...),
    engine: RecurringEngine = Depends(get_engine),
):
    """List a user's obligations, soonest due first."""
    try:
        return await engine.list_obligations(user_id)
    except RecurringEngineError as e:
        raise _http_error(e)


@router.post("/obligations", response_model=ObligationRead, status_code=status.HTTP_201_CREATED)
async def create_obligation(
    data: ObligationCreate,
    user_id: str = Query(...),
    engine: RecurringEngine = Depends(get_engine),
):
    """Create an obligation and re-sync the current month."""
    try:
        return await engine.create_obligation(user_id, data)
    except RecurringEngineError as e:
        raise _http_error(e)


@router.patch("/obligations/{obligation_id}", response_model=ObligationRead)
async def update_obligation(
    obligation_id: str,
    updates: ObligationUpdate,
    engine: RecurringEngine = Depends(get_engine),
):
    """Edit an obligation. Only the fields sent are changed."""
    try:
        return await engine.update_obligation(obligation_id, updates)
    except RecurringEngineError as e:
        raise _http_error(e)


@router.delete("/obligations/{obligation_id}")
async def delete_obligation(
    obligation_id: str,
    engine: RecurringEngine = Depends(get_engine),
):
    """Delete an obligation. Entries it created are kept, unlinked."""
    try:
        deleted = await engine.delete_obligation(obligation_id)
    except RecurringEngineError as e:
        raise _http_error(e)

    if not deleted:
        raise HTTPException(status_code=500, detail="Failed to delete obligation")
    return {"success": True, "obligation_id": obligation_id}


@router.post("/obligations/{obligation_id}/toggle")
async def toggle_obligation(
    obligation_id: str,
    request: ToggleObligationRequest,
    engine: RecurringEngine = Depends(get_engine),
):
    """Activate or pause an obligation."""
    try:
        toggled = await engine.toggle_obligation(obligation_id, request.is_active)
    except RecurringEngineError as e:
        raise _http_error(e)

    if not toggled:
        raise HTTPException(status_code=500, detail="Failed to update obligation")
    return {"success": True, "obligation_id": obligation_id, "is_active": request.is_active}


# =============================================================================
# Advance payments
# =============================================================================

@router.get("/obligations/{obligation_id}/payable", response_model=List[PayableOccurrence])
async def list_payable(
    obligation_id: str,
    limit: int = Query(12, ge=1, le=60),
    engine: RecurringEngine = Depends(get_engine),
):
    """Occurrences of the current month that can be paid ahead."""
    try:
        return await engine.payable(obligation_id, limit=limit)
    except RecurringEngineError as e:
        raise _http_error(e)


@router.post("/obligations/{obligation_id}/pay-future", response_model=PayFutureResponse)
async def pay_future(
    obligation_id: str,
    request: PayFutureRequest,
    engine: RecurringEngine = Depends(get_engine),
):
    """
    Pay the next ``count`` occurrences in one batch.

    Either every entry is created and the due date moves forward, or nothing
    changes and ``success`` is false.
    """
    try:
        result = await engine.schedule_payments(obligation_id, request.count)
    except RecurringEngineError as e:
        raise _http_error(e)

    return PayFutureResponse(**result.to_dict())
