"""
DO Specifications API routes.

Weight difference, interest and late-lifting settlement per delivery order.
"""

from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, Query
import structlog

from models.do_specification import (
    CalculationResults,
    DOSpecificationCalculate,
    DOSpecificationCreate,
    DOSpecificationHistoryResponse,
    DOSpecificationListResponse,
    DOSpecificationResponse,
    Zone,
)
from models.base import PaginatedResponse
from services.do_specification_service import get_do_specification_service
from routes.dependencies import get_current_user_id, handle_error

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.post("", response_model=DOSpecificationResponse, status_code=201)
async def create_do_specification(
    data: DOSpecificationCreate,
    user_id: str = Depends(get_current_user_id),
):
    """
    Calculate and save a DO Specification.

    Raises:
        422: Invalid input (names the failing lot)
    """
    try:
        service = get_do_specification_service()
        return service.create(data, user_id)
    except Exception as e:
        return handle_error(e)


@router.post("/calculate", response_model=CalculationResults)
async def calculate_do_specification(
    data: DOSpecificationCalculate,
    user_id: str = Depends(get_current_user_id),
):
    """Preview the calculation without saving."""
    try:
        service = get_do_specification_service()
        return service.calculate(data)
    except Exception as e:
        return handle_error(e)


@router.get("", response_model=DOSpecificationListResponse)
async def list_do_specifications(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(10, ge=1, le=100, description="Items per page"),
    user_id: str = Depends(get_current_user_id),
):
    """List the caller's DO Specifications, newest first."""
    try:
        service = get_do_specification_service()
        specifications, total = service.get_all(user_id, page=page, page_size=page_size)
        return PaginatedResponse.create(
            data=specifications,
            total=total,
            page=page,
            page_size=page_size
        )
    except Exception as e:
        return handle_error(e)


@router.get("/history", response_model=DOSpecificationHistoryResponse)
async def get_do_specification_history(
    start_date: Optional[date] = Query(None, description="Created on or after"),
    end_date: Optional[date] = Query(None, description="Created on or before"),
    zone: Optional[Zone] = Query(None, description="Filter by zone"),
    user_id: str = Depends(get_current_user_id),
):
    """Compact history for charts and the history page."""
    try:
        service = get_do_specification_service()
        history = service.get_history(user_id, start_date=start_date, end_date=end_date, zone=zone)
        return DOSpecificationHistoryResponse(history=history, total_records=len(history))
    except Exception as e:
        return handle_error(e)


@router.get("/{specification_id}", response_model=DOSpecificationResponse)
async def get_do_specification(
    specification_id: str,
    user_id: str = Depends(get_current_user_id),
):
    """
    Get one DO Specification with customer details.

    Raises:
        404: Not found or owned by another user
    """
    try:
        service = get_do_specification_service()
        return service.get_by_id(specification_id, user_id)
    except Exception as e:
        return handle_error(e)
