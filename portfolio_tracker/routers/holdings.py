# portfolio_tracker/routers/holdings.py
"""
Holding management endpoints.

Writes go through the RefreshController so that:
- a holding is only stored if its ticker resolves to a quote
- the in-memory portfolio is reconciled right after every write

Reads list the persisted holdings directly.
"""

from fastapi import APIRouter, Depends, Request, status

from portfolio_tracker.dependencies import get_holding_repository, get_refresh_controller
from portfolio_tracker.middleware.rate_limit import (
    limiter,
    RATE_LIMIT_DEFAULT,
    RATE_LIMIT_WRITE,
)
from portfolio_tracker.schemas.holdings import (
    HoldingCreate,
    HoldingUpdate,
    HoldingResponse,
    MessageResponse,
)
from portfolio_tracker.services.holdings_repository import HoldingRepository
from portfolio_tracker.services.refresh import RefreshController
from portfolio_tracker.services.types import Holding

# =============================================================================
# ROUTER SETUP
# =============================================================================

router = APIRouter(
    prefix="/api/holdings",
    tags=["Holdings"],
)


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get(
    "",
    response_model=list[HoldingResponse],
    summary="List holdings",
    response_description="All holdings, most recently added first"
)
@limiter.limit(RATE_LIMIT_DEFAULT)
def list_holdings(
        request: Request,  # Required for rate limiting
        repository: HoldingRepository = Depends(get_holding_repository),
) -> list[Holding]:
    return repository.list()


@router.post(
    "",
    response_model=HoldingResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a holding",
    response_description="The stored holding"
)
@limiter.limit(RATE_LIMIT_WRITE)
async def create_holding(
        request: Request,  # Required for rate limiting
        holding: HoldingCreate,
        controller: RefreshController = Depends(get_refresh_controller),
) -> Holding:
    """
    Add a purchase lot.

    - **ticker**: Exchange-qualified symbol (e.g. RELIANCE.NS)
    - **quantity**: Units bought (>= 1)
    - **cost_basis_per_unit**: Average price paid per unit (>= 0)
    - **purchase_date**: Defaults to today
    - **owner**: Defaults to "Default User"

    The ticker must resolve to a live quote, otherwise nothing is stored
    and 400 is returned.
    """
    return await controller.add_holding(holding.to_input())


@router.put(
    "/{holding_id}",
    response_model=HoldingResponse,
    summary="Edit a holding",
    response_description="The updated holding"
)
@limiter.limit(RATE_LIMIT_WRITE)
async def update_holding(
        request: Request,  # Required for rate limiting
        holding_id: int,
        holding: HoldingUpdate,
        controller: RefreshController = Depends(get_refresh_controller),
) -> Holding:
    """
    Change any subset of a holding's fields.

    The resulting ticker is validated against the quote source before the
    change is stored.
    """
    return await controller.edit_holding(holding_id, holding.to_changes())


@router.delete(
    "/{holding_id}",
    response_model=MessageResponse,
    summary="Delete a holding",
)
@limiter.limit(RATE_LIMIT_WRITE)
async def delete_holding(
        request: Request,  # Required for rate limiting
        holding_id: int,
        controller: RefreshController = Depends(get_refresh_controller),
) -> MessageResponse:
    await controller.remove_holding(holding_id)
    return MessageResponse(message="Holding deleted")
