"""
Resin Lots API Endpoints.

Endpoints for listing, saving, deleting and exporting resin lots.
Saving or deleting a lot refreshes the monthly profit map.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response

from api.dependencies import get_session
from api.models import (
    DeleteResponse,
    ResinLotListResponse,
    ResinLotRequest,
    ResinLotResponse,
    ResinLotSaveResponse,
    notifications_from,
)
from domain.exceptions import PersistenceFailure, ValidationError
from services.csv_export_service import export_resin_lots_csv
from services.order_session import OrderTrackingSession

router = APIRouter()


@router.get(
    "/resin-lots",
    response_model=ResinLotListResponse,
    summary="List Resin Lots",
    description="All resin lots of the owner, most recent purchase first."
)
def list_resin_lots(session: OrderTrackingSession = Depends(get_session)):
    items = [ResinLotResponse.from_domain(lot) for lot in session.state.resin_lots]
    return ResinLotListResponse(items=items, total_count=len(items))


@router.get(
    "/resin-lots/export",
    summary="Export Resin Lots CSV",
    response_class=Response
)
def export_resin_lots(session: OrderTrackingSession = Depends(get_session)):
    return Response(
        content=export_resin_lots_csv(session.state.resin_lots),
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=resin_lots.csv"}
    )


@router.post(
    "/resin-lots",
    response_model=ResinLotSaveResponse,
    summary="Save Resin Lot",
    description="Create a resin lot, or update it when the body carries an existing id."
)
def save_resin_lot(
    request: ResinLotRequest,
    session: OrderTrackingSession = Depends(get_session),
):
    """
    Save a resin lot.

    **Example request:**
    ```json
    {
      "purchase_date": "2024-01-01",
      "end_date": "2024-01-31",
      "quantity": "2",
      "cost": "50.00",
      "status": "E"
    }
    ```

    The gross revenue sent here is kept until the next sale item change
    recomputes it from the sales inside the lot's interval.
    """
    try:
        lot = session.save_resin_lot(request.model_dump())
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except PersistenceFailure as e:
        raise HTTPException(status_code=502, detail=f"Failed to save resin lot: {str(e)}")

    return ResinLotSaveResponse(
        resin_lot=ResinLotResponse.from_domain(lot),
        notifications=notifications_from(session.notify.drain()),
    )


@router.delete(
    "/resin-lots/{lot_id}",
    response_model=DeleteResponse,
    summary="Delete Resin Lot"
)
def delete_resin_lot(lot_id: UUID, session: OrderTrackingSession = Depends(get_session)):
    if not any(lot.lot_id == lot_id for lot in session.state.resin_lots):
        raise HTTPException(status_code=404, detail=f"Resin lot not found: {lot_id}")

    if not session.delete_resin_lot(lot_id):
        raise HTTPException(status_code=502, detail="Failed to delete resin lot")

    return DeleteResponse(deleted=True, notifications=notifications_from(session.notify.drain()))
