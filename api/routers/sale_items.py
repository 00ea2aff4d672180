"""
Sale Items API Endpoints.

Endpoints for listing, saving, deleting and exporting sale items.
Any change here recomputes the gross revenue of the resin lots whose
interval contains the sale, then the monthly profit.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response

from api.dependencies import get_session
from api.models import (
    DeleteResponse,
    SaleItemListResponse,
    SaleItemRequest,
    SaleItemResponse,
    SaleItemSaveResponse,
    notifications_from,
)
from domain.exceptions import PersistenceFailure, ValidationError
from services.csv_export_service import export_sale_items_csv
from services.order_session import OrderTrackingSession

router = APIRouter()


@router.get(
    "/sale-items",
    response_model=SaleItemListResponse,
    summary="List Sale Items",
    description="All sale items of the owner, most recent sale first."
)
def list_sale_items(session: OrderTrackingSession = Depends(get_session)):
    items = [SaleItemResponse.from_domain(item) for item in session.state.sale_items]
    return SaleItemListResponse(items=items, total_count=len(items))


@router.get(
    "/sale-items/export",
    summary="Export Sale Items CSV",
    response_class=Response
)
def export_sale_items(session: OrderTrackingSession = Depends(get_session)):
    return Response(
        content=export_sale_items_csv(session.state.sale_items),
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=sale_items.csv"}
    )


@router.post(
    "/sale-items",
    response_model=SaleItemSaveResponse,
    summary="Save Sale Item",
    description="Create a sale item, or update it when the body carries an existing id."
)
def save_sale_item(
    request: SaleItemRequest,
    session: OrderTrackingSession = Depends(get_session),
):
    """
    Save a sale item.

    When `buyer_name` is set and no `client_id` is given, the buyer is
    matched to a client by case-insensitive name; an unknown name creates a
    new client.

    **Example request:**
    ```json
    {
      "item_name": "Dragon keychain",
      "price": "25.00",
      "location": "T",
      "sale_date": "2024-01-10",
      "buyer_name": "Ana"
    }
    ```
    """
    try:
        item = session.save_sale_item(request.model_dump())
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except PersistenceFailure as e:
        raise HTTPException(status_code=502, detail=f"Failed to save sale item: {str(e)}")

    return SaleItemSaveResponse(
        sale_item=SaleItemResponse.from_domain(item),
        notifications=notifications_from(session.notify.drain()),
    )


@router.delete(
    "/sale-items/{sale_item_id}",
    response_model=DeleteResponse,
    summary="Delete Sale Item"
)
def delete_sale_item(sale_item_id: UUID, session: OrderTrackingSession = Depends(get_session)):
    if not any(item.sale_item_id == sale_item_id for item in session.state.sale_items):
        raise HTTPException(status_code=404, detail=f"Sale item not found: {sale_item_id}")

    if not session.delete_sale_item(sale_item_id):
        raise HTTPException(status_code=502, detail="Failed to delete sale item")

    return DeleteResponse(deleted=True, notifications=notifications_from(session.notify.drain()))
