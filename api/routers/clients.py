"""
Clients API Endpoints.

Endpoints for the client directory: listing, saving, deleting, merging
duplicates and looking up a client's purchases.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response

from api.dependencies import get_session
from api.models import (
    ClientListResponse,
    ClientRequest,
    ClientResponse,
    ClientSaveResponse,
    DeleteResponse,
    MergeDuplicatesResponse,
    SaleItemListResponse,
    SaleItemResponse,
    notifications_from,
)
from domain.exceptions import PersistenceFailure, ValidationError
from services.csv_export_service import export_clients_csv
from services.order_session import OrderTrackingSession

router = APIRouter()


@router.get(
    "/clients",
    response_model=ClientListResponse,
    summary="List Clients",
    description="All clients of the owner, sorted by name."
)
def list_clients(session: OrderTrackingSession = Depends(get_session)):
    items = [ClientResponse.from_domain(client) for client in session.state.clients]
    return ClientListResponse(items=items, total_count=len(items))


@router.get(
    "/clients/export",
    summary="Export Clients CSV",
    response_class=Response
)
def export_clients(session: OrderTrackingSession = Depends(get_session)):
    return Response(
        content=export_clients_csv(session.state.clients),
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=clients.csv"}
    )


@router.post(
    "/clients",
    response_model=ClientSaveResponse,
    summary="Save Client",
    description="Create or update a client. A name matching another client updates that client instead."
)
def save_client(
    request: ClientRequest,
    session: OrderTrackingSession = Depends(get_session),
):
    try:
        client = session.save_client(request.model_dump())
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except PersistenceFailure as e:
        raise HTTPException(status_code=502, detail=f"Failed to save client: {str(e)}")

    return ClientSaveResponse(
        client=ClientResponse.from_domain(client),
        notifications=notifications_from(session.notify.drain()),
    )


@router.post(
    "/clients/merge-duplicates",
    response_model=MergeDuplicatesResponse,
    summary="Merge Duplicate Clients",
)
def merge_duplicate_clients(session: OrderTrackingSession = Depends(get_session)):
    """
    Merge clients that share a case-insensitive name.

    The first client of each group is kept and its empty contact fields are
    filled from the others; the rest are deleted. Sale items naming the
    buyer are re-pointed at the kept client.

    Duplicates are already merged when the session loads, so this normally
    reports zero merges unless clients were added concurrently.
    """
    cleanup = session.clean_duplicate_clients()
    return MergeDuplicatesResponse(
        merged=cleanup.merged,
        deleted=cleanup.deleted,
        relinked_sale_items=cleanup.relinked_sale_items,
        notifications=notifications_from(session.notify.drain()),
    )


@router.get(
    "/clients/{client_id}/sale-items",
    response_model=SaleItemListResponse,
    summary="List Client Purchases"
)
def list_client_sale_items(client_id: UUID, session: OrderTrackingSession = Depends(get_session)):
    if not any(client.client_id == client_id for client in session.state.clients):
        raise HTTPException(status_code=404, detail=f"Client not found: {client_id}")

    items = [SaleItemResponse.from_domain(item) for item in session.sales_for_client(client_id)]
    return SaleItemListResponse(items=items, total_count=len(items))


@router.delete(
    "/clients/{client_id}",
    response_model=DeleteResponse,
    summary="Delete Client"
)
def delete_client(client_id: UUID, session: OrderTrackingSession = Depends(get_session)):
    if not any(client.client_id == client_id for client in session.state.clients):
        raise HTTPException(status_code=404, detail=f"Client not found: {client_id}")

    if not session.delete_client(client_id):
        raise HTTPException(status_code=502, detail="Failed to delete client")

    return DeleteResponse(deleted=True, notifications=notifications_from(session.notify.drain()))
