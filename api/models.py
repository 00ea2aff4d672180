"""
API Request and Response Models.

Pydantic models for validating API requests and serializing responses.

Request models are deliberately permissive: the domain normalization step
coerces numbers and dates and rejects missing required fields with a
ValidationError that names the field.
"""

from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from domain.client import Client
from domain.resin_lot import ResinLot
from domain.sale_item import SaleItem
from services.notifications import Notification
from services.profit_aggregation import BuyerSpend, DashboardSummary


class NotificationResponse(BaseModel):
    """A user-facing message produced while handling the request."""
    message: str
    severity: str  # "success", "info", "warning" or "error"

    @classmethod
    def from_domain(cls, notification: Notification) -> "NotificationResponse":
        return cls(message=notification.message, severity=notification.severity.value)


def notifications_from(items: List[Notification]) -> List[NotificationResponse]:
    return [NotificationResponse.from_domain(n) for n in items]


# ============================================================================
# Resin Lot Models
# ============================================================================

class ResinLotRequest(BaseModel):
    """Create or update a resin lot."""
    id: Optional[UUID] = None
    purchase_date: Optional[date] = None
    end_date: Optional[date] = None
    quantity: Optional[Decimal] = None
    cost: Optional[Decimal] = None
    gross_revenue: Optional[Decimal] = None
    status: Optional[str] = Field(None, description="'P' pending, 'E' delivered, 'C' cancelled")

    class Config:
        json_schema_extra = {
            "example": {
                "purchase_date": "2024-01-01",
                "end_date": "2024-01-31",
                "quantity": "2",
                "cost": "50.00",
                "status": "E"
            }
        }


class ResinLotResponse(BaseModel):
    id: UUID
    purchase_date: date
    end_date: Optional[date] = None
    quantity: Decimal
    cost: Decimal
    gross_revenue: Decimal
    status: str
    net_profit: Optional[Decimal] = None

    @classmethod
    def from_domain(cls, lot: ResinLot) -> "ResinLotResponse":
        return cls(
            id=lot.lot_id,
            purchase_date=lot.purchase_date,
            end_date=lot.end_date,
            quantity=lot.quantity,
            cost=lot.cost,
            gross_revenue=lot.gross_revenue,
            status=lot.status.value,
            net_profit=lot.net_profit(),
        )


class ResinLotListResponse(BaseModel):
    items: List[ResinLotResponse]
    total_count: int


class ResinLotSaveResponse(BaseModel):
    resin_lot: ResinLotResponse
    notifications: List[NotificationResponse] = []


# ============================================================================
# Sale Item Models
# ============================================================================

class SaleItemRequest(BaseModel):
    """Create or update a sale item."""
    id: Optional[UUID] = None
    item_name: Optional[str] = None
    price: Optional[Decimal] = None
    location: Optional[str] = Field(None, description="'W' marketplace, 'T' shop, 'P' personal, 'A' friends")
    sale_date: Optional[date] = None
    buyer_name: Optional[str] = None
    client_id: Optional[UUID] = None
    delivered: bool = False

    class Config:
        json_schema_extra = {
            "example": {
                "item_name": "Dragon keychain",
                "price": "25.00",
                "location": "T",
                "sale_date": "2024-01-10",
                "buyer_name": "Ana",
                "delivered": True
            }
        }


class SaleItemResponse(BaseModel):
    id: UUID
    item_name: str
    price: Decimal
    location: str
    sale_date: date
    buyer_name: Optional[str] = None
    client_id: Optional[UUID] = None
    delivered: bool

    @classmethod
    def from_domain(cls, item: SaleItem) -> "SaleItemResponse":
        return cls(
            id=item.sale_item_id,
            item_name=item.item_name,
            price=item.price,
            location=item.location.value,
            sale_date=item.sale_date,
            buyer_name=item.buyer_name,
            client_id=item.client_id,
            delivered=item.delivered,
        )


class SaleItemListResponse(BaseModel):
    items: List[SaleItemResponse]
    total_count: int


class SaleItemSaveResponse(BaseModel):
    sale_item: SaleItemResponse
    notifications: List[NotificationResponse] = []


# ============================================================================
# Client Models
# ============================================================================

class ClientRequest(BaseModel):
    """Create or update a client."""
    id: Optional[UUID] = None
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Ana",
                "email": "ana@example.com",
                "phone": "600000000"
            }
        }


class ClientResponse(BaseModel):
    id: UUID
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None

    @classmethod
    def from_domain(cls, client: Client) -> "ClientResponse":
        return cls(
            id=client.client_id,
            name=client.name,
            email=client.email,
            phone=client.phone,
            address=client.address,
        )


class ClientListResponse(BaseModel):
    items: List[ClientResponse]
    total_count: int


class ClientSaveResponse(BaseModel):
    client: ClientResponse
    notifications: List[NotificationResponse] = []


class MergeDuplicatesResponse(BaseModel):
    merged: int
    deleted: int
    relinked_sale_items: int
    notifications: List[NotificationResponse] = []


# ============================================================================
# Shared / Report Models
# ============================================================================

class DeleteResponse(BaseModel):
    deleted: bool
    notifications: List[NotificationResponse] = []


class MonthlyProfitEntry(BaseModel):
    month: str  # "YYYY-MM"
    profit: Decimal


class MonthlyProfitResponse(BaseModel):
    months: List[MonthlyProfitEntry]

    @classmethod
    def from_map(cls, monthly: Dict[str, Decimal]) -> "MonthlyProfitResponse":
        return cls(months=[MonthlyProfitEntry(month=k, profit=v) for k, v in sorted(monthly.items())])

    class Config:
        json_schema_extra = {
            "example": {
                "months": [
                    {"month": "2024-01", "profit": "-50.00"},
                    {"month": "2024-03", "profit": "170.00"}
                ]
            }
        }


class DashboardResponse(BaseModel):
    pending_resin_lots: int
    pending_sale_items: int
    delivered_resin_lots: int
    delivered_sale_items: int
    total_pending: int
    total_delivered: int
    current_month_profit: Decimal
    current_year_profit: Decimal

    @classmethod
    def from_domain(cls, summary: DashboardSummary) -> "DashboardResponse":
        return cls(
            pending_resin_lots=summary.pending_resin_lots,
            pending_sale_items=summary.pending_sale_items,
            delivered_resin_lots=summary.delivered_resin_lots,
            delivered_sale_items=summary.delivered_sale_items,
            total_pending=summary.total_pending,
            total_delivered=summary.total_delivered,
            current_month_profit=summary.current_month_profit,
            current_year_profit=summary.current_year_profit,
        )


class BuyerSpendResponse(BaseModel):
    buyer_name: str
    total_spent: Decimal

    @classmethod
    def from_domain(cls, spend: BuyerSpend) -> "BuyerSpendResponse":
        return cls(buyer_name=spend.buyer_name, total_spent=spend.total_spent)


class BuyerRankingResponse(BaseModel):
    buyers: List[BuyerSpendResponse]


class ErrorResponse(BaseModel):
    """Standard error response."""
    detail: str
    field: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "detail": "purchase_date is required",
                "field": "purchase_date"
            }
        }
