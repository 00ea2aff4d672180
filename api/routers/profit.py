"""
Profit and Dashboard API Endpoints.

Read-only views computed from the owner's loaded orders.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_session
from api.models import (
    BuyerRankingResponse,
    BuyerSpendResponse,
    DashboardResponse,
    MonthlyProfitResponse,
)
from services.order_session import OrderTrackingSession

router = APIRouter()


@router.get(
    "/profit/monthly",
    response_model=MonthlyProfitResponse,
    summary="Monthly Profit"
)
def get_monthly_profit(session: OrderTrackingSession = Depends(get_session)):
    """
    Net profit per calendar month, oldest month first.

    Monthly profit is the price of every delivered sale item in its sale month,
    plus gross revenue minus cost of each delivered resin lot in the month
    its end date falls in. Pending, cancelled and open lots add nothing.

    Months can be negative when a lot cost more than it earned.
    """
    return MonthlyProfitResponse.from_map(session.monthly_profit)


@router.get(
    "/dashboard",
    response_model=DashboardResponse,
    summary="Dashboard Summary"
)
def get_dashboard(
    today: Optional[date] = Query(None, description="Reference date for current month/year (default: today)"),
    session: OrderTrackingSession = Depends(get_session),
):
    return DashboardResponse.from_domain(session.dashboard(today))


@router.get(
    "/buyers/ranking",
    response_model=BuyerRankingResponse,
    summary="Top Buyers"
)
def get_buyer_ranking(
    limit: int = Query(10, ge=1, le=100, description="Maximum number of buyers to return"),
    session: OrderTrackingSession = Depends(get_session),
):
    ranking = session.buyer_ranking()[:limit]
    return BuyerRankingResponse(buyers=[BuyerSpendResponse.from_domain(b) for b in ranking])
