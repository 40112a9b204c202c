"""财务报表 Schema"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel


class QuickStats(BaseModel):
    """今日快报"""
    today_collected: float = 0
    today_revenue: float = 0
    today_profit: float = 0
    outstanding_ar: float = 0
    fronted_value: float = 0
    alert_count: int = 0


class DayRevenue(BaseModel):
    day: str
    date: str
    amount: float = 0
    is_past: bool = False
    is_today: bool = False


class CashRunway(BaseModel):
    available_cash: float = 0
    avg_daily_burn: float = 0
    days_remaining: int = 0
    is_healthy: bool = True


class CashFlow(BaseModel):
    """现金流"""
    today_in: float = 0
    today_out: float = 0
    today_net: float = 0
    week_revenue: List[DayRevenue] = []
    runway: CashRunway


class ARClient(BaseModel):
    customer_id: int
    name: str
    amount: float
    days_overdue: int = 0
    last_payment_date: Optional[datetime] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    category: str


class ARCommand(BaseModel):
    """应收账款"""
    total_outstanding: float = 0
    overdue: float = 0
    overdue_count: int = 0
    due_this_week: float = 0
    due_this_week_count: int = 0
    upcoming: float = 0
    upcoming_count: int = 0
    priority_clients: List[ARClient] = []
    all_clients: List[ARClient] = []


class PeriodMetrics(BaseModel):
    revenue: float = 0
    cost: float = 0
    profit: float = 0
    margin: float = 0
    deals: int = 0
    avg_deal_size: float = 0


class PeriodChange(BaseModel):
    """环比变化（margin 为百分点差）"""
    revenue: float = 0
    cost: float = 0
    profit: float = 0
    margin: float = 0
    deals: float = 0


class TopCustomer(BaseModel):
    customer_id: int
    name: str
    revenue: float
    percentage: float


class MarginPoint(BaseModel):
    week_start: str
    margin: float


class PerformancePulse(BaseModel):
    """经营表现"""
    this_month: PeriodMetrics
    last_month: PeriodMetrics
    changes: PeriodChange
    top_customers: List[TopCustomer] = []
    margin_trend: List[MarginPoint] = []
