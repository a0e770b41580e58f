import logging
from datetime import datetime, time, timedelta, timezone

from sqlalchemy import func
from sqlalchemy.orm import Session

from .models import DailyStats, Order, Product, ServerStats, User
from .utils import now_utc, as_utc

logger = logging.getLogger("admin_reports")

TREND_DAYS = 7


def _last_days(days: int = TREND_DAYS) -> list[str]:
    today = now_utc().date()
    return [(today - timedelta(days=i)).isoformat() for i in range(days - 1, -1, -1)]


def _label(day: str) -> str:
    d = datetime.strptime(day, "%Y-%m-%d")
    return f"{d:%b} {d.day}"


def build_dashboard(db: Session) -> dict:
    """
    Collect the admin overview. Each figure is gathered on its own so one
    failing query leaves its default in place instead of failing the page.
    """
    total_users = 0
    total_products = 0
    total_orders = 0
    status_counts: dict = {}
    server = {"onlinePlayers": 0, "maxPlayers": 0, "newPlayersToday": 0}

    try:
        total_users = db.query(User).count()
    except Exception:
        logger.exception("[DASHBOARD] Failed to count users")
        db.rollback()

    try:
        total_products = db.query(Product).count()
    except Exception:
        logger.exception("[DASHBOARD] Failed to count products")
        db.rollback()

    try:
        rows = db.query(Order.status, func.count(Order.id)).group_by(Order.status).all()
        status_counts = {(status or "unknown"): count for status, count in rows}
        total_orders = sum(status_counts.values())
    except Exception:
        logger.exception("[DASHBOARD] Failed to count orders")
        db.rollback()

    try:
        stats = db.get(ServerStats, "stats")
        if stats:
            server = stats.to_dict()
    except Exception:
        logger.exception("[DASHBOARD] Failed to read server stats")
        db.rollback()

    return {
        "totalUsers": total_users,
        "totalProducts": total_products,
        "totalOrders": total_orders,
        "orderStatusCounts": status_counts,
        **server,
    }


def registration_trends(db: Session) -> list[dict]:
    days = _last_days()
    start = datetime.combine(datetime.strptime(days[0], "%Y-%m-%d").date(), time(0, 0), tzinfo=timezone.utc)
    counts = dict.fromkeys(days, 0)

    for (created_at,) in db.query(User.created_at).filter(User.created_at >= start).all():
        created_at = as_utc(created_at)
        if created_at is None:
            continue
        day = created_at.date().isoformat()
        if day in counts:
            counts[day] += 1

    return [{"name": _label(day), "New Registrations": counts[day]} for day in days]


def new_player_trends(db: Session) -> list[dict]:
    days = _last_days()
    rows = db.query(DailyStats).filter(DailyStats.date.in_(days)).all()
    counts = {row.date: row.new_players_today or 0 for row in rows}
    return [{"name": _label(day), "New Players": counts.get(day, 0)} for day in days]


def activity_feed(db: Session, user_id: str, limit: int = 3) -> list[dict]:
    orders = (
        db.query(Order)
        .filter(Order.user_id == user_id, Order.status == "completed")
        .order_by(Order.created_at.desc())
        .limit(limit)
        .all()
    )
    feed = []
    for order in orders:
        names = ", ".join(f"{p.get('name') or p.get('productId')} (x{p.get('quantity', 1)})" for p in order.products)
        created_at = as_utc(order.created_at) or now_utc()
        feed.append({
            "id": order.id,
            "type": "purchase",
            "description": f"Purchased: {names}",
            "timestamp": created_at.isoformat(),
            "value": order.total_amount,
        })
    return feed
