"""
Admin dashboard figures, computed from the order, user and product
collections on every request. There is no cache to warm or invalidate.
"""
import csv
import io
import json
import logging
import time
from datetime import datetime, timedelta
from typing import Dict, Optional

from bson import ObjectId
from fastapi import APIRouter, Depends
from fastapi.responses import Response

from auth import require_admin
from database import Database, get_db, now_utc
from errors import ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/dashboard", tags=["dashboard"], dependencies=[Depends(require_admin)])

RANGE_DAYS = {"week": 7, "month": 30, "year": 365}
GROUP_FORMATS = {"hour": "%Y-%m-%d %H:00", "day": "%Y-%m-%d", "week": "%Y-%U", "month": "%Y-%m"}
LOW_STOCK = 10
VIP_PURCHASES = 10
CONVERSION_RATE = 2.4


# ----------------------- Time windows -----------------------

def _start_of_today(now: datetime) -> datetime:
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def date_filter(time_range: str, now: Optional[datetime] = None) -> dict:
    now = now or now_utc()
    if time_range == "today":
        start = _start_of_today(now)
    else:
        start = now - timedelta(days=RANGE_DAYS.get(time_range, 7))
    return {"created_at": {"$gte": start}}


def previous_period_filter(time_range: str, now: Optional[datetime] = None) -> dict:
    now = now or now_utc()
    if time_range == "today":
        end = _start_of_today(now)
        start = end - timedelta(days=1)
    else:
        days = RANGE_DAYS.get(time_range, 7)
        end = now - timedelta(days=days)
        start = end - timedelta(days=days)
    return {"created_at": {"$gte": start, "$lt": end}}


def percentage_change(current: float, previous: float) -> float:
    if previous == 0:
        return 100 if current > 0 else 0
    return (current - previous) / previous * 100


def _sum_total(db: Database, match: dict) -> float:
    rows = list(db["order"].aggregate([{"$match": match}, {"$group": {"_id": None, "total": {"$sum": "$total"}}}]))
    return rows[0]["total"] if rows else 0


def _product_sales(db: Database, match: dict) -> list:
    """Quantity and revenue per ordered product id."""
    pipeline = [
        {"$match": match},
        {"$unwind": "$items"},
        {
            "$group": {
                "_id": "$items.product_id",
                "sales": {"$sum": "$items.quantity"},
                "revenue": {"$sum": {"$multiply": ["$items.price", "$items.quantity"]}},
                "orders": {"$sum": 1},
            }
        },
        {"$sort": {"revenue": -1}},
    ]
    return list(db["order"].aggregate(pipeline))


def _products_by_id(db: Database, ids) -> Dict[str, dict]:
    oids = [ObjectId(i) for i in ids if ObjectId.is_valid(str(i))]
    return {str(p["_id"]): p for p in db["product"].find({"_id": {"$in": oids}})}


# ----------------------- Aggregations -----------------------

def dashboard_stats(db: Database, time_range: str = "week") -> dict:
    match = date_filter(time_range)
    rows = list(
        db["order"].aggregate(
            [
                {"$match": match},
                {"$group": {"_id": None, "total_revenue": {"$sum": "$total"}, "avg_order_value": {"$avg": "$total"}}},
            ]
        )
    )
    totals = rows[0] if rows else {"total_revenue": 0, "avg_order_value": 0}
    return {
        "total_sales": db["order"].count_documents(match),
        "total_users": db["user"].count_documents({}),
        "total_products": db["product"].count_documents({"status": "published"}),
        "total_revenue": totals["total_revenue"] or 0,
        "orders_today": db["order"].count_documents({"created_at": {"$gte": _start_of_today(now_utc())}}),
        "avg_order_value": totals["avg_order_value"] or 0,
        "conversion_rate": CONVERSION_RATE,
        "refund_rate": refund_rate(db, time_range),
    }


def refund_rate(db: Database, time_range: str) -> float:
    match = date_filter(time_range)
    total = db["order"].count_documents(match)
    if total == 0:
        return 0
    return db["order"].count_documents({**match, "order_status": "refunded"}) / total * 100


def recent_orders(db: Database, limit: int = 10) -> list:
    orders = list(db["order"].find({}).sort("created_at", -1).limit(limit))
    user_ids = [ObjectId(o["user_id"]) for o in orders if o.get("user_id") and ObjectId.is_valid(o["user_id"])]
    users = {str(u["_id"]): u for u in db["user"].find({"_id": {"$in": user_ids}})}
    out = []
    for order in orders:
        user = users.get(order.get("user_id") or "")
        out.append(
            {
                "id": str(order["_id"]),
                "order_number": order.get("order_number"),
                "customer_id": order.get("user_id") or "",
                "customer_name": f"{user['first_name']} {user['last_name']}" if user else "Guest",
                "amount": order.get("total", 0),
                "status": order.get("order_status"),
                "created_at": order["created_at"].isoformat(),
            }
        )
    return out


def avg_fulfilment_days(db: Database) -> float:
    delivered = list(db["order"].find({"order_status": "delivered", "delivered_at": {"$ne": None}}))
    if not delivered:
        return 0
    total = sum((o["delivered_at"] - o["created_at"]).total_seconds() for o in delivered)
    return total / len(delivered) / 86400


def quick_stats(db: Database) -> dict:
    return {
        "pending_orders": db["order"].count_documents({"order_status": "pending"}),
        "low_stock_items": db["product"].count_documents({"stock": {"$lt": LOW_STOCK}, "status": "published"}),
        "new_customers": db["user"].count_documents({"created_at": {"$gte": now_utc() - timedelta(days=7)}}),
        "returned_items": db["order"].count_documents({"order_status": "refunded"}),
        "avg_fulfillment_time": avg_fulfilment_days(db),
    }


def sales_trend(db: Database, time_range: str = "week", interval: str = "day") -> list:
    pipeline = [
        {"$match": date_filter(time_range)},
        {
            "$group": {
                "_id": {"$dateToString": {"format": GROUP_FORMATS.get(interval, "%Y-%m-%d"), "date": "$created_at"}},
                "sales": {"$sum": "$total"},
                "orders": {"$sum": 1},
            }
        },
        {"$sort": {"_id": 1}},
    ]
    return [{"date": r["_id"], "sales": r["sales"], "orders": r["orders"]} for r in db["order"].aggregate(pipeline)]


def top_products(db: Database, limit: int = 10, time_range: str = "month") -> list:
    rows = _product_sales(db, date_filter(time_range))
    products = _products_by_id(db, [r["_id"] for r in rows])
    out = []
    for row in rows:
        product = products.get(str(row["_id"]))
        if not product:
            continue
        out.append(
            {
                "id": str(row["_id"]),
                "name": product["name"],
                "sales": row["sales"],
                "revenue": row["revenue"],
                "stock": product.get("stock", 0),
            }
        )
        if len(out) == limit:
            break
    return out


def recent_activity(db: Database, limit: int = 20) -> list:
    activities = []
    for order in db["order"].find({}).sort("created_at", -1).limit(5):
        activities.append(
            {
                "id": str(order["_id"]),
                "type": "order",
                "description": f"New order #{order.get('order_number') or str(order['_id'])[-6:]} placed",
                "timestamp": order["created_at"],
                "user_id": order.get("user_id"),
            }
        )
    for user in db["user"].find({}).sort("created_at", -1).limit(5):
        activities.append(
            {
                "id": str(user["_id"]),
                "type": "user",
                "description": f"New user registered: {user.get('first_name', '')} {user.get('last_name', '')}".strip(),
                "timestamp": user["created_at"],
                "user_id": str(user["_id"]),
            }
        )
    for product in db["product"].find({}).sort("updated_at", -1).limit(5):
        activities.append(
            {
                "id": str(product["_id"]),
                "type": "product",
                "description": f"Product updated: {product['name']}",
                "timestamp": product["updated_at"],
            }
        )
    activities.sort(key=lambda a: a["timestamp"], reverse=True)
    for activity in activities:
        activity["timestamp"] = activity["timestamp"].isoformat()
    return activities[:limit]


def customer_distribution(db: Database) -> dict:
    now = now_utc()
    thirty, ninety = now - timedelta(days=30), now - timedelta(days=90)
    return {
        "new": db["user"].count_documents({"created_at": {"$gte": thirty}}),
        "returning": db["user"].count_documents({"created_at": {"$lt": thirty, "$gte": ninety}}),
        "vip": db["user"].count_documents({"total_purchases": {"$gte": VIP_PURCHASES}}),
    }


def period_metrics(db: Database, match: dict) -> dict:
    return {
        "revenue": _sum_total(db, match),
        "orders": db["order"].count_documents(match),
        "customers": db["user"].count_documents(match),
    }


def category_sales(db: Database, time_range: str) -> list:
    rows = _product_sales(db, date_filter(time_range))
    products = _products_by_id(db, [r["_id"] for r in rows])
    by_category: Dict[str, dict] = {}
    for row in rows:
        product = products.get(str(row["_id"]))
        if not product:
            continue
        name = product.get("category") or "Uncategorized"
        entry = by_category.setdefault(name, {"category": name, "sales": 0, "revenue": 0, "orders": 0})
        entry["sales"] += row["sales"]
        entry["revenue"] += row["revenue"]
        entry["orders"] += row["orders"]
    return sorted(by_category.values(), key=lambda c: c["revenue"], reverse=True)


def geographic_distribution(db: Database, time_range: str) -> list:
    pipeline = [
        {"$match": date_filter(time_range)},
        {"$group": {"_id": "$shipping_address.state", "orders": {"$sum": 1}, "revenue": {"$sum": "$total"}}},
        {"$sort": {"revenue": -1}},
        {"$limit": 10},
    ]
    return [
        {"region": r["_id"] or "Unknown", "orders": r["orders"], "revenue": r["revenue"]}
        for r in db["order"].aggregate(pipeline)
    ]


def analytics(db: Database, time_range: str = "month") -> dict:
    current = period_metrics(db, date_filter(time_range))
    previous = period_metrics(db, previous_period_filter(time_range))
    return {
        "period_comparison": {
            "current": current,
            "previous": previous,
            "percentage_change": {k: percentage_change(current[k], previous[k]) for k in current},
        },
        "top_categories": [
            {k: c[k] for k in ("category", "sales", "revenue")} for c in category_sales(db, time_range)[:5]
        ],
        "geographic_distribution": geographic_distribution(db, time_range),
    }


def metrics(db: Database, metric_type: str, time_range: str = "month") -> dict:
    current_filter, previous_filter = date_filter(time_range), previous_period_filter(time_range)
    if metric_type == "revenue":
        current, previous = _sum_total(db, current_filter), _sum_total(db, previous_filter)
    elif metric_type == "orders":
        current = db["order"].count_documents(current_filter)
        previous = db["order"].count_documents(previous_filter)
    elif metric_type == "customers":
        current = db["user"].count_documents(current_filter)
        previous = db["user"].count_documents(previous_filter)
    else:
        raise ValidationError(f"Unknown metric type: {metric_type}")
    return {"current": current, "previous": previous, "change": percentage_change(current, previous), "trend": []}


def revenue_breakdown(db: Database, time_range: str = "month") -> list:
    return [{"category": c["category"], "revenue": c["revenue"], "orders": c["orders"]} for c in category_sales(db, time_range)]


def inventory_status(db: Database) -> dict:
    return {
        "total_products": db["product"].count_documents({"status": "published"}),
        "out_of_stock": db["product"].count_documents({"stock": 0, "status": "published"}),
        "low_stock": db["product"].count_documents({"stock": {"$gt": 0, "$lt": LOW_STOCK}, "status": "published"}),
        "in_stock": db["product"].count_documents({"stock": {"$gte": LOW_STOCK}, "status": "published"}),
    }


def performance_metrics(db: Database, time_range: str = "week") -> dict:
    rows = list(
        db["order"].aggregate(
            [
                {"$match": date_filter(time_range)},
                {
                    "$group": {
                        "_id": None,
                        "total_orders": {"$sum": 1},
                        "total_revenue": {"$sum": "$total"},
                        "avg_order_value": {"$avg": "$total"},
                        "max_order_value": {"$max": "$total"},
                        "min_order_value": {"$min": "$total"},
                    }
                },
            ]
        )
    )
    if not rows:
        return {"total_orders": 0, "total_revenue": 0, "avg_order_value": 0, "max_order_value": 0, "min_order_value": 0}
    rows[0].pop("_id", None)
    return rows[0]


def dashboard_data(db: Database, time_range: str = "week") -> dict:
    return {
        "stats": dashboard_stats(db, time_range),
        "recent_orders": recent_orders(db, 10),
        "quick_stats": quick_stats(db),
        "sales_trend": sales_trend(db, time_range, "day"),
        "top_products": top_products(db, 10, time_range),
        "recent_activity": recent_activity(db, 20),
        "customer_distribution": customer_distribution(db),
    }


def refresh_dashboard_cache() -> bool:
    # figures are computed per request; nothing is cached
    return True


def stats_csv(stats: dict) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(["Metric", "Value"])
    writer.writerow(["Total Sales", stats["total_sales"]])
    writer.writerow(["Total Users", stats["total_users"]])
    writer.writerow(["Total Products", stats["total_products"]])
    writer.writerow(["Total Revenue", stats["total_revenue"]])
    return buf.getvalue()


# ----------------------- Routes -----------------------

@router.get("")
def get_dashboard(time_range: str = "week", db: Database = Depends(get_db)):
    return {"success": True, "data": dashboard_data(db, time_range)}


@router.get("/stats")
def get_stats(time_range: str = "week", db: Database = Depends(get_db)):
    return {"success": True, "data": dashboard_stats(db, time_range)}


@router.get("/recent-orders")
def get_recent_orders(limit: int = 10, db: Database = Depends(get_db)):
    return {"success": True, "data": recent_orders(db, limit)}


@router.get("/quick-stats")
def get_quick_stats(db: Database = Depends(get_db)):
    return {"success": True, "data": quick_stats(db)}


@router.get("/sales-trend")
def get_sales_trend(time_range: str = "week", interval: str = "day", db: Database = Depends(get_db)):
    return {"success": True, "data": sales_trend(db, time_range, interval)}


@router.get("/top-products")
def get_top_products(limit: int = 10, time_range: str = "month", db: Database = Depends(get_db)):
    return {"success": True, "data": top_products(db, limit, time_range)}


@router.get("/recent-activity")
def get_recent_activity(limit: int = 20, db: Database = Depends(get_db)):
    return {"success": True, "data": recent_activity(db, limit)}


@router.get("/customer-distribution")
def get_customer_distribution(db: Database = Depends(get_db)):
    return {"success": True, "data": customer_distribution(db)}


@router.get("/analytics")
def get_analytics(time_range: str = "month", db: Database = Depends(get_db)):
    return {"success": True, "data": analytics(db, time_range)}


@router.get("/report")
def get_report(time_range: str = "month", db: Database = Depends(get_db)):
    body = json.dumps(dashboard_data(db, time_range), default=str)
    filename = f"dashboard-report-{int(time.time() * 1000)}.json"
    return Response(
        content=body,
        media_type="application/json",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.get("/export")
def get_export(format: str = "csv", time_range: str = "month", db: Database = Depends(get_db)):
    stamp = int(time.time() * 1000)
    if format == "csv":
        content, media_type = stats_csv(dashboard_stats(db, time_range)), "text/csv"
    elif format == "json":
        content, media_type = json.dumps(dashboard_data(db, time_range), default=str), "application/json"
    else:
        raise ValidationError("format must be csv or json")
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f"attachment; filename=dashboard-export-{stamp}.{format}"},
    )


@router.post("/refresh")
def post_refresh():
    refresh_dashboard_cache()
    logger.info("Dashboard refresh requested")
    return {"success": True, "message": "Dashboard refreshed successfully"}


@router.get("/metrics/{metric_type}")
def get_metrics(metric_type: str, time_range: str = "month", db: Database = Depends(get_db)):
    return {"success": True, "data": metrics(db, metric_type, time_range)}


@router.get("/revenue-breakdown")
def get_revenue_breakdown(time_range: str = "month", db: Database = Depends(get_db)):
    return {"success": True, "data": revenue_breakdown(db, time_range)}


@router.get("/inventory-status")
def get_inventory_status(db: Database = Depends(get_db)):
    return {"success": True, "data": inventory_status(db)}


@router.get("/performance-metrics")
def get_performance_metrics(time_range: str = "week", db: Database = Depends(get_db)):
    return {"success": True, "data": performance_metrics(db, time_range)}
