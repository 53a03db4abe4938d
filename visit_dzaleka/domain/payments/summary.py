"""
Payment transactions, totals and gateway reconciliation

Pure functions over booking rows and normalised gateway records.
"""

from typing import Optional

TRANSACTION_STATUSES = ("paid", "pending")


def transaction_date(booking):
    return booking.payment_verified_at or booking.updated_at or booking.created_at


def build_transactions(bookings: list, currency: str) -> list[dict]:
    """One row per paid or pending booking, newest first"""
    rows = [
        {
            "id": b.id,
            "date": transaction_date(b),
            "visitorName": b.visitor_name,
            "amount": b.total_amount or 0,
            "currency": currency,
            "method": b.payment_method,
            "status": b.payment_status,
            "reference": b.payment_reference or b.booking_reference,
            "bookingReference": b.booking_reference,
            "paymentFees": b.payment_fees,
            "netAmount": b.net_amount,
        }
        for b in bookings
        if b.payment_status in TRANSACTION_STATUSES
    ]
    dated = [r for r in rows if r["date"] is not None]
    undated = [r for r in rows if r["date"] is None]
    return sorted(dated, key=lambda r: r["date"], reverse=True) + undated


def summarize_transactions(transactions: list[dict]) -> dict:
    """
    Totals for the payments page.

    Net revenue uses the recorded net amount when there is one and otherwise
    falls back to the gross amount of paid rows.
    """
    paid = [t for t in transactions if t["status"] == "paid"]
    pending = [t for t in transactions if t["status"] == "pending"]

    net_revenue = 0.0
    for t in transactions:
        if t["netAmount"] is not None:
            net_revenue += t["netAmount"]
        elif t["status"] == "paid":
            net_revenue += t["amount"]

    return {
        "totalRevenue": sum(t["amount"] for t in paid),
        "totalFees": sum(t["paymentFees"] or 0 for t in transactions),
        "netRevenue": net_revenue,
        "paidCount": len(paid),
        "pendingCount": len(pending),
        "pendingAmount": sum(t["amount"] for t in pending),
        "transactionCount": len(transactions),
    }


def reconcile_payments(bookings: list, gateway_records: list[dict]) -> dict:
    """
    Match gateway records to paid card bookings by payment reference.

    Returns matched pairs with the amount difference, gateway records no
    booking claims, and paid card bookings the gateway does not know about.
    """
    paid_card = [
        b for b in bookings if b.payment_status == "paid" and b.payment_method == "card"
    ]
    by_reference = {b.payment_reference: b for b in paid_card if b.payment_reference}

    matched = []
    unmatched_gateway = []
    seen: set[Optional[str]] = set()
    for record in gateway_records:
        booking = by_reference.get(record["reference"])
        if booking is None:
            unmatched_gateway.append(record)
            continue
        seen.add(record["reference"])
        booking_amount = booking.total_amount or 0
        matched.append(
            {
                "reference": record["reference"],
                "bookingId": booking.id,
                "bookingReference": booking.booking_reference,
                "bookingAmount": booking_amount,
                "gatewayAmount": record["amount"],
                "difference": round(record["amount"] - booking_amount, 2),
            }
        )

    unmatched_bookings = [
        {
            "bookingId": b.id,
            "bookingReference": b.booking_reference,
            "reference": b.payment_reference,
            "amount": b.total_amount or 0,
        }
        for b in paid_card
        if b.payment_reference not in seen
    ]

    return {
        "matched": matched,
        "unmatchedGateway": unmatched_gateway,
        "unmatchedBookings": unmatched_bookings,
        "matchedCount": len(matched),
        "discrepancyCount": len(unmatched_gateway)
        + len(unmatched_bookings)
        + len([m for m in matched if m["difference"] != 0]),
    }
