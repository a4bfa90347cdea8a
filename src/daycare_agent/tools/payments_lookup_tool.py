from __future__ import annotations

from ..gateway import PAYMENTS
from ..models import ROLE_PARENT
from ..vocabulary import (
    PAYMENT_CATEGORIES,
    PAYMENT_STATUSES,
    normalize_payment_category,
    normalize_payment_status,
)
from .base import ToolContext, ToolDescriptor, ToolField, no_related_records, require_caller, tool_results


def payments_lookup(args, context: ToolContext) -> dict:
    """Payments for the caller's children, earliest due date first.

    Pending payments past their due date are reported as "Jatuh Tempo"
    without touching the stored record.
    """

    denied = require_caller(context)
    if denied:
        return denied

    gateway = context.gateway
    children = gateway.children_of(context.caller.id)
    if not children:
        return no_related_records(PAYMENTS)

    status = normalize_payment_status(args.status)
    category = normalize_payment_category(args.category)
    results = gateway.payments(
        [child["id"] for child in children],
        now=context.now,
        status=status,
        category=category,
        period_text=args.query,
        limit=args.n,
        statuses=PAYMENT_STATUSES,
        categories=PAYMENT_CATEGORIES,
    )
    gateway.attach_child_names(results, children)

    total = sum(p.get("amount") or 0 for p in results)
    return tool_results(
        PAYMENTS,
        results,
        total_amount=total,
        filters={"status": status, "category": category, "period": args.query},
    )


payments_lookup_tool = ToolDescriptor(
    name="payments_lookup",
    description=(
        "Search for payment records by status, category, or period - PARENT ONLY. "
        "Status: 'Tertunda' (pending), 'Terkirim' (sent), 'Dibayar' (paid), 'Ditolak' (rejected), "
        "'Jatuh Tempo' (overdue). Category: 'Bulanan' (monthly), 'Semester' (semester), 'Registrasi' (registration)"
    ),
    fields=(
        ToolField("query", str, "Search in period, e.g. '2025-01' or '2025-1'"),
        ToolField(
            "status",
            str,
            "Filter by status: Tertunda (pending), Terkirim (submitted/sent), Dibayar (paid), Ditolak (rejected), "
            "Jatuh Tempo (overdue)",
        ),
        ToolField("category", str, "Filter by category: Bulanan (monthly), Semester (semester), Registrasi (registration)"),
        ToolField("n", int, "Maximum number of results", default=10),
    ),
    allowed_roles=frozenset({ROLE_PARENT}),
    handler=payments_lookup,
)
