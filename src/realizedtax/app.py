# app.py
"""
FastAPI application around the tax engine.

Endpoints:
  GET  /health                → liveness check
  GET  /version               → app version metadata
  POST /transactions          → store a batch of the caller's transactions
  GET  /transactions          → list the caller's stored transactions (paginated)
  GET  /reports/tax-summary   → FIFO realized gains + estimated tax for a period

The caller is identified by the X-User-Id header; authentication itself
happens upstream (gateway / session layer).

  Command to start the server: uvicorn realizedtax.app:app --reload
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from fastapi import FastAPI, Header, HTTPException, Query

from .__about__ import __title__, __version__
from .config import load_config
from .db import db_session, init_db
from .digest import build_manifest, compute_digests
from .engine import compute_tax_summary
from .errors import InvalidPeriodError
from .logging_setup import configure_logging
from .periods import period_from_params
from .repository import add_transactions, list_user_transactions, load_user_transactions
from .schemas import TransactionCreate, TransactionRead

logger = logging.getLogger(__name__)

init_db()

CONFIG = load_config()

# -----------------------------------------------------------------------------
# Application factory & startup
# -----------------------------------------------------------------------------
app = FastAPI(
    title=__title__,
    version=__version__,
    description="FIFO realized gain/loss and estimated tax reports.",
)


@app.on_event("startup")
def on_startup() -> None:
    """
    Runs when the server starts.
    - Configures logging and ensures database tables exist (idempotent).
    """
    configure_logging()
    init_db()
    logger.info("%s %s started (rule_version=%s)", __title__, __version__, CONFIG.rule_version)


def _require_user(x_user_id: str | None) -> str:
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Unauthorized")
    return x_user_id.strip()


# -----------------------------------------------------------------------------
# Health + version endpoints (simple sanity checks)
# -----------------------------------------------------------------------------
@app.get("/health")
def health() -> Dict[str, str]:
    """Quick liveness check for monitoring or manual testing."""
    return {"status": "ok"}


@app.get("/version")
def version() -> Dict[str, str]:
    """Show the backend name and version (useful to confirm deployments)."""
    return {"name": __title__, "version": __version__, "rule_version": CONFIG.rule_version}


# -----------------------------------------------------------------------------
# Transactions
# -----------------------------------------------------------------------------
@app.post("/transactions", status_code=201)
def create_transactions(
    items: List[TransactionCreate],
    x_user_id: str | None = Header(None, alias="X-User-Id"),
) -> Dict[str, Any]:
    user_id = _require_user(x_user_id)
    if not items:
        raise HTTPException(status_code=400, detail="No transactions in request body")

    with db_session() as session:
        rows = add_transactions(session, user_id, items)
        ids = [r.id for r in rows]

    logger.info("Stored %d transaction(s) for user %s", len(ids), user_id)
    return {"inserted": len(ids), "ids": ids}


@app.get("/transactions")
def list_transactions(
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=500),
    x_user_id: str | None = Header(None, alias="X-User-Id"),
) -> Dict[str, Any]:
    user_id = _require_user(x_user_id)
    with db_session() as session:
        rows, total = list_user_transactions(session, user_id, page, page_size)
        items = [TransactionRead.model_validate(r).model_dump(mode="json") for r in rows]

    return {
        "meta": {"page": page, "page_size": page_size, "total": total},
        "items": items,
    }


# -----------------------------------------------------------------------------
# Reports
# -----------------------------------------------------------------------------
@app.get("/reports/tax-summary")
def tax_summary(
    year: str | None = Query(None, description="Tax year (default: current year)"),
    start_date: str | None = Query(None, alias="startDate", description="Custom start (ISO-8601)"),
    end_date: str | None = Query(None, alias="endDate", description="Custom end (ISO-8601)"),
    x_user_id: str | None = Header(None, alias="X-User-Id"),
) -> Dict[str, Any]:
    """
    Realized gains/losses (FIFO) and estimated tax for one period.

    startDate + endDate select a custom range; otherwise the calendar year
    `year` (Jan 1 – Dec 31) is used.
    """
    user_id = _require_user(x_user_id)

    try:
        start, end = period_from_params(year, start_date, end_date)
    except InvalidPeriodError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        with db_session() as session:
            rows = load_user_transactions(session, user_id, start, end)

        summary = compute_tax_summary(rows, start, end, config=CONFIG)
        digests = compute_digests(build_manifest(summary, CONFIG))
    except Exception:
        logger.exception("Tax summary failed for user %s (%s..%s)", user_id, start, end)
        raise HTTPException(status_code=500, detail="Internal server error")

    data = summary.model_dump(mode="json")
    period = data.pop("period")
    totals_keys = (
        "total_buys", "total_sells", "total_invested", "total_received", "realized_gains",
        "realized_losses", "net_gain_loss", "estimated_tax", "tax_rate",
    )
    return {
        "success": True,
        "data": {
            "period": {**period, "year": start.year},
            "summary": {k: data.pop(k) for k in totals_keys},
            **data,
            "digests": digests,
        },
    }
