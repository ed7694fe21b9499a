from __future__ import annotations

import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path

import pytest

# The API module binds its engine at import time; point it at a throwaway file first.
_TMP_DB = Path(tempfile.mkdtemp(prefix="realizedtax-")) / "test.db"
os.environ.setdefault("REALIZEDTAX_DB_URL", f"sqlite:///{_TMP_DB.as_posix()}")


def _ts(value: str) -> datetime:
    return datetime.fromisoformat(value).replace(tzinfo=timezone.utc)


@pytest.fixture
def make_tx():
    """Factory for raw transaction rows (plain dicts, as persistence would hand them over)."""

    def _make(
        id: str = "tx_1",
        kind: str = "BUY",
        asset_id: str = "track_1",
        quantity="10",
        price="100",
        fee="0",
        at: str = "2025-01-10",
        status: str = "COMPLETED",
        title: str | None = None,
    ) -> dict:
        return {
            "id": id,
            "kind": kind,
            "asset_id": asset_id,
            "asset_title": title or asset_id.replace("_", " ").title(),
            "quantity": quantity,
            "unit_price": price,
            "fee": fee,
            "timestamp": _ts(at),
            "status": status,
        }

    return _make
