from __future__ import annotations
import json, hashlib
from typing import Any, Dict

from .config import TaxConfig
from .schemas import TaxSummary


def _json_c14n(obj: Any) -> str:
    """
    Canonical JSON dump:
      - sort keys
      - no spaces (compact separators)
      - input is JSON-mode data (model_dump(mode="json")), so amounts
        are already plain strings
    """
    return json.dumps(obj, sort_keys=True, separators=(",", ":"))


def _sha256_hex(s: str) -> str:
    return hashlib.sha256(s.encode("utf-8")).hexdigest()


def build_manifest(summary: TaxSummary, config: TaxConfig) -> Dict[str, Any]:
    """
    Canonical manifest of one computation:
      - run: rule version, lot method, rounding, bracket table, period
      - inputs: the kept transactions (as reported lines) and the skipped rows
      - outputs: the totals, per-asset breakdown and anomalies
    """
    dumped = summary.model_dump(mode="json")
    return {
        "run": {
            "rule_version": config.rule_version,
            "lot_method": config.lot_method,
            "round_dp": config.round_dp,
            "brackets": [b.model_dump(mode="json") for b in config.brackets],
            "period": dumped["period"],
        },
        "inputs": {
            "transactions": [
                {k: line[k] for k in ("id", "kind", "asset_id", "timestamp", "quantity", "unit_price", "fee")}
                for line in dumped["transactions"]
            ],
            "skipped": dumped["skipped"],
        },
        "outputs": {
            k: v for k, v in dumped.items() if k not in ("period", "transactions", "skipped")
        },
    }


def compute_digests(manifest: Dict[str, Any]) -> Dict[str, str]:
    """
    Compute:
      - input_hash: hash over run parameters + input rows
      - output_hash: hash over the computed outputs
      - manifest_hash: hash over the full manifest
    """
    inputs_part = {"run": manifest["run"], "inputs": manifest["inputs"]}
    return {
        "input_hash": _sha256_hex(_json_c14n(inputs_part)),
        "output_hash": _sha256_hex(_json_c14n(manifest["outputs"])),
        "manifest_hash": _sha256_hex(_json_c14n(manifest)),
    }
