"""
Runtime configuration.

Values come from environment variables; a `.env` file at the project root
is loaded first when present (python-dotenv). Nothing here is read at
engine call time: callers build a TaxConfig once and pass it in.

  REALIZEDTAX_RULE_VERSION   label stamped on digests (default 2025.1)
  REALIZEDTAX_ROUND_DP       decimal places for estimated_tax (default 2)
  REALIZEDTAX_BRACKETS       JSON list of {lower_bound, upper_bound, rate}
  REALIZEDTAX_DB_URL         SQLAlchemy URL for the transaction store
  REALIZEDTAX_LOG_LEVEL      root log level (default INFO)
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Literal, Tuple

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import BracketConfigError
from .schemas import TaxBracket
from .tax_tiers import DEFAULT_BRACKETS, validate_brackets

PROJECT_ROOT = Path(__file__).resolve().parents[2]

DEFAULT_DB_URL = "sqlite:///./realizedtax.db"


class TaxConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    rule_version: str = "2025.1"
    lot_method: Literal["FIFO"] = "FIFO"
    brackets: Tuple[TaxBracket, ...] = DEFAULT_BRACKETS
    round_dp: int = Field(2, ge=0, le=8)

    @field_validator("brackets")
    @classmethod
    def _check_table(cls, v: Tuple[TaxBracket, ...]) -> Tuple[TaxBracket, ...]:
        return validate_brackets(v)


DEFAULT_CONFIG = TaxConfig()


def _brackets_from_env(raw: str) -> Tuple[TaxBracket, ...]:
    try:
        rows = json.loads(raw)
        table = [TaxBracket.model_validate(r) for r in rows]
    except (json.JSONDecodeError, TypeError, ValidationError) as e:
        raise BracketConfigError(f"REALIZEDTAX_BRACKETS is not a valid bracket list: {e}") from e
    return validate_brackets(table)


def load_config(env_file: Path | None = None) -> TaxConfig:
    """Build a TaxConfig from the environment (and .env, if any)."""
    load_dotenv(env_file or PROJECT_ROOT / ".env")

    values = {}
    if os.getenv("REALIZEDTAX_RULE_VERSION"):
        values["rule_version"] = os.environ["REALIZEDTAX_RULE_VERSION"]
    if os.getenv("REALIZEDTAX_ROUND_DP"):
        values["round_dp"] = os.environ["REALIZEDTAX_ROUND_DP"]
    if os.getenv("REALIZEDTAX_BRACKETS"):
        values["brackets"] = _brackets_from_env(os.environ["REALIZEDTAX_BRACKETS"])
    return TaxConfig(**values)


def db_url() -> str:
    return os.getenv("REALIZEDTAX_DB_URL", DEFAULT_DB_URL)


def log_level() -> str:
    return os.getenv("REALIZEDTAX_LOG_LEVEL", "INFO").upper()
