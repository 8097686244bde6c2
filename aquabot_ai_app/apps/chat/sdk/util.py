# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter
from __future__ import annotations

# chat/sdk/util.py
import time, orjson, math
from typing import Any, List, Optional
from datetime import date, datetime, timezone


# ---------- small general helpers ----------

def now_ms() -> int:
    return int(time.time() * 1000)

def json_dumps(data: Any) -> str:
    return orjson.dumps(data, option=orjson.OPT_NON_STR_KEYS).decode()

def utc_today() -> date:
    return datetime.now(timezone.utc).date()

# ---------- lenient coercion for rows of unknown shape ----------

def as_str(v: Any, default: Optional[str] = None) -> Optional[str]:
    if v is None:
        return default
    if isinstance(v, str):
        v = v.strip()
        return v if v else default
    if isinstance(v, (int, float, bool)):
        return str(v)
    return default

def as_float(v: Any) -> Optional[float]:
    """Numbers and numeric strings only; bools, NaN and garbage become None."""
    if v is None or isinstance(v, bool):
        return None
    if isinstance(v, (int, float)):
        f = float(v)
    elif isinstance(v, str):
        try:
            f = float(v.strip())
        except ValueError:
            return None
    else:
        # Decimal from the driver
        try:
            f = float(v)
        except (TypeError, ValueError):
            return None
    return None if math.isnan(f) or math.isinf(f) else f

def as_int(v: Any, default: Optional[int] = None) -> Optional[int]:
    f = as_float(v)
    return int(f) if f is not None else default

def as_bool(v: Any, default: bool = False) -> bool:
    if isinstance(v, bool):
        return v
    if isinstance(v, str):
        s = v.strip().lower()
        if s in ("true", "t", "1", "yes"):
            return True
        if s in ("false", "f", "0", "no"):
            return False
    if isinstance(v, (int, float)):
        return bool(v)
    return default

def as_datetime(v: Any) -> Optional[datetime]:
    if v is None:
        return None
    if isinstance(v, datetime):
        return v if v.tzinfo else v.replace(tzinfo=timezone.utc)
    if isinstance(v, date):
        return datetime(v.year, v.month, v.day, tzinfo=timezone.utc)
    if isinstance(v, str) and v.strip():
        s = v.strip().replace("Z", "+00:00")
        try:
            dt = datetime.fromisoformat(s)
        except ValueError:
            return None
        return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)
    return None

def as_str_list(v: Any) -> List[str]:
    if not isinstance(v, (list, tuple)):
        return []
    out = []
    for x in v:
        s = as_str(x)
        if s:
            out.append(s)
    return out

def fmt_date(dt: Optional[datetime]) -> str:
    return dt.date().isoformat() if dt else "unknown"

def fmt_num(v: float) -> str:
    # 7.0 -> "7", 0.25 -> "0.25"
    return f"{v:g}"
