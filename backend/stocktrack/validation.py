from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .errors import InvalidRequest
from .time_utils import day_bounds, parse_iso_datetime


# Maximum price: 9,999,999.99 in major units (999,999,999 cents)
MAX_PRICE_CENTS = 999_999_999


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


ITEM_POLICY = ModelValidationPolicy(
    writable_fields={
        "sku",
        "name",
        "description",
        "category_id",
        "unit",
        "min_stock",
        "purchase_price_cents",
        "selling_price_cents",
        "currency",
    },
    required_on_create={"sku", "name", "category_id", "unit"},
)

CATEGORY_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description"},
    required_on_create={"name"},
)

WAREHOUSE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "location", "manager_id"},
    required_on_create={"name", "location"},
)


def coerce_int(value: Any, field: str) -> int:
    """Strict integer coercion: ints and plain digit strings only."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise InvalidRequest(f"{field} must be an integer", details={"field": field})
        if "e" in stripped.lower():
            raise InvalidRequest(
                f"{field} must be a plain integer (scientific notation not allowed)",
                details={"field": field},
            )
        if "." in stripped:
            raise InvalidRequest(f"{field} must be an integer (no decimals)", details={"field": field})
        try:
            return int(stripped)
        except ValueError:
            raise InvalidRequest(f"{field} must be an integer", details={"field": field}) from None
    if isinstance(value, float):
        raise InvalidRequest(f"{field} must be an integer, not a decimal", details={"field": field})
    raise InvalidRequest(f"{field} must be an integer", details={"field": field})


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None
    if isinstance(coltype, Integer):
        return coerce_int(value, col.key)
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise InvalidRequest(f"{col.key} must be a boolean", details={"field": col.key})
    if isinstance(coltype, (String, Text)):
        return str(value).strip()
    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned dict with only writable fields.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise InvalidRequest("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise InvalidRequest(f"Missing required fields: {', '.join(missing)}", details={"missing": missing})

    cols = _columns_by_key(model)

    for k in payload.keys():
        if k not in policy.writable_fields or k not in cols:
            raise InvalidRequest(f"Field not allowed: {k}", details={"field": k})

    patch: dict = {}
    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise InvalidRequest(f"{k} cannot be null", details={"field": k})
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise InvalidRequest(f"{k} cannot be blank", details={"field": k})

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise InvalidRequest(f"{k} exceeds max length {col.type.length}", details={"field": k})

        patch[k] = val

    return patch


def enforce_rules_item(patch: dict) -> None:
    """Price range checks not captured by column metadata."""
    for field in ("purchase_price_cents", "selling_price_cents"):
        price = patch.get(field)
        if price is None:
            continue
        if price < 0:
            raise InvalidRequest(f"{field} must be >= 0", details={"field": field})
        if price > MAX_PRICE_CENTS:
            raise InvalidRequest(f"{field} cannot exceed {MAX_PRICE_CENTS}", details={"field": field})


def parse_line_items(raw, *, allow_price: bool = False) -> list[dict]:
    """
    Normalize submitted line items to [{"item_id", "quantity", ...}].

    Quantity sign and duplicates are checked by the services; this only
    guarantees the shape and integer types.
    """
    if not isinstance(raw, list) or not raw:
        raise InvalidRequest("items must be a non-empty list")

    allowed = {"item_id", "quantity"} | ({"unit_price_cents"} if allow_price else set())
    lines = []
    for index, entry in enumerate(raw):
        if not isinstance(entry, dict):
            raise InvalidRequest("Each line item must be an object", details={"line": index})
        unknown = set(entry) - allowed
        if unknown:
            raise InvalidRequest("Unknown line item fields", details={"line": index, "fields": sorted(unknown)})
        if "item_id" not in entry or "quantity" not in entry:
            raise InvalidRequest("Each line item needs item_id and quantity", details={"line": index})
        line = {
            "item_id": coerce_int(entry["item_id"], "item_id"),
            "quantity": coerce_int(entry["quantity"], "quantity"),
        }
        if entry.get("unit_price_cents") is not None:
            line["unit_price_cents"] = coerce_int(entry["unit_price_cents"], "unit_price_cents")
        lines.append(line)
    return lines


def optional_int(value, field: str) -> int | None:
    if value is None or value == "":
        return None
    return coerce_int(value, field)


def optional_datetime(value, field: str):
    try:
        return parse_iso_datetime(value)
    except ValueError:
        raise InvalidRequest(f"{field} must be an ISO-8601 datetime", details={"field": field}) from None


def optional_end_datetime(value, field: str):
    """Like optional_datetime, but a bare date means the end of that day."""
    parsed = optional_datetime(value, field)
    if parsed is not None and len(value.strip()) == 10:
        return day_bounds(parsed.date())[1]
    return parsed


def optional_bool(value, field: str, default: bool = False) -> bool:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return value
    lowered = str(value).strip().lower()
    if lowered in ("1", "true", "yes"):
        return True
    if lowered in ("0", "false", "no"):
        return False
    raise InvalidRequest(f"{field} must be a boolean", details={"field": field})
