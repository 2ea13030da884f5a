from __future__ import annotations

import logging
import re
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation


LOGGER = logging.getLogger(__name__)

_BR_DATE_PATTERN = re.compile(r"^(\d{2})/(\d{2})/(\d{4})$")
_CENTS = Decimal("0.01")
EMPTY_MONEY_DISPLAY = "R$ 0,00"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


def parse_date(value) -> date | None:
    """Accept YYYY-MM-DD, ISO datetimes or DD/MM/YYYY; anything else becomes None."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    raw = str(value).strip()
    if not raw:
        return None

    try:
        return date.fromisoformat(raw[:10])
    except ValueError:
        pass

    match = _BR_DATE_PATTERN.match(raw)
    if match:
        day, month, year = match.groups()
        try:
            return date(int(year), int(month), int(day))
        except ValueError:
            pass

    LOGGER.warning("date_unparseable", extra={"raw_value": raw})
    return None


def date_to_storage(value) -> str | None:
    parsed = parse_date(value)
    return parsed.isoformat() if parsed else None


def format_date_br(value) -> str:
    parsed = parse_date(value)
    if parsed is None:
        return ""
    return parsed.strftime("%d/%m/%Y")


def parse_money(value) -> Decimal | None:
    """Parse numbers and strings such as 'R$ 1.234,56' or '1234.56'.

    Raises ValueError for non-empty input that is not a number.
    """
    if isinstance(value, bool):
        raise ValueError(f"valor invalido: {value!r}")
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float)):
        return Decimal(str(value))

    raw = str(value).strip().replace("R$", "").replace(" ", "")
    if not raw:
        return None
    if "," in raw:
        # pt-BR: dot groups thousands, comma marks decimals.
        raw = raw.replace(".", "").replace(",", ".")
    try:
        parsed = Decimal(raw)
    except InvalidOperation as exc:
        raise ValueError(f"valor invalido: {value!r}") from exc
    if not parsed.is_finite():
        raise ValueError(f"valor invalido: {value!r}")
    return parsed


def coerce_decimal(value) -> Decimal | None:
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def format_money_br(value) -> str:
    amount = coerce_decimal(value)
    if amount is None:
        return EMPTY_MONEY_DISPLAY
    quantized = amount.quantize(_CENTS, rounding=ROUND_HALF_UP)
    grouped = f"{quantized:,.2f}"
    return "R$ " + grouped.replace(",", "_").replace(".", ",").replace("_", ".")


def decimal_to_number(value) -> float | None:
    amount = coerce_decimal(value)
    if amount is None:
        return None
    return float(amount)


def to_iso_timestamp(value) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def clean_text(value) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_int(value, default: int | None = None) -> int | None:
    if value is None or str(value).strip() == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"inteiro invalido: {value!r}") from exc
