from decimal import Decimal, ROUND_HALF_UP

from django.utils import timezone

TWO_PLACES = Decimal("0.01")


def now():
    return timezone.now()


def now_iso() -> str:
    """
    ISO-8601 string used for order tracking milestones.
    """
    return timezone.now().isoformat()


def money(value) -> Decimal:
    """
    Quantize any numeric value to paise precision.
    """
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def dict_clean(d: dict):
    """
    Remove keys where value is None or empty
    """
    return {k: v for k, v in d.items() if v not in [None, "", [], {}]}
