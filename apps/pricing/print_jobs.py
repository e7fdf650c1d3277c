"""
Xerox / print job pricing.

`calculate` takes the selected paper and finishing options as plain
objects (model instances or anything with the same attributes) and never
raises: a missing option simply adds nothing to the price.
"""
import math
from dataclasses import dataclass
from decimal import Decimal

from .models import ColorOption, FormatType, PrintRatio

ZERO = Decimal("0")


@dataclass(frozen=True)
class PrintJobPrice:
    price_per_page: Decimal
    binding_cost: Decimal
    lamination_cost: Decimal
    final_price: Decimal
    physical_sheets: int = 0
    printing_cost: Decimal = ZERO
    single_copy_price: Decimal = ZERO

    @property
    def unit_price(self) -> Decimal:
        """Price of one copy, i.e. what gets frozen onto the order line."""
        return self.single_copy_price


def _amount(value) -> Decimal:
    if value is None:
        return ZERO
    amount = Decimal(str(value))
    return amount if amount > ZERO else ZERO


def _count(value) -> int:
    try:
        count = int(value or 0)
    except (TypeError, ValueError):
        return 0
    return max(count, 0)


def base_rate(paper, color_option, format_type) -> Decimal:
    """
    Pick one of the paper's four per-page rates.
    """
    if paper is None:
        return ZERO
    both_sides = format_type == FormatType.BOTH
    if color_option == ColorOption.COLOR:
        rate = paper.price_color_both if both_sides else paper.price_color_front
    else:
        rate = paper.price_bw_both if both_sides else paper.price_bw_front
    return _amount(rate)


def physical_sheet_count(page_count, format_type) -> int:
    pages = _count(page_count)
    if format_type == FormatType.BOTH:
        return math.ceil(pages / 2)
    return pages


def calculate(
    paper,
    color_option,
    format_type,
    print_ratio,
    binding,
    lamination,
    page_count,
    quantity,
) -> PrintJobPrice:
    rate = base_rate(paper, color_option, format_type)
    if print_ratio == PrintRatio.TWO_UP:
        rate = rate / 2

    sheets = physical_sheet_count(page_count, format_type)
    printing_cost = rate * sheets

    binding_cost = _amount(getattr(binding, "price", None))
    lamination_cost = _amount(getattr(lamination, "price", None))

    # finishing is per copy; quantity multiplies the whole copy
    single_copy_price = printing_cost + binding_cost + lamination_cost
    final_price = single_copy_price * _count(quantity)

    return PrintJobPrice(
        price_per_page=rate,
        binding_cost=binding_cost,
        lamination_cost=lamination_cost,
        final_price=final_price,
        physical_sheets=sheets,
        printing_cost=printing_cost,
        single_copy_price=single_copy_price,
    )
