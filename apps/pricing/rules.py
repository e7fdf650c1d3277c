"""
Tiered delivery charge evaluation.

Pure functions only: rules come in as arguments, nothing here touches
the database. Loading rules from storage lives in PricingService.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional

from apps.utils.exceptions import ConfigurationGap, ValidationFailed

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

OVERLAP_MESSAGE = (
    "Rule ranges cannot overlap. Please ensure 'To' of one rule is less than "
    "'From' of the next."
)


@dataclass(frozen=True)
class ChargeRule:
    from_amount: Decimal
    to_amount: Optional[Decimal]
    charge: Decimal

    @classmethod
    def build(cls, from_amount, to_amount, charge) -> "ChargeRule":
        return cls(
            from_amount=Decimal(str(from_amount)),
            to_amount=None if to_amount is None else Decimal(str(to_amount)),
            charge=Decimal(str(charge)),
        )

    def covers(self, subtotal: Decimal) -> bool:
        if subtotal < self.from_amount:
            return False
        return self.to_amount is None or subtotal <= self.to_amount

    def as_dict(self) -> dict:
        return {
            "from_amount": str(self.from_amount),
            "to_amount": None if self.to_amount is None else str(self.to_amount),
            "charge": str(self.charge),
        }


@dataclass(frozen=True)
class DeliveryCharge:
    charge: Decimal
    next_tier_info: Optional[str] = None
    next_tier_amount: Optional[Decimal] = None
    next_tier_charge: Optional[Decimal] = None


def _sorted(rules: Iterable[ChargeRule]) -> list[ChargeRule]:
    return sorted(rules, key=lambda r: r.from_amount)


def _next_tier_message(amount_needed: Decimal, charge: Decimal) -> str:
    if charge == ZERO:
        return f"Add items worth Rs {amount_needed:.2f} more for FREE delivery."
    return (
        f"Add items worth Rs {amount_needed:.2f} more for a delivery charge "
        f"of Rs {charge:.2f}."
    )


def evaluate(rules: Iterable[ChargeRule], subtotal, *, strict: bool = False) -> DeliveryCharge:
    """
    Charge for `subtotal` under a tiered rule set, plus a hint about the
    next cheaper tier.

    A subtotal that falls into a gap of the rule set is charged nothing
    (checkout must not fail because of a bad rule set). Pass strict=True
    to get ConfigurationGap instead.
    """
    sorted_rules = _sorted(rules)
    if not sorted_rules:
        return DeliveryCharge(charge=ZERO)

    subtotal = Decimal(str(subtotal))

    matched = next((rule for rule in sorted_rules if rule.covers(subtotal)), None)
    if matched is None:
        if strict:
            raise ConfigurationGap(f"No delivery rule covers a subtotal of Rs {subtotal:.2f}.")
        logger.warning("Delivery rule gap for subtotal %s; charging 0", subtotal)
        return DeliveryCharge(charge=ZERO)

    next_rule = next(
        (
            rule for rule in sorted_rules
            if rule.from_amount > subtotal and rule.charge < matched.charge
        ),
        None,
    )
    if next_rule is None:
        return DeliveryCharge(charge=matched.charge)

    amount_needed = next_rule.from_amount - subtotal
    return DeliveryCharge(
        charge=matched.charge,
        next_tier_info=_next_tier_message(amount_needed, next_rule.charge),
        next_tier_amount=amount_needed,
        next_tier_charge=next_rule.charge,
    )


def validate_rule_set(rules: Iterable[ChargeRule]) -> list[ChargeRule]:
    """
    Returns the rules sorted by `from_amount`, or raises ValidationFailed.

    - amounts are non-negative
    - `to` (when set) is greater than `from`
    - sorted neighbours do not overlap: to[i] < from[i+1], and only the
      last rule may be open-ended
    """
    sorted_rules = _sorted(rules)

    for rule in sorted_rules:
        if rule.from_amount < ZERO or rule.charge < ZERO:
            raise ValidationFailed("Rule amounts must be non-negative.")
        if rule.to_amount is not None:
            if rule.to_amount < ZERO:
                raise ValidationFailed("Rule amounts must be non-negative.")
            if rule.from_amount >= rule.to_amount:
                raise ValidationFailed("'From' must be less than 'To'.")

    for current, following in zip(sorted_rules, sorted_rules[1:]):
        if current.to_amount is None or current.to_amount >= following.from_amount:
            raise ValidationFailed(OVERLAP_MESSAGE)

    return sorted_rules
