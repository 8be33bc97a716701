"""Collateralization health of a CDP."""
from __future__ import annotations

from fractions import Fraction
from typing import Union

from ..models import HealthClassification, HealthTier

DEFAULT_SAFETY_MULTIPLIER = 1.5

Number = Union[int, float, str, Fraction]


def _exact(value: Number) -> Fraction:
    # floats go through their shortest repr so 1.1 means 11/10, not its binary neighbour
    if isinstance(value, float):
        return Fraction(repr(value))
    return Fraction(value)


def exact_collateral_ratio(
    collateral: Number, minted: Number, price: Number, accrued_interest: Number = 0
) -> Fraction:
    """Collateral ratio in percent as an exact fraction."""
    price_q = _exact(price)
    minted_q = _exact(minted)
    if price_q <= 0 or minted_q == 0:
        return Fraction(0)
    net = _exact(collateral) - _exact(accrued_interest) * price_q
    return net * 100 / (minted_q * price_q)


def collateral_ratio(
    collateral: Number, minted: Number, price: Number, accrued_interest: Number = 0
) -> float:
    """Collateral ratio in percent, net of accrued interest valued at ``price``."""
    return float(exact_collateral_ratio(collateral, minted, price, accrued_interest))


def classify(
    collateral: Number,
    minted: Number,
    price: Number,
    accrued_interest: Number,
    maintenance_ratio: Number,
    liquidation_ratio: Number,
    safety_multiplier: Number = DEFAULT_SAFETY_MULTIPLIER,
) -> HealthClassification:
    """Map a position onto a risk tier.

    ``collateral`` and ``minted``/``accrued_interest`` may be given in whole
    units or in smallest units, as long as both sides use the same scale
    (lovelace and iAsset base units are both 1e6 per whole unit). ``price`` is
    in ADA per token. Tier boundaries are compared exactly, so a ratio equal
    to a threshold falls into the higher tier. The result is advisory only.
    Interest that accrued after the snapshot passed in as ``accrued_interest``
    is not reflected.
    """
    ratio = exact_collateral_ratio(collateral, minted, price, accrued_interest)
    maintenance = _exact(maintenance_ratio)

    if ratio >= maintenance * _exact(safety_multiplier):
        tier = HealthTier.SAFE
    elif ratio >= maintenance:
        tier = HealthTier.WARNING
    elif ratio >= _exact(liquidation_ratio):
        tier = HealthTier.AT_RISK
    else:
        tier = HealthTier.LIQUIDATABLE

    return HealthClassification(ratio_percent=float(ratio), tier=tier)
