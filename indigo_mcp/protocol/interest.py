"""Interest accrual on CDP debt, in iAsset smallest units."""
from __future__ import annotations

from .datums import InterestOracleDatum

UNITARY_INTEREST_PRECISION = 10**20
DECIMAL_UNIT = 10**6
ONE_YEAR_MS = 31_536_000_000


def accrue(
    now_ms: int,
    unitary_interest_snapshot: int,
    minted_amount: int,
    last_settled: int,
    source: InterestOracleDatum | None,
) -> int:
    """Interest accrued on ``minted_amount`` since the CDP's snapshot.

    When the oracle's unitary-interest index has moved past the snapshot, the
    index delta covers everything up to ``last_updated`` and the current rate
    covers the remainder. Otherwise the snapshot is newer than the index and
    the rate alone applies since ``last_settled``. Elapsed time is clamped at
    zero because the oracle publishes ``last_updated`` slightly ahead.
    """
    if source is None:
        return 0

    rate = source.interest_rate.value
    if source.unitary_interest >= unitary_interest_snapshot:
        settled = (
            (source.unitary_interest - unitary_interest_snapshot)
            * minted_amount
            // UNITARY_INTEREST_PRECISION
        )
        elapsed = max(0, now_ms - source.last_updated)
        return settled + elapsed * rate * minted_amount // ONE_YEAR_MS // DECIMAL_UNIT

    elapsed = max(0, now_ms - last_settled)
    return elapsed * rate * minted_amount // ONE_YEAR_MS // DECIMAL_UNIT
