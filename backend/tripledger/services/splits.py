"""
Equal-split arithmetic shared by the ledger writer, dispute resolver and
balance engine. All three must agree on it or balances drift.
"""
from decimal import Decimal
from tripledger.core.config import settings
from tripledger.core.utils import quantize


def equal_share(amount: Decimal, debtor_count: int) -> Decimal:
    """
    Share owed by each debtor when an expense is split equally between the
    payer and ``debtor_count`` other members.

    The payer's own share is implicit, so the divisor is ``debtor_count + 1``.
    """
    if debtor_count < 1:
        raise ValueError("equal_share needs at least one debtor")
    return quantize(Decimal(amount) / (debtor_count + 1), settings.SHARE_DECIMAL_PLACES)
