"""
Balance engine: trip-wide and peer-to-peer net balances.

Balances are never cached. Every read loads a fresh snapshot of the trip's
expenses with their involvements and consents, then runs the pure functions
below over it.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
from sqlalchemy.orm import Session, selectinload
from tripledger.core.config import settings
from tripledger.core.utils import quantize
from tripledger.models.expense import ConsentStatus, Expense
from tripledger.models.trip import TripMember
from tripledger.services.splits import equal_share

ZERO = Decimal(0)


@dataclass(frozen=True)
class InvolvementSnapshot:
    debtor_id: int
    share_amount: Decimal
    consent_status: Optional[ConsentStatus] = None


@dataclass(frozen=True)
class ExpenseSnapshot:
    """An expense and the debts recorded against it."""
    expense_id: int
    payer_id: int
    amount: Decimal
    involvements: Tuple[InvolvementSnapshot, ...] = ()

    def debtor_ids(self, approved_only: bool = False) -> List[int]:
        return [i.debtor_id for i in self.involvements if _counts(i, approved_only)]


@dataclass
class MemberBalance:
    """Trip-wide position of one member. Positive net = others owe them."""
    user_id: int
    total_paid: Decimal = ZERO
    total_lent: Decimal = ZERO
    total_owed: Decimal = ZERO

    @property
    def net_balance(self) -> Decimal:
        return self.total_lent - self.total_owed


@dataclass
class Transfer:
    """Suggested payment from a debtor to a creditor."""
    from_user_id: int
    to_user_id: int
    amount: Decimal


@dataclass
class TripBalanceRow:
    user_id: int
    name: str
    active: bool
    balance: MemberBalance


def _counts(involvement: InvolvementSnapshot, approved_only: bool) -> bool:
    # Status-agnostic unless the caller explicitly asks for approved debt only
    return not approved_only or involvement.consent_status == ConsentStatus.APPROVED


# --- pure computations -------------------------------------------------------

def compute_trip_balances(
    snapshot: Iterable[ExpenseSnapshot],
    member_ids: Iterable[int] = (),
    approved_only: bool = False,
) -> Dict[int, MemberBalance]:
    """
    Net balance of every member across the snapshot.

    For each member: what others owe them on expenses they paid, minus the
    sum of their own involvement shares. Members without any activity are
    reported with zero.
    """
    balances: Dict[int, MemberBalance] = {uid: MemberBalance(uid) for uid in member_ids}

    def entry(user_id: int) -> MemberBalance:
        if user_id not in balances:
            balances[user_id] = MemberBalance(user_id)
        return balances[user_id]

    for expense in snapshot:
        payer = entry(expense.payer_id)
        payer.total_paid += expense.amount
        for involvement in expense.involvements:
            if not _counts(involvement, approved_only):
                continue
            payer.total_lent += involvement.share_amount
            entry(involvement.debtor_id).total_owed += involvement.share_amount

    return balances


def compute_peer_balance(
    snapshot: Iterable[ExpenseSnapshot],
    user_a: int,
    user_b: int,
    approved_only: bool = False,
) -> Decimal:
    """
    Net of A against B. Positive means B owes A.

    Only expenses paid by A or B are considered; each contributes one equal
    share when the other is among its debtors.
    """
    if user_a == user_b:
        return ZERO

    net = ZERO
    for expense in snapshot:
        if expense.payer_id not in (user_a, user_b):
            continue
        share_count = len(expense.involvements)
        if share_count == 0:
            continue
        share = equal_share(expense.amount, share_count)
        debtors = expense.debtor_ids(approved_only)

        if expense.payer_id == user_a and user_b in debtors:
            net += share
        if expense.payer_id == user_b and user_a in debtors:
            net -= share
    return net


def minimize_transfers(balances: Sequence[Tuple[int, Decimal]], epsilon: Decimal = None) -> List[Transfer]:
    """
    Minimize the number of transfers needed to settle debts.
    Uses a greedy algorithm; balances within epsilon of zero are ignored.
    """
    if epsilon is None:
        epsilon = settings.BALANCE_EPSILON

    creditors = [[uid, bal] for uid, bal in balances if bal > epsilon]
    debtors = [[uid, -bal] for uid, bal in balances if bal < -epsilon]

    # Largest first, ties by user id for a stable plan
    creditors.sort(key=lambda x: (-x[1], x[0]))
    debtors.sort(key=lambda x: (-x[1], x[0]))

    transfers = []
    cred_idx = 0
    debt_idx = 0

    while cred_idx < len(creditors) and debt_idx < len(debtors):
        creditor = creditors[cred_idx]
        debtor = debtors[debt_idx]

        amount = min(creditor[1], debtor[1])
        transfers.append(Transfer(debtor[0], creditor[0], quantize(amount, 2)))

        creditor[1] -= amount
        debtor[1] -= amount

        if creditor[1] <= epsilon:
            cred_idx += 1
        if debtor[1] <= epsilon:
            debt_idx += 1

    return transfers


# --- snapshot loading --------------------------------------------------------

def to_snapshot(expense: Expense) -> ExpenseSnapshot:
    statuses = {c.debtor_user_id: c.status for c in expense.consents}
    return ExpenseSnapshot(
        expense_id=expense.id,
        payer_id=expense.payer_id,
        amount=Decimal(expense.amount),
        involvements=tuple(
            InvolvementSnapshot(
                debtor_id=inv.debtor_user_id,
                share_amount=Decimal(inv.share_amount),
                consent_status=statuses.get(inv.debtor_user_id),
            )
            for inv in sorted(expense.involvements, key=lambda i: i.debtor_user_id)
        ),
    )


def load_trip_snapshot(trip_id: int, db: Session, payer_ids: Optional[Iterable[int]] = None) -> List[ExpenseSnapshot]:
    """Load the current expenses of a trip, optionally only those paid by given users."""
    query = db.query(Expense).options(
        selectinload(Expense.involvements),
        selectinload(Expense.consents),
    ).filter(Expense.trip_id == trip_id)
    if payer_ids is not None:
        query = query.filter(Expense.payer_id.in_(list(payer_ids)))
    return [to_snapshot(e) for e in query.order_by(Expense.id).all()]


# --- service entry points ----------------------------------------------------

def get_trip_balances(trip_id: int, db: Session, approved_only: bool = False) -> List[TripBalanceRow]:
    """Balance of every member of the trip, active or not."""
    members = db.query(TripMember).filter(TripMember.trip_id == trip_id).order_by(TripMember.id).all()
    balances = compute_trip_balances(
        load_trip_snapshot(trip_id, db),
        member_ids=[m.user_id for m in members],
        approved_only=approved_only,
    )

    rows = []
    member_map = {m.user_id: m for m in members}
    for user_id, balance in balances.items():
        member = member_map.get(user_id)
        rows.append(TripBalanceRow(
            user_id=user_id,
            name=member.display_name if member else "",
            active=member.active if member else False,
            balance=balance,
        ))
    return rows


def get_member_balance(trip_id: int, user_id: int, db: Session) -> Decimal:
    balances = compute_trip_balances(load_trip_snapshot(trip_id, db), member_ids=[user_id])
    return balances[user_id].net_balance


def get_peer_balance(trip_id: int, user_a: int, user_b: int, db: Session, approved_only: bool = False) -> Decimal:
    snapshot = load_trip_snapshot(trip_id, db, payer_ids=[user_a, user_b])
    return compute_peer_balance(snapshot, user_a, user_b, approved_only=approved_only)


def get_settlement_plan(trip_id: int, db: Session) -> List[Transfer]:
    rows = get_trip_balances(trip_id, db)
    return minimize_transfers([(row.user_id, row.balance.net_balance) for row in rows])
