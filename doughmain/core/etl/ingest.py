import logging
from datetime import date, datetime, timezone
from typing import List, Dict, Any, Optional, Tuple

from doughmain.core import collections
from doughmain.core.documents import DocumentStore, SERVER_TIMESTAMP
from doughmain.core.plaid_client import PlaidAggregator

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "Other"


def today_utc() -> str:
    return datetime.now(timezone.utc).date().isoformat()


# Fill in the requested window, open ends default to a fixed start and today
def resolve_date_range(
    start_date: Optional[str], end_date: Optional[str], default_start: str
) -> Tuple[str, str]:
    return start_date or default_start, end_date or today_utc()


# Plaid amounts are positive for money leaving the account; we store
# expenses as negative and keep the direction in "type"
def plaid_to_standard(tx: Dict[str, Any]) -> Dict[str, Any]:
    amount = tx.get("amount") or 0
    category = tx.get("category") or []

    tx_date = tx.get("date")
    if isinstance(tx_date, date):
        tx_date = tx_date.isoformat()

    return {
        "id": tx["transaction_id"],
        "account_id": tx.get("account_id"),
        "amount": -amount,
        "date": tx_date,
        "description": tx.get("name"),
        "category": category[0] if category else DEFAULT_CATEGORY,
        "type": "expense" if amount > 0 else "income",
        "merchant_name": tx.get("merchant_name"),
        "plaid_transaction": True,
    }


# Upsert by transaction id, re-ingesting the same id merges into one document
async def save_transactions(
    store: DocumentStore, user_id: str, transactions: List[Dict[str, Any]]
) -> int:
    if not transactions:
        return 0

    target = collections.transactions(store, user_id)
    batch = store.batch()
    for txn in transactions:
        batch.set(
            target.document(txn["id"]),
            {**txn, "created_at": SERVER_TIMESTAMP},
            merge=True,
        )
    await batch.commit()
    return len(transactions)


# Orchestrate the whole process for one user: every linked item, in order
async def ingest_for_user(
    store: DocumentStore,
    aggregator: PlaidAggregator,
    user_id: str,
    start_date: str,
    end_date: str,
) -> List[Dict[str, Any]]:
    all_transactions: List[Dict[str, Any]] = []

    for item in await collections.plaid_items(store, user_id).get():
        access_token = item.get("access_token")
        raw = await aggregator.get_transactions(access_token, start_date, end_date)
        transactions = [plaid_to_standard(tx) for tx in raw]
        saved = await save_transactions(store, user_id, transactions)
        logger.info(
            "Saved %d transactions for user %s item %s", saved, user_id, item.id
        )
        all_transactions.extend(transactions)

    return all_transactions
