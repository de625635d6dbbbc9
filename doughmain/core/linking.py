# doughmain/core/linking.py
import logging
from typing import Any, Dict, List

from doughmain.core import collections
from doughmain.core.documents import DocumentStore, SERVER_TIMESTAMP
from doughmain.core.errors import NotFoundError
from doughmain.core.plaid_client import PlaidAggregator

logger = logging.getLogger(__name__)


def account_document(account: Dict[str, Any], item_id: str) -> Dict[str, Any]:
    balances = account.get("balances") or {}
    return {
        "account_id": account["account_id"],
        "name": account.get("name"),
        "official_name": account.get("official_name"),
        "type": account.get("type"),
        "subtype": account.get("subtype"),
        "balance": balances.get("current"),
        "available": balances.get("available"),
        "item_id": item_id,
        "plaid_account": True,
        "created_at": SERVER_TIMESTAMP,
    }


async def link_item(
    store: DocumentStore,
    aggregator: PlaidAggregator,
    user_id: str,
    public_token: str,
) -> List[Dict[str, Any]]:
    """
    Exchange a public token and persist the new bank connection.

    Writes the item document first, then one account document per account.
    The writes are independent: a failure part way leaves what was written.
    """
    exchanged = await aggregator.exchange_public_token(public_token)
    access_token = exchanged["access_token"]
    item_id = exchanged["item_id"]

    accounts = await aggregator.get_accounts(access_token)

    await collections.plaid_items(store, user_id).document(item_id).set(
        {
            "access_token": access_token,
            "item_id": item_id,
            "accounts": accounts,
            "created_at": SERVER_TIMESTAMP,
        }
    )

    user_accounts = collections.accounts(store, user_id)
    for account in accounts:
        await user_accounts.document(account["account_id"]).set(
            account_document(account, item_id)
        )

    logger.info(
        "Linked item %s with %d accounts for user %s", item_id, len(accounts), user_id
    )
    return accounts


async def refresh_balances(
    store: DocumentStore, aggregator: PlaidAggregator, user_id: str
) -> Dict[str, List[str]]:
    """
    Overwrite balance, available and updated_at on each stored account.

    Accounts that Plaid still reports but whose document was removed are
    skipped, not re-created.
    """
    updated: List[str] = []
    skipped: List[str] = []
    user_accounts = collections.accounts(store, user_id)

    for item in await collections.plaid_items(store, user_id).get():
        accounts = await aggregator.get_accounts(item.get("access_token"))
        for account in accounts:
            balances = account.get("balances") or {}
            account_id = account["account_id"]
            try:
                await user_accounts.document(account_id).update(
                    {
                        "balance": balances.get("current"),
                        "available": balances.get("available"),
                        "updated_at": SERVER_TIMESTAMP,
                    }
                )
            except NotFoundError:
                logger.warning(
                    "Account %s for user %s no longer stored, skipping balance update",
                    account_id,
                    user_id,
                )
                skipped.append(account_id)
                continue
            updated.append(account_id)

    return {"updated": updated, "skipped": skipped}
