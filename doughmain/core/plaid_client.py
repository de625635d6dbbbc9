# doughmain/core/plaid_client.py
"""
Thin async wrapper around the Plaid SDK.

One PlaidAggregator is built per process (see main.lifespan) and handed to
the endpoints through a dependency. Every method returns plain JSON-ready
dicts so callers never touch SDK model objects.
"""

import asyncio
import logging
from datetime import date, datetime
from typing import Any, Dict, List, Union

import plaid
from plaid.api import plaid_api
from plaid.model.accounts_get_request import AccountsGetRequest
from plaid.model.country_code import CountryCode
from plaid.model.item_public_token_exchange_request import (
    ItemPublicTokenExchangeRequest,
)
from plaid.model.link_token_create_request import LinkTokenCreateRequest
from plaid.model.link_token_create_request_user import LinkTokenCreateRequestUser
from plaid.model.products import Products
from plaid.model.transactions_get_request import TransactionsGetRequest
from plaid.model.transactions_get_request_options import (
    TransactionsGetRequestOptions,
)

from doughmain.core.config import Settings
from doughmain.core.errors import ConfigurationError

logger = logging.getLogger(__name__)

PRODUCTS = ["transactions"]
COUNTRY_CODES = ["US"]
LANGUAGE = "en"

# Plaid caps transactions/get pages at 500
TRANSACTIONS_PAGE_SIZE = 500


def _jsonable(value: Any) -> Any:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def _as_date(value: Union[str, date]) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


class PlaidAggregator:
    def __init__(self, api: plaid_api.PlaidApi, client_name: str, webhook_url: str):
        self._api = api
        self.client_name = client_name
        self.webhook_url = webhook_url

    async def _call(self, method, request) -> Dict[str, Any]:
        # the SDK is blocking; keep it off the event loop
        response = await asyncio.to_thread(method, request)
        return _jsonable(response.to_dict())

    async def create_link_token(self, user_id: str) -> Dict[str, Any]:
        request = LinkTokenCreateRequest(
            user=LinkTokenCreateRequestUser(client_user_id=user_id),
            client_name=self.client_name,
            products=[Products(p) for p in PRODUCTS],
            country_codes=[CountryCode(c) for c in COUNTRY_CODES],
            language=LANGUAGE,
            webhook=self.webhook_url,
        )
        return await self._call(self._api.link_token_create, request)

    async def exchange_public_token(self, public_token: str) -> Dict[str, Any]:
        request = ItemPublicTokenExchangeRequest(public_token=public_token)
        data = await self._call(self._api.item_public_token_exchange, request)
        return {"access_token": data["access_token"], "item_id": data["item_id"]}

    async def get_accounts(self, access_token: str) -> List[Dict[str, Any]]:
        request = AccountsGetRequest(access_token=access_token)
        data = await self._call(self._api.accounts_get, request)
        return data.get("accounts", [])

    async def get_transactions(
        self,
        access_token: str,
        start_date: Union[str, date],
        end_date: Union[str, date],
    ) -> List[Dict[str, Any]]:
        transactions: List[Dict[str, Any]] = []
        while True:
            request = TransactionsGetRequest(
                access_token=access_token,
                start_date=_as_date(start_date),
                end_date=_as_date(end_date),
                options=TransactionsGetRequestOptions(
                    count=TRANSACTIONS_PAGE_SIZE, offset=len(transactions)
                ),
            )
            data = await self._call(self._api.transactions_get, request)
            page = data.get("transactions", [])
            transactions.extend(page)
            total = data.get("total_transactions", len(transactions))
            if not page or len(transactions) >= total:
                break
            logger.debug("Fetched %d of %d transactions", len(transactions), total)
        return transactions


def build_aggregator(settings: Settings) -> PlaidAggregator:
    if not settings.plaid_client_id or not settings.plaid_secret:
        raise ConfigurationError(
            "Plaid configuration missing. Set PLAID_CLIENT_ID and PLAID_SECRET."
        )
    if settings.plaid_env != "sandbox":
        raise ConfigurationError(
            f"Unsupported Plaid environment: {settings.plaid_env!r} (only 'sandbox')"
        )

    configuration = plaid.Configuration(
        host=plaid.Environment.Sandbox,
        api_key={
            "clientId": settings.plaid_client_id,
            "secret": settings.plaid_secret,
        },
    )
    api = plaid_api.PlaidApi(plaid.ApiClient(configuration))
    logger.info("Plaid client initialized for sandbox environment")
    return PlaidAggregator(api, settings.plaid_client_name, settings.plaid_webhook_url)
