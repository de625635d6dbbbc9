# doughmain/api/endpoints/plaid.py
import logging

from fastapi import APIRouter, Request

from doughmain.api.deps import get_aggregator, settings_dep, store_dep
from doughmain.api.responses import bad_request, error_response
from doughmain.core import schemas
from doughmain.core.etl.ingest import ingest_for_user, resolve_date_range
from doughmain.core.linking import link_item, refresh_balances

router = APIRouter(tags=["Plaid"])


@router.post("/createLinkToken")
async def create_link_token(payload: schemas.LinkTokenRequest, request: Request):
    try:
        aggregator = get_aggregator(request)
        return await aggregator.create_link_token(payload.user_id)
    except Exception as error:
        logging.error(f"Error creating link token: {error}")
        return error_response(error)


@router.post(
    "/exchangePublicToken", response_model=schemas.ExchangePublicTokenResponse
)
async def exchange_public_token(
    payload: schemas.ExchangePublicTokenRequest, request: Request, store: store_dep
):
    if not payload.user_id:
        return bad_request("User ID required")
    try:
        aggregator = get_aggregator(request)
        accounts = await link_item(
            store, aggregator, payload.user_id, payload.public_token
        )
        return schemas.ExchangePublicTokenResponse(
            success=True,
            accounts=accounts,
            message="Bank account connected successfully!",
        )
    except Exception as error:
        logging.error(f"Error exchanging public token: {error}")
        return error_response(error)


@router.post("/fetchTransactions", response_model=schemas.FetchTransactionsResponse)
async def fetch_transactions(
    payload: schemas.FetchTransactionsRequest,
    request: Request,
    store: store_dep,
    settings: settings_dep,
):
    if not payload.user_id:
        return bad_request("User ID required")
    try:
        aggregator = get_aggregator(request)
        start_date, end_date = resolve_date_range(
            payload.start_date, payload.end_date, settings.default_transactions_start
        )
        transactions = await ingest_for_user(
            store, aggregator, payload.user_id, start_date, end_date
        )
        return schemas.FetchTransactionsResponse(
            success=True, transactions=transactions, count=len(transactions)
        )
    except Exception as error:
        logging.error(f"Error fetching transactions: {error}")
        return error_response(error)


@router.post("/updateBalances", response_model=schemas.UpdateBalancesResponse)
async def update_balances(
    payload: schemas.UpdateBalancesRequest, request: Request, store: store_dep
):
    if not payload.user_id:
        return bad_request("User ID required")
    try:
        aggregator = get_aggregator(request)
        result = await refresh_balances(store, aggregator, payload.user_id)
        return schemas.UpdateBalancesResponse(
            success=True,
            message="Account balances updated successfully!",
            updated=result["updated"],
            skipped=result["skipped"],
        )
    except Exception as error:
        logging.error(f"Error updating balances: {error}")
        return error_response(error)
