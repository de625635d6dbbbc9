# doughmain/api/deps.py
import logging
from typing import Annotated, Optional

from fastapi import Depends, Request

from doughmain.core.config import Settings
from doughmain.core.documents import DocumentStore
from doughmain.core.identity import IdentityProvider
from doughmain.core.plaid_client import PlaidAggregator, build_aggregator
from doughmain.core.security import AuthContext, get_auth_context

logger = logging.getLogger(__name__)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> DocumentStore:
    return request.app.state.store


def get_identity(request: Request) -> IdentityProvider:
    return request.app.state.identity


def get_aggregator(request: Request) -> PlaidAggregator:
    # Built at startup; if that failed (missing credentials) retry here so
    # the ConfigurationError surfaces on the request that needs the client.
    # Handlers call this inside their own try block, not through Depends.
    aggregator = request.app.state.aggregator
    if aggregator is None:
        aggregator = build_aggregator(request.app.state.settings)
        request.app.state.aggregator = aggregator
    return aggregator


settings_dep = Annotated[Settings, Depends(get_app_settings)]
store_dep = Annotated[DocumentStore, Depends(get_store)]
identity_dep = Annotated[IdentityProvider, Depends(get_identity)]
auth_dep = Annotated[Optional[AuthContext], Depends(get_auth_context)]
