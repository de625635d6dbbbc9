# doughmain/core/schemas.py
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


# =========================
# HTTP-style request bodies
# =========================
class LinkTokenRequest(BaseModel):
    user_id: Optional[str] = None


class ExchangePublicTokenRequest(BaseModel):
    public_token: Optional[str] = None
    user_id: Optional[str] = None


class FetchTransactionsRequest(BaseModel):
    user_id: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None


class UpdateBalancesRequest(BaseModel):
    user_id: Optional[str] = None


class SetAdminRoleRequest(BaseModel):
    email: Optional[str] = None
    adminKey: Optional[str] = None


class CheckAdminStatusRequest(BaseModel):
    uid: Optional[str] = None


# =========================
# HTTP-style responses
# =========================
class ExchangePublicTokenResponse(BaseModel):
    success: bool
    accounts: List[Dict[str, Any]]
    message: str


class FetchTransactionsResponse(BaseModel):
    success: bool
    transactions: List[Dict[str, Any]]
    count: int


class UpdateBalancesResponse(BaseModel):
    success: bool
    message: str
    updated: List[str] = Field(default_factory=list)
    skipped: List[str] = Field(default_factory=list)


class SetAdminRoleResponse(BaseModel):
    success: bool
    message: str
    uid: str


class CheckAdminStatusResponse(BaseModel):
    isAdmin: bool


# =========================
# Callable envelope
# =========================
class CallableRequest(BaseModel):
    """Callable operations take their arguments under `data`."""

    model_config = ConfigDict(extra="ignore")

    data: Optional[Dict[str, Any]] = None

    def args(self) -> Dict[str, Any]:
        return self.data or {}


# =========================
# Profile (identity front door)
# =========================
class UserCreate(BaseModel):
    email: str
    password: str = Field(min_length=6)
    display_name: Optional[str] = None


class UserLogin(BaseModel):
    email: str
    password: str


class UserResponse(BaseModel):
    uid: str
    email: str
    display_name: Optional[str] = None
    disabled: bool


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
