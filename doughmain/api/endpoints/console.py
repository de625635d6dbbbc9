# doughmain/api/endpoints/console.py
"""
Callable operations behind the admin console and the public site.

Each route takes `{"data": {...}}` and answers `{"result": {...}}`. Errors
are raised as CallableError and rendered by the app's exception handler;
anything unexpected is reported as `internal` with its message.
"""

import functools
import logging
from datetime import datetime, timezone

from fastapi import APIRouter

from doughmain.api.deps import auth_dep, identity_dep, store_dep
from doughmain.core import collections, content, schemas
from doughmain.core.errors import CallableError, NotFoundError
from doughmain.core.security import require_admin

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Console"])


def callable_operation(func):
    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            result = await func(*args, **kwargs)
        except CallableError:
            raise
        except NotFoundError as error:
            raise CallableError("not-found", str(error))
        except Exception as error:
            logger.error(f"{func.__name__} failed: {error}")
            raise CallableError("internal", str(error))
        return {"result": result}

    return wrapper


def _timestamp(value):
    return value.isoformat() if value else None


@router.post("/getAllUsers")
@callable_operation
async def get_all_users(
    payload: schemas.CallableRequest, context: auth_dep, identity: identity_dep
):
    require_admin(context, "Only admins can access user list")

    users = await identity.list_users(1000)
    return {
        "users": [
            {
                "uid": user.uid,
                "email": user.email,
                "displayName": user.display_name,
                "photoURL": user.photo_url,
                "disabled": user.disabled,
                "creationTime": _timestamp(user.creation_time),
                "lastSignInTime": _timestamp(user.last_sign_in_time),
                "isAdmin": user.is_admin,
            }
            for user in users
        ]
    }


@router.post("/manageContentItem")
@callable_operation
async def manage_content_item(
    payload: schemas.CallableRequest, context: auth_dep, store: store_dep
):
    context = require_admin(context, "Only admins can manage content")

    args = payload.args()
    return await content.manage_content_item(
        store,
        context.uid,
        action=args.get("action"),
        collection=args.get("collection"),
        item_id=args.get("itemId"),
        item_data=args.get("itemData"),
    )


@router.post("/getContentItems")
@callable_operation
async def get_content_items(payload: schemas.CallableRequest, store: store_dep):
    items = await content.list_content_items(store, payload.args().get("collection"))
    return {"items": items}


@router.post("/getPlatformStats")
@callable_operation
async def get_platform_stats(
    payload: schemas.CallableRequest,
    context: auth_dep,
    identity: identity_dep,
    store: store_dep,
):
    require_admin(context, "Only admins can view platform stats")

    users = await identity.list_users(1000)
    total_users = len(users)
    active_users = len([u for u in users if not u.disabled])

    total_transactions = 0
    total_accounts = 0
    user_docs = await store.collection(collections.COLLECTION_USERS).list_documents()
    for user_doc in user_docs:
        total_transactions += await collections.transactions(store, user_doc.id).count()
        total_accounts += await collections.accounts(store, user_doc.id).count()

    return {
        "totalUsers": total_users,
        "activeUsers": active_users,
        "totalTransactions": total_transactions,
        "totalAccounts": total_accounts,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.post("/toggleUserStatus")
@callable_operation
async def toggle_user_status(
    payload: schemas.CallableRequest, context: auth_dep, identity: identity_dep
):
    require_admin(context, "Only admins can toggle user status")

    args = payload.args()
    uid = args.get("uid")
    if not uid:
        raise CallableError("invalid-argument", "User ID required")
    disable = bool(args.get("disable"))

    await identity.update_user(uid, disabled=disable)
    logger.info(f"User {uid} {'disabled' if disable else 'enabled'}")

    return {"success": True, "uid": uid, "status": "disabled" if disable else "enabled"}


@router.post("/saveSiteSettings")
@callable_operation
async def save_site_settings(
    payload: schemas.CallableRequest, context: auth_dep, store: store_dep
):
    context = require_admin(context, "Only admins can modify site settings")

    await content.save_site_settings(store, context.uid, payload.args().get("settings"))
    return {"success": True}


@router.post("/getSiteSettings")
@callable_operation
async def get_site_settings(payload: schemas.CallableRequest, store: store_dep):
    return {"settings": await content.load_site_settings(store)}
