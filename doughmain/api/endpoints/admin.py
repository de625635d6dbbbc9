# doughmain/api/endpoints/admin.py
import logging

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from doughmain.api.deps import identity_dep, settings_dep
from doughmain.api.responses import bad_request, error_response
from doughmain.core import schemas
from doughmain.core.security import admin_key_matches

router = APIRouter(tags=["Admin"])


@router.post("/setAdminRole", response_model=schemas.SetAdminRoleResponse)
async def set_admin_role(
    payload: schemas.SetAdminRoleRequest,
    identity: identity_dep,
    settings: settings_dep,
):
    try:
        expected_key = settings.require_admin_key()

        if not admin_key_matches(payload.adminKey, expected_key):
            logging.warning("Rejected setAdminRole call with a wrong admin key")
            return JSONResponse(
                status_code=status.HTTP_403_FORBIDDEN,
                content={"error": "Unauthorized"},
            )
        if not payload.email:
            return bad_request("Email required")

        user = await identity.get_user_by_email(payload.email)
        await identity.set_custom_user_claims(
            user.uid, {**user.custom_claims, "admin": True}
        )
        logging.info(f"Admin role granted to {user.uid}")

        return schemas.SetAdminRoleResponse(
            success=True,
            message=f"Admin role granted to {payload.email}",
            uid=user.uid,
        )
    except Exception as error:
        logging.error(f"Error setting admin role: {error}")
        return error_response(error)


@router.post("/checkAdminStatus", response_model=schemas.CheckAdminStatusResponse)
async def check_admin_status(
    payload: schemas.CheckAdminStatusRequest, identity: identity_dep
):
    if not payload.uid:
        return bad_request("User ID required")
    try:
        user = await identity.get_user(payload.uid)
        return schemas.CheckAdminStatusResponse(isAdmin=user.is_admin)
    except Exception as error:
        logging.error(f"Error checking admin status: {error}")
        return error_response(error)
