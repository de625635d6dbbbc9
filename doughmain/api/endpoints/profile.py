# doughmain/api/endpoints/profile.py
import logging

from fastapi import APIRouter, HTTPException, status

from doughmain.api.deps import identity_dep
from doughmain.core import schemas
from doughmain.core.errors import (
    AlreadyExistsError,
    AuthenticationError,
    NotFoundError,
    UserDisabledError,
)

router = APIRouter(prefix="/profile", tags=["Profile"])


@router.post(
    "/register", response_model=schemas.UserResponse, status_code=status.HTTP_201_CREATED
)
async def register(payload: schemas.UserCreate, identity: identity_dep):
    try:
        user = await identity.create_user(
            payload.email, payload.password, display_name=payload.display_name
        )
    except AlreadyExistsError:
        raise HTTPException(status.HTTP_409_CONFLICT, "User already exists")
    return schemas.UserResponse(
        uid=user.uid,
        email=user.email,
        display_name=user.display_name,
        disabled=user.disabled,
    )


@router.post("/login", response_model=schemas.Token)
async def login(payload: schemas.UserLogin, identity: identity_dep):
    try:
        user = await identity.authenticate(payload.email, payload.password)
    except NotFoundError:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "User does not exist")
    except UserDisabledError as error:
        raise HTTPException(status.HTTP_403_FORBIDDEN, str(error))
    except AuthenticationError:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Incorrect password")

    logging.info(f"User {user.uid} signed in")
    return schemas.Token(access_token=identity.create_id_token(user))
