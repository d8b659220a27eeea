# backend/api/services/auth.py
"""
Request authentication. Tokens are Cognito access tokens issued to the
dashboard; we resolve them to a Cognito `sub` and load (or create) the
matching row in the Users table.
"""
import os
from typing import Optional, Tuple

import boto3
from botocore.exceptions import ClientError
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from db import dynamo
from models.user import UserProfile

AWS_REGION = os.getenv("AWS_REGION", "eu-north-1")

cognito = boto3.client("cognito-idp", region_name=AWS_REGION)
bearer = HTTPBearer(auto_error=False)


def resolve_token(access_token: str) -> Tuple[str, Optional[str]]:
    """Return (sub, email) for a valid access token."""
    try:
        resp = cognito.get_user(AccessToken=access_token)
    except ClientError as e:
        msg = e.response.get("Error", {}).get("Message", "Invalid token")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=msg)

    attrs = {a["Name"]: a["Value"] for a in resp.get("UserAttributes", [])}
    return attrs.get("sub") or resp.get("Username", ""), attrs.get("email")


def get_current_user(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
) -> UserProfile:
    if creds is None or not creds.credentials:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="No token provided")

    sub, email = resolve_token(creds.credentials)
    user = UserProfile(**dynamo.ensure_user(sub, email))
    if user.is_banned:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User is banned")
    return user


def require_verified(user: UserProfile = Depends(get_current_user)) -> UserProfile:
    if not user.is_verified:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Verified account required")
    return user


def require_admin(user: UserProfile = Depends(get_current_user)) -> UserProfile:
    if not user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user
