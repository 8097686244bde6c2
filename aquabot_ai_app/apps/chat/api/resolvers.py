# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter

# chat/api/resolvers.py
from typing import Optional

from fastapi import Header, HTTPException


async def get_user_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    """Identity is resolved upstream; the gateway only trusts the forwarded user id header."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail={"code": "AUTH_REQUIRED",
                                                     "message": "You must be logged in to use AquaBot",
                                                     "retryable": False})
    return x_user_id.strip()
