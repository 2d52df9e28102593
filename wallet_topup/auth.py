from fastapi import Depends, Header, HTTPException
from jose import jwt

from wallet_topup import config


def verify_token(authorization: str = Header(...)) -> dict:
    try:
        scheme, token = authorization.split()
        if scheme.lower() != "bearer":
            raise ValueError("unsupported scheme")
        claims = jwt.decode(token, config.jwt_secret(), algorithms=["HS256"])
        if not claims.get("sub"):
            raise ValueError("token has no subject")
    except Exception:
        raise HTTPException(status_code=401, detail="Invalid or missing token")
    return claims


def current_user_id(claims: dict = Depends(verify_token)) -> str:
    return claims["sub"]


def require_admin(claims: dict = Depends(verify_token)) -> dict:
    if claims.get("admin") is not True:
        raise HTTPException(status_code=403, detail="Admin privileges required")
    return claims
