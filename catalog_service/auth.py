# catalog_service/auth.py

"""
Caller authentication for the catalog endpoints.

Every catalog route requires a Bearer JWT signed with the shared HS256
secret. Who may do what beyond "is authenticated" is not modelled here.
"""
import logging
import os

from authlib.jose import JoseError, JsonWebToken
from fastapi import HTTPException, Request, status

logger = logging.getLogger(__name__)

AUTH_JWT_SECRET = os.getenv("AUTH_JWT_SECRET")
AUTH_JWT_ISSUER = os.getenv("AUTH_JWT_ISSUER")

# Only the shared-secret algorithm is accepted; any other alg header is rejected.
jwt = JsonWebToken(["HS256"])


def _claims_options() -> dict:
    options = {"sub": {"essential": True}, "exp": {"essential": True}}
    if AUTH_JWT_ISSUER:
        options["iss"] = {"essential": True, "value": AUTH_JWT_ISSUER}
    return options


def get_current_caller(request: Request) -> str:
    """Authenticate the request using a Bearer token and return its subject."""
    if not AUTH_JWT_SECRET:
        logger.error("AUTH_JWT_SECRET is not set; refusing to serve catalog requests.")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Authentication is not configured",
        )

    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing Bearer token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = auth_header.split(" ", 1)[1]
    try:
        claims = jwt.decode(
            token, AUTH_JWT_SECRET, claims_options=_claims_options()
        )
        claims.validate()
    except (JoseError, ValueError) as e:
        logger.warning(f"Rejected bearer token: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    subject = claims["sub"]
    logger.debug(f"Authenticated caller '{subject}' for {request.method} {request.url.path}")
    return subject
