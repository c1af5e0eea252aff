from jose import JWTError, jwt
from app.core.config import settings


def decode_access_token(token: str) -> dict:
    """Decode an access token issued by the identity provider.

    Raises JWTError when the signature, expiry or token type is wrong.
    """
    payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    if payload.get("type") != "access":
        raise JWTError("Not an access token")
    return payload
