"""
Security utilities: verification of Supabase Auth access tokens.
"""

from jose import jwt, JWTError

from case_tracker.config import Settings


def decode_access_token(token: str, settings: Settings) -> dict | None:
    """Decode and validate a Supabase access token. Returns payload or None if invalid."""
    try:
        payload = jwt.decode(
            token,
            settings.SUPABASE_JWT_SECRET,
            algorithms=["HS256"],
            audience=settings.SUPABASE_JWT_AUDIENCE,
        )
        return payload
    except JWTError:
        return None
