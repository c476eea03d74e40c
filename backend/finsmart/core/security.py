"""Security utilities - JWT access tokens, refresh secrets, password hashing"""

from datetime import datetime, timedelta, timezone
from typing import Optional
import base64
import hashlib
import secrets

import bcrypt
from jose import ExpiredSignatureError, JWTError, jwt

from finsmart.config import Settings, settings
from finsmart.core.exceptions import TokenExpiredError, TokenInvalidError
from finsmart.schemas.auth import AccessTokenClaims, Principal

ACCESS_TOKEN_TYPE = "access"
REFRESH_SECRET_BYTES = 48


def prepare_password(password: str) -> bytes:
    """
    Reduce a password of any length to bcrypt's 72-byte input limit

    SHA-256 digest, base64 encoded: 44 ASCII bytes with no NUL characters.
    """
    digest = hashlib.sha256(password.encode('utf-8')).digest()
    return base64.b64encode(digest)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a password against its hash

    Args:
        plain_password: Plain text password
        hashed_password: Hashed password

    Returns:
        bool: True if password matches; False for a malformed stored hash
    """
    try:
        return bcrypt.checkpw(
            prepare_password(plain_password),
            hashed_password.encode('utf-8')
        )
    except ValueError:
        return False


def get_password_hash(password: str) -> str:
    """
    Hash a password using bcrypt

    Args:
        password: Plain text password, any length

    Returns:
        str: Hashed password
    """
    return bcrypt.hashpw(
        prepare_password(password),
        bcrypt.gensalt()
    ).decode('utf-8')


class TokenCodec:
    """Sign and verify access tokens; mint and hash refresh secrets.

    Holds no mutable state: the signing key and default lifetime come from the
    settings instance it was built with.
    """

    def __init__(self, config: Settings):
        self._secret = config.ACCESS_TOKEN_SECRET
        self._algorithm = config.ALGORITHM
        self.access_token_ttl = timedelta(seconds=config.ACCESS_TOKEN_EXPIRES_IN)

    def sign_access_token(self, principal: Principal, expires_delta: Optional[timedelta] = None) -> str:
        """
        Create JWT access token

        Args:
            principal: Identity to embed (id, username, role)
            expires_delta: Override for the configured lifetime

        Returns:
            str: Encoded JWT token
        """
        now = datetime.now(timezone.utc)
        expire = now + (expires_delta if expires_delta is not None else self.access_token_ttl)

        to_encode = {
            "sub": str(principal.id),
            "username": principal.username,
            "role": principal.role.value,
            "typ": ACCESS_TOKEN_TYPE,
            "iat": now,
            "exp": expire,
            "jti": secrets.token_urlsafe(16),
        }
        return jwt.encode(to_encode, self._secret, algorithm=self._algorithm)

    def verify_access_token(self, token: str) -> AccessTokenClaims:
        """
        Decode and verify JWT access token

        Args:
            token: JWT token string

        Returns:
            AccessTokenClaims: Decoded identity plus issue/expiry metadata

        Raises:
            TokenExpiredError: Past the ``exp`` claim
            TokenInvalidError: Bad signature, malformed payload or wrong token type
        """
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except ExpiredSignatureError:
            raise TokenExpiredError()
        except JWTError:
            raise TokenInvalidError()

        if payload.get("typ") != ACCESS_TOKEN_TYPE:
            raise TokenInvalidError()

        try:
            return AccessTokenClaims(
                id=int(payload["sub"]),
                username=payload["username"],
                role=payload["role"],
                issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
                expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
                jti=payload["jti"],
            )
        except (KeyError, TypeError, ValueError):
            raise TokenInvalidError()

    @staticmethod
    def generate_refresh_secret() -> str:
        """Opaque refresh token: 48 random bytes, hex encoded"""
        return secrets.token_hex(REFRESH_SECRET_BYTES)

    @staticmethod
    def hash_refresh_secret(raw_secret: str) -> str:
        """SHA-256 digest used to store and look up refresh tokens"""
        return hashlib.sha256(raw_secret.encode('utf-8')).hexdigest()


token_codec = TokenCodec(settings)
