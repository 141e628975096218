import base64
import hashlib
import hmac
import secrets
from datetime import datetime, timedelta, timezone
from jose import jwt
from app.core.config import JWT_SECRET, JWT_EXPIRE_MIN

ALGO = "HS256"

# principal kinds carried in the token
KIND_ADMIN = "admin"
KIND_SUB_USER = "sub_user"

# PBKDF2 settings
PBKDF2_ITERATIONS = 210_000
SALT_BYTES = 16
DKLEN = 32

def hash_password(password: str) -> str:
    if not isinstance(password, str) or len(password) < 8:
        raise ValueError("Password too short")
    # cap extremely long passwords to avoid DoS (still very generous)
    if len(password) > 256:
        raise ValueError("Password too long")

    salt = secrets.token_bytes(SALT_BYTES)
    dk = hashlib.pbkdf2_hmac(
        "sha256",
        password.encode("utf-8"),
        salt,
        PBKDF2_ITERATIONS,
        dklen=DKLEN,
    )
    # store: pbkdf2_sha256$iterations$salt_b64$hash_b64
    return "pbkdf2_sha256${}${}${}".format(
        PBKDF2_ITERATIONS,
        base64.b64encode(salt).decode("ascii"),
        base64.b64encode(dk).decode("ascii"),
    )

def verify_password(password: str, stored: str | None) -> bool:
    try:
        algo, iters, salt_b64, hash_b64 = (stored or "").split("$", 3)
        if algo != "pbkdf2_sha256":
            return False
        iters = int(iters)
        salt = base64.b64decode(salt_b64.encode("ascii"))
        expected = base64.b64decode(hash_b64.encode("ascii"))
        dk = hashlib.pbkdf2_hmac(
            "sha256",
            password.encode("utf-8"),
            salt,
            iters,
            dklen=len(expected),
        )
        return hmac.compare_digest(dk, expected)
    except Exception:
        return False

def create_access_token(principal_id: int, kind: str = KIND_ADMIN) -> str:
    exp = datetime.now(timezone.utc) + timedelta(minutes=JWT_EXPIRE_MIN)
    payload = {"sub": str(principal_id), "kind": kind, "exp": exp}
    return jwt.encode(payload, JWT_SECRET, algorithm=ALGO)

def decode_token(token: str) -> tuple[str, int]:
    payload = jwt.decode(token, JWT_SECRET, algorithms=[ALGO])
    kind = payload.get("kind") or KIND_ADMIN
    if kind not in (KIND_ADMIN, KIND_SUB_USER):
        raise ValueError("Unknown principal kind")
    return kind, int(payload["sub"])
