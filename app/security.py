import hashlib
import hmac
import json
import logging
from urllib.parse import parse_qsl

from pydantic import ValidationError as PydanticValidationError

from app.errors import InvalidSignature, ValidationError
from schemas.user import TelegramIdentity

logger = logging.getLogger("wallet.security")

DEMO_INIT_DATA = "demo"
DEMO_IDENTITY = {
    "id": 12345678,
    "first_name": "Demo",
    "last_name": "User",
    "username": "demo_user",
    "photo_url": "https://t.me/i/userpic/320/demo_userpic.jpg",
}


def _mask_user_id(user_id) -> str:
    value = str(user_id or "").strip()
    if not value:
        return "-"
    if len(value) <= 8:
        return value
    return f"{value[:4]}...{value[-4:]}"


def _audit_auth_failure(reason: str, *, claimed_user_id=None, hash_present: bool | None = None) -> None:
    logger.warning(
        "AUTH_DENY reason=%s claimed=%s hash_present=%s",
        reason,
        _mask_user_id(claimed_user_id),
        "-" if hash_present is None else int(bool(hash_present)),
    )


def build_data_check_string(pairs: dict[str, str]) -> str:
    return "\n".join(f"{key}={pairs[key]}" for key in sorted(pairs))


def sign_launch_data(pairs: dict[str, str], bot_token: str) -> str:
    """Hex HMAC of the launch pairs, as Telegram computes the ``hash`` field."""
    secret_key = hmac.new(b"WebAppData", bot_token.encode("utf-8"), hashlib.sha256).digest()
    data_check_string = build_data_check_string(pairs)
    return hmac.new(secret_key, data_check_string.encode("utf-8"), hashlib.sha256).hexdigest()


class LaunchDataVerifier:
    """Validates Telegram mini app ``initData`` against the bot token.

    ``allow_demo_identity`` is resolved once at startup; when enabled an empty
    payload or the ``"demo"`` sentinel maps to a fixed demo user. A payload
    with a wrong hash is always rejected.
    """

    def __init__(self, bot_token: str, *, allow_demo_identity: bool = False):
        self.bot_token = bot_token
        self.allow_demo_identity = allow_demo_identity

    def is_demo_payload(self, init_data: str | None) -> bool:
        return self.allow_demo_identity and (not init_data or init_data == DEMO_INIT_DATA)

    def verify(self, init_data: str | None) -> dict[str, str]:
        if self.is_demo_payload(init_data):
            logger.info("AUTH_DEMO using demo identity")
            return {"user": json.dumps(DEMO_IDENTITY)}

        pairs = dict(parse_qsl(init_data or "", keep_blank_values=True))
        received_hash = pairs.pop("hash", None)
        if not received_hash:
            _audit_auth_failure("missing_hash", hash_present=False)
            raise InvalidSignature()

        expected_hash = sign_launch_data(pairs, self.bot_token)
        if not hmac.compare_digest(expected_hash, received_hash):
            claimed = None
            try:
                claimed = json.loads(pairs.get("user") or "{}").get("id")
            except (ValueError, AttributeError):
                pass
            _audit_auth_failure("hash_mismatch", claimed_user_id=claimed, hash_present=True)
            raise InvalidSignature()
        return pairs


def extract_identity(data: dict[str, str]) -> TelegramIdentity:
    raw_user = data.get("user")
    if not raw_user:
        raise ValidationError("Invalid user data")
    try:
        return TelegramIdentity.model_validate_json(raw_user)
    except PydanticValidationError:
        _audit_auth_failure("malformed_identity")
        raise ValidationError("Invalid user data")
