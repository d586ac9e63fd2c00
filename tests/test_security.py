import pytest
import jwt

from medicare.core.config import settings
from medicare.core.security import create_access_token, get_password_hash, pwd_context, verify_token


@pytest.mark.unit
class TestSecurity:
    """Credential hashing and caller tokens."""

    def test_password_hashing(self) -> None:
        hashed = get_password_hash("admin123")

        assert hashed != "admin123"
        assert pwd_context.verify("admin123", hashed)
        assert not pwd_context.verify("wrong", hashed)

    def test_access_token_round_trip(self) -> None:
        payload = verify_token(create_access_token("7", {"role": "patient"}))

        assert payload["sub"] == "7"
        assert payload["role"] == "patient"

    def test_garbage_token_rejected(self) -> None:
        assert verify_token("not-a-token") is None

    def test_foreign_signature_rejected(self) -> None:
        token = jwt.encode({"sub": "7", "role": "admin", "token_type": "access"}, "other-secret", algorithm="HS256")

        assert verify_token(token) is None

    def test_other_token_type_rejected(self) -> None:
        token = jwt.encode(
            {"sub": "7", "role": "patient", "token_type": "refresh"},
            settings.SECRET_KEY, algorithm=settings.ALGORITHM
        )

        assert verify_token(token) is None
