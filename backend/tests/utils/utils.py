import random
import string
from datetime import timedelta

from app.core.security import create_access_token


def random_lower_string() -> str:
    return "".join(random.choices(string.ascii_lowercase, k=32))


def get_user_token_headers(subject: str | None = None) -> dict[str, str]:
    """Bearer headers for a token as the identity provider would issue it."""
    token = create_access_token(
        subject=subject or f"user_{random_lower_string()}",
        expires_delta=timedelta(minutes=5),
    )
    return {"Authorization": f"Bearer {token}"}
