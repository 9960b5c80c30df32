"""Endpoint wrappers for the echoreads API."""

from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from .client import AuthenticatedClient

CONTENT_TYPES = ("magazines", "articles", "digests")


class EchoReadsAPI:
    """Thin domain layer over AuthenticatedClient. Returns decoded bodies."""

    def __init__(self, client: "AuthenticatedClient"):
        self.client = client

    # Authentication endpoints

    async def login(self, email: str, password: str) -> Any:
        response = await self.client.post(
            "/auth/login", {"email": email, "password": password}
        )
        return response.body

    async def signup(self, name: str, email: str, password: str) -> Any:
        response = await self.client.post(
            "/auth/signup", {"name": name, "email": email, "password": password}
        )
        return response.body

    async def verify_email(self, email: str, otp: str) -> Any:
        response = await self.client.post(
            "/auth/verify-email", {"email": email, "otp": otp}
        )
        return response.body

    # Content endpoints

    async def fetch_magazines(
        self, content_type: str = "magazines", page: int = 1, limit: int = 20
    ) -> Any:
        """List magazines, articles or digests."""
        if content_type not in CONTENT_TYPES:
            raise ValueError(
                f"Unknown content type {content_type!r}, expected one of {', '.join(CONTENT_TYPES)}"
            )
        params: Dict[str, Any] = {"type": content_type, "page": page, "limit": limit}
        response = await self.client.get("/magazines", params=params)
        return response.body

    async def fetch_magazine_detail(self, magazine_id: Optional[str]) -> Any:
        if not magazine_id or not str(magazine_id).strip():
            raise ValueError("A magazine id is required")
        response = await self.client.get(f"/magazines/{str(magazine_id).strip()}")
        return response.body


def extract_items(body: Any, content_type: str) -> list:
    """Pull the item list out of the shapes the listing endpoint returns."""
    if isinstance(body, list):
        return body
    if not isinstance(body, dict):
        return []
    data = body.get("data", body)
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key in (content_type, "items", "results"):
            items = data.get(key)
            if isinstance(items, list):
                return items
    return []
