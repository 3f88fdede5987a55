"""User directory HTTP client for listing hub participants"""

import httpx
from typing import List
from meinha_ledger.domain.models import HubUser
from meinha_ledger.domain.exceptions import UserDirectoryError
from meinha_ledger.config import settings


class UserDirectoryClient:
    """Client for the external user directory"""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url or settings.user_directory_base
        self.timeout = timeout or settings.http_timeout_seconds
        self.transport = transport

    async def list_users(self) -> List[HubUser]:
        """
        Fetch every registered participant.

        Raises:
            UserDirectoryError: On timeout, HTTP errors, or invalid response
        """
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                response = await client.get(f"{self.base_url}/users")
                response.raise_for_status()
                data = response.json()

                return [
                    HubUser(
                        id=str(user["id"]),
                        username=user["username"],
                        name=user.get("name"),
                    )
                    for user in data.get("users", [])
                ]

            except httpx.TimeoutException as e:
                raise UserDirectoryError(f"User directory timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                raise UserDirectoryError(f"User directory error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                raise UserDirectoryError(f"User directory unreachable: {e}") from e
            except (KeyError, ValueError, TypeError, AttributeError) as e:
                raise UserDirectoryError(f"Invalid user data from directory: {e}") from e
