"""Clerk identity provider adapter.

Talks to the Clerk backend REST API over httpx:

- GET   /users/{id}                              -> one user
- PATCH /users/{id}   {"public_metadata": {...}}  -> replace public metadata
- GET   /users?limit=&offset=&order_by=-created_at -> page of users

Handles:
- Timeout/connection errors -> transient IdentityProviderError
- 404 -> not found (non-transient)
- 429 and 5xx -> transient
- Other non-2xx -> rejected (non-transient)
- Malformed JSON -> invalid response

Returns Result types; transport failures never raise.
"""

from typing import Any

import httpx
import structlog

from authz.core.constants import RESPONSE_BODY_MAX_LENGTH
from authz.core.enums import ErrorCode
from authz.core.result import Failure, Result, Success
from authz.domain.entities import PrincipalProfile
from authz.domain.errors import IdentityProviderError
from authz.infrastructure.identity.metadata_mapper import (
    metadata_from_profile,
    profile_from_user,
)


class ClerkIdentityProvider:
    """Identity provider adapter for Clerk.

    Opens an httpx.AsyncClient per call so instances are safe to share across
    event loops and requests.

    Attributes:
        _base_url: Backend API base URL (without trailing slash).
        _secret_key: Backend API secret key (bearer token).
        _timeout: Request timeout in seconds.

    Example:
        >>> provider = ClerkIdentityProvider(secret_key="sk_test_...")
        >>> result = await provider.get_profile("user_2abc")
    """

    def __init__(
        self,
        *,
        secret_key: str,
        base_url: str = "https://api.clerk.com/v1",
        timeout: float = 10.0,
    ) -> None:
        """Initialize Clerk client.

        Args:
            secret_key: Clerk backend secret key.
            base_url: Backend API base URL.
            timeout: Request timeout in seconds.
        """
        self._base_url = base_url.rstrip("/")
        self._secret_key = secret_key
        self._timeout = timeout
        self._logger = structlog.get_logger("clerk_api")

    async def get_profile(
        self, principal_id: str
    ) -> Result[PrincipalProfile, IdentityProviderError]:
        """Read one user's profile.

        Args:
            principal_id: Clerk user id.

        Returns:
            Success(PrincipalProfile) or Failure(IdentityProviderError).
        """
        result = await self._request_json(
            method="GET", path=f"/users/{principal_id}", operation="get_profile"
        )
        return self._to_profile(result, operation="get_profile")

    async def update_profile(
        self, profile: PrincipalProfile
    ) -> Result[PrincipalProfile, IdentityProviderError]:
        """Replace the user's public metadata with the profile's metadata.

        Args:
            profile: Profile to write (must carry an id).

        Returns:
            Success(PrincipalProfile) as stored, or Failure(IdentityProviderError).
        """
        if not profile.id:
            return Failure(
                error=IdentityProviderError(
                    code=ErrorCode.INVALID_PRINCIPAL,
                    message="Cannot update a profile without an id",
                    is_transient=False,
                )
            )

        result = await self._request_json(
            method="PATCH",
            path=f"/users/{profile.id}",
            json_data={"public_metadata": metadata_from_profile(profile)},
            operation="update_profile",
        )
        return self._to_profile(result, operation="update_profile")

    async def list_profiles(
        self, *, limit: int, offset: int
    ) -> Result[list[PrincipalProfile], IdentityProviderError]:
        """List users newest first.

        Args:
            limit: Page size.
            offset: Users to skip.

        Returns:
            Success(list[PrincipalProfile]) or Failure(IdentityProviderError).
        """
        result = await self._request_json(
            method="GET",
            path="/users",
            params={"limit": str(limit), "offset": str(offset), "order_by": "-created_at"},
            operation="list_profiles",
        )
        match result:
            case Failure():
                return result
            case Success(value=data) if isinstance(data, list) and all(
                isinstance(user, dict) for user in data
            ):
                return Success(value=[profile_from_user(user) for user in data])
            case _:
                return self._invalid_response("list_profiles", "Expected a JSON array of users")

    # =========================================================================
    # HTTP helpers
    # =========================================================================

    async def _request_json(
        self,
        *,
        method: str,
        path: str,
        operation: str,
        params: dict[str, str] | None = None,
        json_data: dict[str, Any] | None = None,
    ) -> Result[Any, IdentityProviderError]:
        """Execute a request and parse the JSON body.

        Args:
            method: HTTP method.
            path: URL path relative to base_url.
            operation: Operation name for logging.
            params: Optional query parameters.
            json_data: Optional JSON body.

        Returns:
            Success(parsed JSON) or Failure(IdentityProviderError).
        """
        url = f"{self._base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.request(
                    method=method,
                    url=url,
                    headers={"Authorization": f"Bearer {self._secret_key}"},
                    params=params,
                    json=json_data,
                )
        except httpx.TimeoutException as e:
            self._logger.warning("clerk_api_timeout", operation=operation, error=str(e))
            return Failure(
                error=IdentityProviderError(
                    code=ErrorCode.IDENTITY_PROVIDER_UNAVAILABLE,
                    message="Clerk API request timed out",
                    is_transient=True,
                )
            )
        except httpx.RequestError as e:
            self._logger.warning(
                "clerk_api_connection_error", operation=operation, error=str(e)
            )
            return Failure(
                error=IdentityProviderError(
                    code=ErrorCode.IDENTITY_PROVIDER_UNAVAILABLE,
                    message=f"Failed to connect to Clerk API: {e}",
                    is_transient=True,
                )
            )

        error = self._check_error_response(response, operation)
        if error is not None:
            return error

        try:
            return Success(value=response.json())
        except ValueError as e:
            self._logger.warning("clerk_api_invalid_json", operation=operation, error=str(e))
            return self._invalid_response(operation, f"Invalid JSON from Clerk: {e}")

    def _check_error_response(
        self, response: httpx.Response, operation: str
    ) -> Failure[IdentityProviderError] | None:
        """Map a non-2xx response to IdentityProviderError (None if OK)."""
        status = response.status_code

        if 200 <= status < 300:
            return None

        if status == 404:
            self._logger.warning("clerk_api_not_found", operation=operation)
            return Failure(
                error=IdentityProviderError(
                    code=ErrorCode.PRINCIPAL_NOT_FOUND,
                    message="User not found in Clerk",
                    is_transient=False,
                    status_code=status,
                )
            )

        if status == 429 or status >= 500:
            self._logger.warning(
                "clerk_api_unavailable", operation=operation, status_code=status
            )
            return Failure(
                error=IdentityProviderError(
                    code=ErrorCode.IDENTITY_PROVIDER_UNAVAILABLE,
                    message=f"Clerk API unavailable: {status}",
                    is_transient=True,
                    status_code=status,
                )
            )

        self._logger.warning("clerk_api_rejected", operation=operation, status_code=status)
        return Failure(
            error=IdentityProviderError(
                code=ErrorCode.IDENTITY_PROVIDER_REJECTED,
                message=f"Clerk API rejected request: {status}",
                is_transient=False,
                status_code=status,
                details={"response_body": response.text[:RESPONSE_BODY_MAX_LENGTH]},
            )
        )

    def _to_profile(
        self, result: Result[Any, IdentityProviderError], *, operation: str
    ) -> Result[PrincipalProfile, IdentityProviderError]:
        match result:
            case Failure():
                return result
            case Success(value=data) if isinstance(data, dict) and data.get("id"):
                return Success(value=profile_from_user(data))
            case _:
                return self._invalid_response(operation, "Expected a JSON user object")

    def _invalid_response(
        self, operation: str, message: str
    ) -> Failure[IdentityProviderError]:
        self._logger.warning("clerk_api_invalid_response", operation=operation)
        return Failure(
            error=IdentityProviderError(
                code=ErrorCode.IDENTITY_PROVIDER_INVALID_RESPONSE,
                message=message,
                is_transient=False,
            )
        )
