from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from robodash.config import Config
from robodash.constants import API_KEY_HEADER
from robodash.schemas import CommandRequest, decode_payload
from robodash.state import ErrorInfo, ErrorKind, FetchResult, ResourceKey


class RobotApiClient:
    """
    Async request executor for the robot backend.

    One call per method invocation: no retry, no caching. Every failure is
    returned as a FetchResult carrying an ErrorInfo; nothing raises past this class.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 0.8,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._api_key = api_key
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    @classmethod
    def from_config(
        cls, cfg: Config, transport: httpx.AsyncBaseTransport | None = None
    ) -> "RobotApiClient":
        return cls(cfg.API_URL, cfg.API_KEY, timeout=cfg.REQUEST_TIMEOUT_S, transport=transport)

    def _headers(self, json_body: bool = False) -> dict[str, str]:
        headers = {API_KEY_HEADER: self._api_key}
        if json_body:
            headers["content-type"] = "application/json"
        return headers

    async def fetch(self, key: ResourceKey) -> FetchResult[Any]:
        """GET the resource identified by `key` and decode it into its schema."""
        path = f"/robots/{key.robot_id}{key.kind.path}"
        result = await self._request("GET", path, params=key.query)
        if not result.ok:
            return result
        try:
            return FetchResult.success(decode_payload(key.kind, result.value))
        except ValidationError as e:
            logging.debug("Decode failed for %s: %s", path, e)
            return FetchResult.failure(
                ErrorInfo(ErrorKind.DECODE_FAILURE, message=f"{e.error_count()} validation error(s)")
            )

    async def post_command(self, robot_id: str, request: CommandRequest) -> FetchResult[Any]:
        """POST a command; the backend creates the CommandRecord asynchronously."""
        return await self._request(
            "POST",
            f"/robots/{robot_id}/commands",
            json=request.model_dump(mode="json"),
            expect_body=False,
        )

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, str] | None = None,
        json: Any = None,
        expect_body: bool = True,
    ) -> FetchResult[Any]:
        try:
            response = await self._http.request(
                method,
                path,
                params=params or None,
                json=json,
                headers=self._headers(json_body=json is not None),
            )
        except httpx.TimeoutException:
            logging.debug("%s %s timed out after %.2fs", method, path, self.timeout)
            return FetchResult.failure(ErrorInfo(ErrorKind.TIMEOUT, message=f"{self.timeout:.2f}s"))
        except httpx.HTTPError as e:
            logging.debug("%s %s unreachable: %s", method, path, e)
            return FetchResult.failure(ErrorInfo(ErrorKind.UNREACHABLE, message=str(e)))
        except (httpx.InvalidURL, ValueError) as e:
            # Raised while building the request (bad base URL, non-ASCII key header)
            logging.warning("%s %s could not be sent: %s", method, path, e)
            return FetchResult.failure(ErrorInfo(ErrorKind.UNREACHABLE, message=str(e)))

        if not response.is_success:
            return FetchResult.failure(
                ErrorInfo(ErrorKind.REMOTE_REJECTED, status_code=response.status_code)
            )
        if not expect_body:
            return FetchResult.success(None)
        try:
            return FetchResult.success(response.json())
        except ValueError as e:
            return FetchResult.failure(ErrorInfo(ErrorKind.DECODE_FAILURE, message=str(e)))

    async def aclose(self) -> None:
        await self._http.aclose()
