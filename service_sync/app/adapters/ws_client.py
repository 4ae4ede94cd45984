"""
Remote catalog client.
"""

from typing import Any, Dict, Optional

import httpx

from shared.circuit_breaker import CircuitBreakerManager, CircuitBreakerOpenException
from shared.errors import MalformedResponseError, ServerError, TransportError
from shared.logging import get_logger
from shared.retry import RetryConfig, RetryError, retry_on_exception
from ..domain.models import Site


class WebServiceClient:
    """Sends ``(method, params)`` calls to a site and unwraps the response envelope."""

    def __init__(
        self,
        ws_path: str = "/webservice/rest/server.php",
        timeout: float = 30.0,
        retry_config: Optional[RetryConfig] = None,
        circuit_breakers: Optional[CircuitBreakerManager] = None,
    ):
        self.ws_path = ws_path
        self.timeout = timeout
        self.logger = get_logger("sync.ws_client")
        self.retry_config = retry_config or RetryConfig(max_attempts=2, base_delay=0.5, max_delay=5.0)
        self.circuit_breakers = circuit_breakers or CircuitBreakerManager(failure_threshold=5, recovery_timeout=30.0)

    def endpoint(self, site: Site) -> str:
        return f"{site.url.rstrip('/')}{self.ws_path}"

    async def send(self, method: str, params: Dict[str, Any], site: Site) -> Any:
        """Perform one remote call and return its ``data`` payload.

        Raises TransportError when the site cannot be reached, ServerError when
        it rejects the call and MalformedResponseError when the body does not
        match the envelope.
        """
        breaker = self.circuit_breakers.get_circuit_breaker(f"site:{site.id}", expected_exception=TransportError)
        try:
            return await breaker.call(self._send, method, params, site)
        except CircuitBreakerOpenException as exc:
            raise TransportError(
                f"Site {site.id} temporarily unavailable",
                details={"site_id": site.id, "circuit": "open"},
            ) from exc

    async def _send(self, method: str, params: Dict[str, Any], site: Site) -> Any:
        url = self.endpoint(site)
        body = {"method": method, "params": params, "token": site.token}

        try:
            response = await retry_on_exception((httpx.TransportError,), config=self.retry_config)(self._post)(url, body)
        except RetryError as exc:
            self.logger.warning("Remote call unreachable", url=url, method=method, error=str(exc.last_exception))
            raise TransportError(
                f"{site.url} unreachable: {exc.last_exception}",
                details={"site_id": site.id, "method": method},
            ) from exc

        return self._unwrap(response, method)

    async def _post(self, url: str, body: Dict[str, Any]) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.post(url, json=body)

    def _unwrap(self, response: httpx.Response, method: str) -> Any:
        if response.status_code >= 400:
            self.logger.error(
                "Remote call rejected",
                method=method,
                status_code=response.status_code,
                response=response.text[:200],
            )
            raise ServerError(
                str(response.status_code),
                f"HTTP {response.status_code}",
                details={"method": method},
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise MalformedResponseError(f"Response to {method} is not JSON", details={"method": method}) from exc

        if not isinstance(payload, dict):
            raise MalformedResponseError(f"Response to {method} is not an object", details={"method": method})

        # Moodle-style exception body
        if "exception" in payload and "success" not in payload:
            raise ServerError(
                payload.get("errorcode") or "exception",
                payload.get("message") or payload["exception"],
                details={"method": method},
            )

        success = payload.get("success")
        if success is True:
            if "data" not in payload:
                raise MalformedResponseError(f"Response to {method} has no data", details={"method": method})
            return payload["data"]

        if success is False:
            error = payload.get("error")
            if not isinstance(error, dict):
                raise MalformedResponseError(f"Response to {method} has no error detail", details={"method": method})
            raise ServerError(
                error.get("code") or "unknown",
                error.get("message") or "Remote call failed",
                details={"method": method},
            )

        raise MalformedResponseError(f"Response to {method} has no success flag", details={"method": method})
