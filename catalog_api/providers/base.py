import logging
from concurrent.futures import ThreadPoolExecutor, as_completed

import requests

from catalog_api.errors import UpstreamError

logger = logging.getLogger(__name__)


class ProviderClient:
    """Shared HTTP plumbing for the external metadata providers."""

    source = "provider"
    page_size = 20

    def __init__(self, base_url: str, timeout: float = 10, max_workers: int = 8, session: requests.Session | None = None):
        """
        Initialize the client.

        Args:
            base_url: Provider root URL.
            timeout: Seconds before a request is abandoned.
            max_workers: Threads used by ``fetch_many``.
            session: Optional pre-built session, mainly for tests.
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_workers = max(1, int(max_workers))
        self.session = session or requests.Session()
        self.session.headers.setdefault("Accept", "application/json")

    def get_json(self, path: str = "", params: dict | None = None, not_found_ok: bool = False):
        """
        Issue a GET request and decode the JSON body.

        Args:
            path: Path appended to the base URL.
            params: Query string parameters.
            not_found_ok: Return None instead of failing on a 404.

        Returns:
            dict | None: Decoded JSON object, None for an allowed 404.

        Raises:
            UpstreamError: On transport errors, non-2xx status or a non-object body.
        """
        url = f"{self.base_url}/{path.lstrip('/')}" if path else f"{self.base_url}/"
        logger.debug("%s request %s %s", self.source, url, {k: v for k, v in (params or {}).items() if k not in ("apikey", "api_key")})
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
            if not_found_ok and response.status_code == 404:
                return None
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as exc:
            logger.warning("%s request failed: %s", self.source, exc)
            raise UpstreamError(f"{self.source} request failed: {exc}") from exc
        except ValueError as exc:
            logger.warning("%s returned a non-JSON body", self.source)
            raise UpstreamError(f"{self.source} returned an invalid response") from exc

        if not isinstance(payload, dict):
            raise UpstreamError(f"{self.source} returned an invalid response")
        return payload

    def fetch_many(self, identifiers: list[str], fetch):
        """
        Run ``fetch`` for every identifier concurrently and keep the input order.

        Args:
            identifiers: Provider identifiers to resolve.
            fetch: Callable taking one identifier.

        Returns:
            list: Results aligned with ``identifiers``.
        """
        if not identifiers:
            return []

        results = [None] * len(identifiers)
        worker_count = min(self.max_workers, len(identifiers))
        with ThreadPoolExecutor(max_workers=worker_count) as executor:
            future_map = {executor.submit(fetch, identifier): index for index, identifier in enumerate(identifiers)}
            for future in as_completed(future_map):
                results[future_map[future]] = future.result()
        return results

    def fetch_known(self, identifiers: list[str], fetch):
        """Like ``fetch_many``, dropping ids the provider does not know and logging each one."""
        known = []
        for identifier, result in zip(identifiers, self.fetch_many(identifiers, fetch)):
            if result is None:
                logger.warning("%s has no record for id %s, skipping it", self.source, identifier)
                continue
            known.append(result)
        return known
