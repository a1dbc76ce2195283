import logging
import time

import httpx

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "User-Agent": "prode-backend/0.1 (round tracker)",
    "Accept": "application/json",
}


def make_client(base_url: str, timeout_s: float) -> httpx.Client:
    # The provider sometimes stalls on reads; keep connect short.
    timeout = httpx.Timeout(timeout_s, connect=min(10.0, timeout_s))
    return httpx.Client(
        base_url=base_url,
        headers=DEFAULT_HEADERS,
        timeout=timeout,
        follow_redirects=True,
    )


def get_with_retry(client: httpx.Client, url: str, retries: int = 1, backoff_s: float = 1.0) -> httpx.Response:
    last_exc = None
    for attempt in range(retries + 1):
        try:
            return client.get(url)
        except (httpx.TimeoutException, httpx.NetworkError) as exc:
            last_exc = exc
            if attempt < retries:
                logger.debug("GET %s failed (%s), retry %d/%d", url, exc, attempt + 1, retries)
                time.sleep(backoff_s * (attempt + 1))
                continue
            raise
    raise last_exc  # type: ignore
