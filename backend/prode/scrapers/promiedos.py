# prode/scrapers/promiedos.py
from __future__ import annotations

import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from prode.core.config import settings
from prode.core.errors import ProviderError, ProviderPayloadError
from prode.scrapers.http import get_with_retry, make_client
from prode.schemas.matches import Match, RoundPayload

logger = logging.getLogger(__name__)


class PromiedosClient:
    """Reads one round ("fecha") of the league from the provider.

    Stateless apart from the pooled HTTP client. Every failure surfaces as
    ProviderError (network, timeout, HTTP status) or ProviderPayloadError
    (unexpected JSON); nothing is cached here.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        round_path: Optional[str] = None,
        timeout_s: Optional[float] = None,
        retries: Optional[int] = None,
        client: Optional[httpx.Client] = None,
    ):
        self.base_url = base_url or settings.PROVIDER_BASE_URL
        self.round_path = round_path or settings.PROVIDER_ROUND_PATH
        self.retries = settings.PROVIDER_RETRIES if retries is None else retries
        self._client = client or make_client(
            self.base_url,
            settings.PROVIDER_TIMEOUT_S if timeout_s is None else timeout_s,
        )

    def round_url(self, round_number: int) -> str:
        return self.round_path.format(round_number=round_number)

    def fetch_round(self, round_number: int) -> RoundPayload:
        url = self.round_url(round_number)
        try:
            r = get_with_retry(self._client, url, retries=self.retries)
            r.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise ProviderError(
                f"provider answered {exc.response.status_code} for round {round_number}",
                round_number=round_number,
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderError(
                f"provider unreachable for round {round_number}: {exc}",
                round_number=round_number,
            ) from exc

        try:
            payload = RoundPayload.model_validate(r.json())
        except (ValueError, ValidationError) as exc:
            raise ProviderPayloadError(
                f"malformed payload for round {round_number}: {exc}",
                round_number=round_number,
            ) from exc

        for game in payload.games:
            game.round_number = round_number

        logger.debug("Round %s: %d matches from provider", round_number, len(payload.games))
        return payload

    def fetch_matches(self, round_number: int) -> list[Match]:
        return self.fetch_round(round_number).games

    def close(self) -> None:
        self._client.close()
