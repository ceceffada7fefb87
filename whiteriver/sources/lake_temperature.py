"""Best-effort lake surface temperature (°F) scraped from a public lake page."""

import logging
import re

import httpx
from bs4 import BeautifulSoup

from whiteriver.config import Settings
from whiteriver.models import DamSpec
from whiteriver.sources.http import get_with_retries

logger = logging.getLogger(__name__)

# Tried in order; the page layout has changed more than once
_TEMPERATURE_PATTERNS = (
    re.compile(r"(\d+)\s*°F\s*\n\s*TODAY"),
    re.compile(r"Current Lake Water Temperature Information\s*\n\s*(\d+)\s*°F"),
    re.compile(r"water temperature today in .+? is (\d+)\s*°F"),
)


def extract_temperature(html: str) -> int | None:
    """Find today's water temperature in the page text, or None."""
    text = BeautifulSoup(html, "html.parser").get_text("\n", strip=True)
    for pattern in _TEMPERATURE_PATTERNS:
        match = pattern.search(text)
        if match:
            return int(match.group(1))
    return None


async def fetch_lake_temperature(
    client: httpx.AsyncClient, settings: Settings, dam: DamSpec
) -> int | None:
    """Never raises for provider problems; None means "unknown"."""
    if not dam.lake_temperature_url:
        return None
    try:
        resp = await get_with_retries(
            client, dam.lake_temperature_url, retries=settings.request_retries
        )
    except httpx.HTTPError as exc:
        logger.warning("Lake temperature unavailable for %s: %s", dam.name, exc)
        return None

    temperature = extract_temperature(resp.text)
    if temperature is None:
        logger.warning("Could not find a lake temperature for %s", dam.name)
    else:
        logger.info("Lake temperature for %s: %d°F", dam.name, temperature)
    return temperature
