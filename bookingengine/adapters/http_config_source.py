"""
HTTP client for fetching business configuration from a settings API.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

import requests
from pydantic import ValidationError

from ..config import BusinessConfig
from ..domain.exceptions import ConfigurationSourceError
from ..services.booking_service import BusinessProfile

logger = logging.getLogger(__name__)


class HttpConfigurationSource:
    """
    Fetches business settings from ``GET {base_url}/businesses/{id}``.

    The response body uses the same shape as a ``businesses`` entry in
    ``config.yaml``:
    {
        "id": "salon",
        "timezone": "Europe/Berlin",
        "slot_size": {"value": 30, "unit": "minutes"},
        "allow_double_booking": false,
        "opening_hours": [{"day_of_week": 1, "open_time": "08:00", "close_time": "17:00"}],
        "services": [{"id": "cut", "duration_minutes": 60, "price_cents": 3500}],
        "staff": [{"id": "anna"}]
    }
    """

    def __init__(self, base_url: str, access_token: Optional[str] = None, timeout: float = 10):
        """
        Args:
            base_url: Root URL of the settings API
            access_token: Optional bearer token sent with every request
            timeout: Request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.headers = {"Accept": "application/json"}
        if access_token:
            self.headers["Authorization"] = f"Bearer {access_token}"

    async def get_business(self, business_id: str) -> Optional[BusinessProfile]:
        data = await asyncio.to_thread(self.fetch_business, business_id)
        if data is None:
            return None
        return self._parse_business(data)

    def fetch_business(self, business_id: str) -> Optional[Dict[str, Any]]:
        """
        Fetch the raw settings document.

        Returns:
            The decoded JSON body, or None if the business does not exist

        Raises:
            ConfigurationSourceError: If the API call fails
        """
        url = f"{self.base_url}/businesses/{business_id}"

        try:
            response = requests.get(url, headers=self.headers, timeout=self.timeout)
            if response.status_code == 404:
                return None
            response.raise_for_status()
            return response.json()

        except requests.exceptions.RequestException as e:
            logger.warning("Fetching settings for business %s failed: %s", business_id, e)
            raise ConfigurationSourceError(f"Failed to fetch business settings: {e}") from e
        except ValueError as e:
            raise ConfigurationSourceError(f"Settings API returned invalid JSON: {e}") from e

    def _parse_business(self, data: Dict[str, Any]) -> BusinessProfile:
        """
        Convert a settings document into a profile. Malformed hours are
        rejected here, not corrected.
        """
        try:
            return BusinessConfig.model_validate(data).to_profile()
        except ValidationError as e:
            raise ConfigurationSourceError(f"Invalid business settings: {e}") from e
