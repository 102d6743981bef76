"""
Configuration source backed by the local YAML application config.
"""

from typing import Dict, Optional

from ..config import AppConfig
from ..services.booking_service import BusinessProfile


class StaticConfigurationSource:
    """
    Serves business profiles from an already loaded ``AppConfig``.

    Profiles are built once up front, so schedule errors surface when the
    source is created rather than on the first request.
    """

    def __init__(self, config: AppConfig):
        self._profiles: Dict[str, BusinessProfile] = {
            business.id: business.to_profile() for business in config.businesses
        }

    async def get_business(self, business_id: str) -> Optional[BusinessProfile]:
        return self._profiles.get(business_id)
