"""
Registered source adapters, in dispatch order.
"""
import logging
from typing import List

from .estimates import OpenCityAdapter, UrbanEmissionAdapter
from .imd import IMDAdapter, IMDFallbackAdapter
from .ksndmc import KSNDMCAdapter
from .openaq import OpenAQAdapter
from .openmeteo import OpenMeteoAdapter, OpenMeteoAQIAdapter
from .weatherunion import WeatherUnionAdapter

logger = logging.getLogger(__name__)

ADAPTER_CLASSES = [
    OpenMeteoAdapter,
    IMDAdapter,
    IMDFallbackAdapter,
    WeatherUnionAdapter,
    KSNDMCAdapter,
    OpenAQAdapter,
    OpenMeteoAQIAdapter,
    UrbanEmissionAdapter,
    OpenCityAdapter,
]


def build_adapters() -> List:
    """Instantiate every registered adapter."""
    adapters = []
    for adapter_class in ADAPTER_CLASSES:
        try:
            adapters.append(adapter_class())
        except Exception as e:
            logger.error(f"Failed to initialize {adapter_class.__name__}: {e}")
    return adapters
