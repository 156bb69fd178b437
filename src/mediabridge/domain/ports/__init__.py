from .extractor import ExtractorPort
from .provider import ProviderPort
from .server_site import ServerSitePort

__all__ = [
    "ExtractorPort",
    "ProviderPort",
    "ServerSitePort",
]
