"""edp registry adapter: an npm-compatible registry with its own default URL."""

from constants import Constants, EndpointType
from .npm import NpmRepository


class EdpRepository(NpmRepository):
    endpoint_type = EndpointType.EDP

    @classmethod
    def default_registry(cls) -> str:
        return Constants.REGISTRY_URL_EDP
