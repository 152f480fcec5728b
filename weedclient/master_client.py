"""Client for the master's assignment and lookup endpoints."""

import random
from typing import Optional

from pydantic import ValidationError

from common.logging_config import get_logger
from weedclient.exceptions import AssignError, FidLookupError
from weedclient.http_client import HttpClient, make_url
from weedclient.location_cache import VolumeLocationCache
from weedclient.schemas import AssignResult, LookupResult, VolumeLocation

logger = get_logger(__name__)


def volume_id_of(fid: str) -> str:
    """
    Return the volume id part of a fid ("3,01637037d6" -> "3").

    Raises:
        FidLookupError: If the fid has no volume id
    """
    volume_id, sep, _ = fid.partition(',')
    if not sep or not volume_id:
        raise FidLookupError(f"Invalid fid: {fid!r}")
    return volume_id


class MasterClient:
    """Stateless request/response client for the master, plus the lookup cache."""

    def __init__(
        self,
        master: str,
        http: HttpClient,
        cache: Optional[VolumeLocationCache] = None,
        use_public_url: bool = True,
    ):
        """
        Initialize the master client.

        Args:
            master: host:port of the master
            http: Shared transport
            cache: Volume location cache (a private one is created if omitted)
            use_public_url: Address nodes by publicUrl instead of url
        """
        self.master = master
        self.http = http
        self.cache = cache if cache is not None else VolumeLocationCache()
        self.use_public_url = use_public_url

    def node_of(self, location) -> str:
        """Pick the node address (public or internal) from an assign or lookup entry."""
        if self.use_public_url and location.public_url:
            return location.public_url
        return location.url

    def assign(self, count: int = 1, collection: str = "", ttl: str = "") -> AssignResult:
        """
        Request `count` new fids in one call.

        Args:
            count: Number of fids to pre-allocate
            collection: Optional collection name
            ttl: Optional time-to-live (e.g. "3m", "1d")

        Returns:
            AssignResult with the base fid and target node

        Raises:
            AssignError: If the master returns count <= 0 or an unreadable body
        """
        form = {'count': str(count)}
        if collection:
            form['collection'] = collection
        if ttl:
            form['ttl'] = ttl

        response = self.http.post_form(self.master, '/dir/assign', form)
        try:
            result = AssignResult.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise AssignError(f"/dir/assign result JSON unmarshal error: {e}, json: {response.text}")

        if result.count <= 0:
            logger.warning(f"Assign refused [count={count}, collection={collection!r}]: {result.error}")
            raise AssignError(result.error or f"/dir/assign returned count={result.count}")

        logger.debug(f"Assigned fid={result.fid} node={self.node_of(result)} count={result.count}")
        return result

    def lookup_volume(self, volume_id: str, collection: str = "", cache_allowed: bool = True) -> list[VolumeLocation]:
        """
        Resolve a volume id to its locations.

        Serves a fresh cache entry when allowed; otherwise queries the master
        and refreshes the cache.

        Raises:
            FidLookupError: If the master knows no location for the volume
        """
        if cache_allowed:
            cached = self.cache.get(volume_id)
            if cached:
                return cached

        params = {'volumeId': volume_id}
        if collection:
            params['collection'] = collection

        response = self.http.get(self.master, '/dir/lookup', params)
        try:
            result = LookupResult.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise FidLookupError(f"/dir/lookup result JSON unmarshal error: {e}, json: {response.text}")

        if not result.locations:
            raise FidLookupError(result.error or f"No locations found for volume {volume_id}")

        self.cache.put(volume_id, result.locations)
        return list(result.locations)

    def lookup(self, fid: str, collection: str = "", cache_allowed: bool = True) -> str:
        """
        Resolve a fid to the node address currently owning it.

        Args:
            fid: File id (an extension or _N suffix is allowed)
            collection: Optional collection name
            cache_allowed: Serve from the location cache when fresh

        Returns:
            Node address (host:port)
        """
        locations = self.lookup_volume(volume_id_of(fid), collection, cache_allowed)
        return self.node_of(random.choice(locations))

    def lookup_file_url(self, fid: str, collection: str = "", cache_allowed: bool = True) -> str:
        return make_url(self.lookup(fid, collection, cache_allowed), fid)

