from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from .client import OpsviewClient
from .logging_conf import get_logger
from .types import ObjectNotFoundError

__all__ = ["PRESENT", "ABSENT", "ResourceAdapter"]

PRESENT = "present"
ABSENT = "absent"

logger = get_logger("opsview_client.resource")


class ResourceAdapter:
    """Desired state of one managed config object.

    A configuration-management framework drives it with create/delete/exists
    and finally flush(), which is the only point where anything is sent.
    """

    def __init__(self, client: OpsviewClient, resource_type: str, valid_properties: Iterable[str]) -> None:
        self._client = client
        self.resource_type = resource_type
        self.valid_properties = tuple(valid_properties)
        self.property_hash: dict[str, Any] = {}

    def create(self, desired: Mapping[str, Any]) -> None:
        self.property_hash["ensure"] = PRESENT
        for prop in self.valid_properties:
            val = desired.get(prop)
            if val is not None:
                self.property_hash[prop] = val

    def delete(self) -> None:
        self.property_hash["ensure"] = ABSENT

    def exists(self) -> bool:
        return self.property_hash.get("ensure") != ABSENT

    async def load(self, name: str) -> bool:
        """Populate the snapshot from the server's copy of `name`.

        Returns True if the object exists. When the client is skipping calls
        the snapshot is left untouched and False is returned.
        """
        try:
            obj = await self._client.get_resource(self.resource_type, name)
        except ObjectNotFoundError:
            self.property_hash = {"ensure": ABSENT, "name": name}
            return False
        if obj is None:
            return False
        self.property_hash = {**obj, "ensure": PRESENT}
        return True

    def body(self) -> dict[str, Any]:
        return {k: v for k, v in self.property_hash.items() if k != "ensure"}

    async def flush(self) -> Any | None:
        body = self.body()
        logger.debug(
            "resource.flush",
            extra={"event": "resource_flush", "resource_type": self.resource_type, "name": body.get("name")},
        )
        return await self._client.put(self.resource_type, body)
