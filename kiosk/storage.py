from dataclasses import dataclass, field
from typing import Protocol

import httpx

from .config import get_settings
from .errors import UpstreamError
from .logger import get_logger

logger = get_logger("storage")


@dataclass(slots=True)
class DeleteResult:
    """Outcome of a storage deletion; `deleted` holds only confirmed keys."""

    requested: list[str]
    deleted: set[str] = field(default_factory=set)

    @property
    def failed(self) -> list[str]:
        return [key for key in self.requested if key not in self.deleted]

    @property
    def success(self) -> bool:
        return not self.failed


class Storage(Protocol):
    def delete_files(self, keys: list[str]) -> DeleteResult: ...


class UploadThingStorage:
    """Deletes files through the UploadThing REST API."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport

    def delete_files(self, keys: list[str]) -> DeleteResult:
        result = DeleteResult(requested=list(keys))
        if not keys:
            return result

        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                resp = client.post(
                    f"{self.base_url}/v6/deleteFiles",
                    json={"fileKeys": list(keys)},
                    headers={"X-Uploadthing-Api-Key": self.api_key},
                )
                resp.raise_for_status()
                payload = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("storage_delete_failed", keys=len(keys), error=str(exc))
            raise UpstreamError("Storage deletion failed") from exc

        # The API reports a count, not which keys failed, so anything short of
        # full success confirms nothing.
        if not isinstance(payload, dict):
            payload = {}
        if payload.get("success") is True:
            result.deleted.update(keys)
        else:
            logger.warning(
                "storage_delete_partial",
                requested=len(keys),
                deleted_count=payload.get("deletedCount", 0),
            )
        return result


def get_storage() -> Storage:
    settings = get_settings()
    return UploadThingStorage(
        settings.storage_api_url,
        settings.storage_api_key,
        timeout=settings.storage_timeout_seconds,
    )
