from __future__ import annotations

import uuid
from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from hello_mesos.config import Settings


class ServiceState(str, Enum):
    NOT_STARTED = "not_started"
    LISTENING = "listening"
    ANNOUNCED = "announced"
    TERMINATED = "terminated"


@dataclass(frozen=True)
class ServiceEndpoint:
    host: str
    port: str
    service_type: str
    service_uri: str

    @classmethod
    def from_settings(cls, settings: Settings) -> ServiceEndpoint:
        return cls(
            host=settings.task_host,
            port=settings.port,
            service_type=settings.discovery.service_type,
            service_uri=f"http://{settings.task_host}:{settings.port}",
        )


class Announcement(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    announcement_id: str = Field(
        default_factory=lambda: str(uuid.uuid4()), alias="announcementId"
    )
    service_type: str = Field(..., alias="serviceType")
    service_uri: str = Field(..., alias="serviceUri")
    home_region_name: str = Field(..., alias="homeRegionName")
    environment: str | None = Field(default=None, description="OT_ENV of the announcing task")

    def to_wire(self) -> dict[str, str | None]:
        return self.model_dump(by_alias=True)


@dataclass
class AnnounceResult:
    ok: bool
    announcement_id: str | None = None
    status_code: int | None = None
    error: str | None = None
    elapsed_ms: int = 0
