from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ServiceStatus(str, Enum):
    """
    Reachability verdict for a monitored target.
    """

    ONLINE = "online"
    OFFLINE = "offline"
    # Reserved for non-2xx answers; never produced by the prober today.
    DEGRADED = "degraded"


class ProbeResult(BaseModel):
    """
    Data model representing the outcome of a single probe.

    Serialized with the dashboard's field names: ``latency`` and ``lastChecked``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    status: ServiceStatus
    latency_ms: int = Field(default=0, ge=0, alias="latency")
    checked_at_ms: int = Field(alias="lastChecked")

    @classmethod
    def online(cls, latency_ms: int, checked_at_ms: int) -> "ProbeResult":
        """
        Build an online result; latency is floored to 1ms so it always reads as a positive duration.
        """
        return cls(
            status=ServiceStatus.ONLINE,
            latency_ms=max(1, int(latency_ms)),
            checked_at_ms=checked_at_ms,
        )

    @classmethod
    def offline(cls, checked_at_ms: int) -> "ProbeResult":
        return cls(status=ServiceStatus.OFFLINE, latency_ms=0, checked_at_ms=checked_at_ms)

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class CacheEntry(BaseModel):
    """
    A cached probe result together with the moment it stops being fresh.
    """

    model_config = ConfigDict(frozen=True)

    result: ProbeResult
    expires_at_ms: int

    def is_fresh(self, now_ms: int) -> bool:
        return now_ms < self.expires_at_ms
