from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class Record(BaseModel):
    """Remote payload; unknown fields are kept rather than rejected."""

    model_config = ConfigDict(extra="allow")


# ---- Pages ----
class Page(BaseModel, Generic[T]):
    items: List[T] = Field(default_factory=list)
    next_cursor: Optional[str] = None
    total_items: Optional[int] = None
    summary: Dict[str, Any] = Field(default_factory=dict)


class ActionResult(BaseModel):
    affected: int = 0


# ---- Threats ----
class MitigationAction(str, Enum):
    KILL = "kill"
    QUARANTINE = "quarantine"
    REMEDIATE = "remediate"
    ROLLBACK_REMEDIATION = "rollback-remediation"


class ThreatInfo(Record):
    threatName: Optional[str] = None
    classification: Optional[str] = None
    confidenceLevel: Optional[str] = None
    mitigationStatus: Optional[str] = None
    analystVerdict: Optional[str] = None
    storyline: Optional[str] = None
    createdAt: Optional[str] = None
    filePath: Optional[str] = None
    sha1: Optional[str] = None
    sha256: Optional[str] = None
    md5: Optional[str] = None


class AgentRealtimeInfo(Record):
    agentId: Optional[str] = None
    agentComputerName: Optional[str] = None


class AgentDetectionInfo(Record):
    agentLastLoggedInUserName: Optional[str] = None
    agentOsName: Optional[str] = None


class Threat(Record):
    id: str
    threatInfo: ThreatInfo = Field(default_factory=ThreatInfo)
    agentRealtimeInfo: AgentRealtimeInfo = Field(default_factory=AgentRealtimeInfo)
    agentDetectionInfo: AgentDetectionInfo = Field(default_factory=AgentDetectionInfo)


# ---- Agents ----
class Agent(Record):
    id: str
    uuid: Optional[str] = None
    computerName: Optional[str] = None
    domain: Optional[str] = None
    siteName: Optional[str] = None
    groupName: Optional[str] = None
    osName: Optional[str] = None
    osType: Optional[str] = None
    osRevision: Optional[str] = None
    agentVersion: Optional[str] = None
    isActive: Optional[bool] = None
    infected: Optional[bool] = None
    networkStatus: Optional[str] = None
    lastActiveDate: Optional[str] = None
    lastLoggedInUserName: Optional[str] = None
    externalIp: Optional[str] = None
    lastIpToMgmt: Optional[str] = None


# ---- Deep Visibility ----
class DVQueryState(str, Enum):
    RUNNING = "RUNNING"
    FINISHED = "FINISHED"
    FAILED = "FAILED"
    CANCELED = "CANCELED"

    @classmethod
    def from_remote(cls, value: str | None) -> "DVQueryState":
        """Fold the console's status vocabulary into the four lifecycle states.

        A missing status is treated like QUERY_NOT_FOUND. Anything else not
        recognised as terminal counts as still running (PROCESS_RUNNING,
        EVENTS_RUNNING, QUERY_RUNNING, ...).
        """
        v = (value or "").strip().upper()
        if not v:
            return cls.FAILED
        if v == "FINISHED":
            return cls.FINISHED
        if "CANCEL" in v:
            return cls.CANCELED
        if v.startswith("FAILED") or v in {"TIMED_OUT", "QUERY_EXPIRED", "QUERY_NOT_FOUND"}:
            return cls.FAILED
        return cls.RUNNING


class DVQueryStatus(Record):
    queryId: Optional[str] = None
    status: Optional[str] = None
    responseState: Optional[str] = None
    progressStatus: Optional[int] = None
    responseError: Optional[str] = None

    @property
    def state(self) -> DVQueryState:
        return DVQueryState.from_remote(self.status or self.responseState)

    @property
    def failure_detail(self) -> Optional[str]:
        if self.responseError:
            return self.responseError
        if not (self.status or self.responseState):
            return "no status reported"
        return None


class DVEvent(Record):
    id: Optional[str] = None
    eventType: Optional[str] = None
    eventTime: Optional[str] = None
    agentId: Optional[str] = None
    agentName: Optional[str] = None
    processName: Optional[str] = None
    processImagePath: Optional[str] = None
    processCommandLine: Optional[str] = None
    processUser: Optional[str] = None
    parentProcessName: Optional[str] = None
    srcIp: Optional[str] = None
    dstIp: Optional[str] = None
    dstPort: Optional[int] = None
    filePath: Optional[str] = None
    sha1: Optional[str] = None
    sha256: Optional[str] = None
    registryPath: Optional[str] = None
    registryValue: Optional[str] = None
    dnsRequest: Optional[str] = None
    url: Optional[str] = None
    user: Optional[str] = None


# ---- Unified alerts (GraphQL) ----
class Alert(Record):
    id: Optional[str] = None
    name: Optional[str] = None
    severity: Optional[str] = None
    analystVerdict: Optional[str] = None
    status: Optional[str] = None
    classification: Optional[str] = None
    confidenceLevel: Optional[str] = None
    storylineId: Optional[str] = None
    detectedAt: Optional[str] = None


class AlertPage(BaseModel):
    items: List[Alert] = Field(default_factory=list)
    has_more: bool = False
    end_cursor: Optional[str] = None


# ---- Sites / groups ----
class Site(Record):
    id: str
    name: Optional[str] = None
    state: Optional[str] = None
    siteType: Optional[str] = None
    sku: Optional[str] = None
    accountId: Optional[str] = None
    accountName: Optional[str] = None
    activeLicenses: Optional[int] = None
    totalLicenses: Optional[int] = None
    unlimitedLicenses: Optional[bool] = None
    expiration: Optional[str] = None
    unlimitedExpiration: Optional[bool] = None
    isDefault: Optional[bool] = None
    description: Optional[str] = None
    externalId: Optional[str] = None
    creator: Optional[str] = None
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None


class Group(Record):
    id: str
    name: Optional[str] = None
    siteId: Optional[str] = None
    siteName: Optional[str] = None
    type: Optional[str] = None
    rank: Optional[int] = None
    totalAgents: Optional[int] = None
    isDefault: Optional[bool] = None
    inherits: Optional[bool] = None
    filterId: Optional[str] = None
    filterName: Optional[str] = None
    registrationToken: Optional[str] = None
    creator: Optional[str] = None
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None


# ---- Activities ----
class Activity(Record):
    id: Optional[str] = None
    activityType: Optional[int] = None
    primaryDescription: Optional[str] = None
    secondaryDescription: Optional[str] = None
    createdAt: Optional[str] = None
    siteId: Optional[str] = None
    siteName: Optional[str] = None
    agentId: Optional[str] = None
    threatId: Optional[str] = None


class ActivityType(Record):
    id: int
    action: Optional[str] = None
    descriptionTemplate: Optional[str] = None


# ---- Exclusions / blocklist ----
class Exclusion(Record):
    id: Optional[str] = None
    type: Optional[str] = None
    value: Optional[str] = None
    osType: Optional[str] = None
    mode: Optional[str] = None
    source: Optional[str] = None
    scopeName: Optional[str] = None
    description: Optional[str] = None
    userName: Optional[str] = None
    createdAt: Optional[str] = None


# ---- Application management ----
class AppRisk(Record):
    id: Optional[str] = None
    cveId: Optional[str] = None
    severity: Optional[str] = None
    riskScore: Optional[float] = None
    applicationName: Optional[str] = None
    applicationVendor: Optional[str] = None
    exploitedInTheWild: Optional[bool] = None
    mitigationStatus: Optional[str] = None


class AppInventoryItem(Record):
    id: Optional[str] = None
    applicationName: Optional[str] = None
    applicationVendor: Optional[str] = None
    osType: Optional[str] = None
    endpointsCount: Optional[int] = None
    applicationVersionsCount: Optional[int] = None


# ---- Network ----
class Tag(Record):
    id: Optional[str] = None
    name: Optional[str] = None
    type: Optional[str] = None
    kind: Optional[str] = None
    createdAt: Optional[str] = None


class DeviceControlEvent(Record):
    id: Optional[str] = None
    agentId: Optional[str] = None
    eventType: Optional[str] = None
    eventTime: Optional[str] = None
    interface: Optional[str] = None
    accessPermission: Optional[str] = None
    vendorId: Optional[str] = None
    productId: Optional[str] = None
    deviceName: Optional[str] = None


class RangerDevice(Record):
    id: Optional[str] = None
    localIp: Optional[str] = None
    macAddress: Optional[str] = None
    osName: Optional[str] = None
    deviceType: Optional[str] = None
    managedState: Optional[str] = None
    manufacturer: Optional[str] = None
    hostnames: List[str] = Field(default_factory=list)
    lastSeen: Optional[str] = None


class IOC(Record):
    id: Optional[str] = None
    type: Optional[str] = None
    value: Optional[str] = None
    severity: Optional[Any] = None
    source: Optional[str] = None
    name: Optional[str] = None
    category: Optional[Any] = None
    creationTime: Optional[str] = None


class HashReputation(Record):
    rank: Optional[Any] = None
