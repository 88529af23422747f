"""Plain-text renderings of console records for tool responses."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Optional, Sequence

from .models import (
    Activity,
    Agent,
    Alert,
    AppInventoryItem,
    AppRisk,
    DeviceControlEvent,
    DVEvent,
    Exclusion,
    Group,
    IOC,
    Page,
    RangerDevice,
    Site,
    Tag,
    Threat,
)

RULE = "─" * 37
BULLET = "•"


def format_time_ago(value: str, now: Optional[datetime] = None) -> str:
    try:
        ts = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    seconds = (now - ts).total_seconds()
    if seconds < 0:
        return "just now"
    minutes = int(seconds // 60)
    hours = minutes // 60
    if minutes < 60:
        return f"{minutes}m ago"
    if hours < 24:
        return f"{hours}h ago"
    return f"{hours // 24}d ago"


def truncate_path(path: str, max_len: int) -> str:
    if len(path) <= max_len:
        return path
    return "..." + path[-(max_len - 3):]


def _ago(value: Optional[str]) -> str:
    return format_time_ago(value) if value else "unknown"


def _yes(flag: Optional[bool], yes: str = "Yes", no: str = "No") -> str:
    return yes if flag else no


def render_page(
    page: Page,
    label: str,
    summarize: Callable[[Any], str],
    empty: Optional[str] = None,
    header_extra: str = "",
    separator: str = "\n\n",
) -> str:
    """Header, one summary per item, and a cursor footer when more pages exist.

    ``label`` is the counted noun as shown in the header, e.g. ``"threat(s)"``.
    """
    count = len(page.items)
    if not count:
        return empty or f"No {label.replace('(s)', 's')} found matching criteria."
    if page.total_items:
        header = f"Found {count} of {page.total_items} {label}{header_extra}:\n\n"
    else:
        header = f"Found {count} {label}{header_extra}:\n\n"
    body = separator.join(summarize(item) for item in page.items)
    footer = f'\n\nMore results available. Use cursor: "{page.next_cursor}"' if page.next_cursor else ""
    return header + body + footer


def details(title: str, sections: Sequence[Sequence[str]]) -> str:
    lines = [f"{title}:", RULE]
    for i, section in enumerate(sections):
        if i:
            lines.append(RULE)
        lines.extend(section)
    return "\n".join(lines)


# ---- threats ----
def summarize_threat(t: Threat) -> str:
    info = t.threatInfo
    return (
        f"{BULLET} {t.agentRealtimeInfo.agentComputerName or 'Unknown'} | {info.threatName or 'Unknown'}"
        f" | {info.classification or 'Unknown'} | {info.mitigationStatus or 'unknown'} | {_ago(info.createdAt)}\n"
        f"  ID: {t.id} | User: {t.agentDetectionInfo.agentLastLoggedInUserName or 'unknown'}\n"
        f"  Path: {info.filePath or ''}"
    )


def threat_details(t: Threat) -> str:
    info = t.threatInfo
    return details("Threat Details", [
        [
            f"Computer: {t.agentRealtimeInfo.agentComputerName or 'Unknown'}",
            f"Threat: {info.threatName or 'Unknown'}",
            f"Classification: {info.classification or 'Unknown'}",
            f"Confidence: {info.confidenceLevel or 'Unknown'}",
            f"Status: {info.mitigationStatus or 'Unknown'}",
            f"Analyst Verdict: {info.analystVerdict or 'undefined'}",
        ],
        [
            f"ID: {t.id}",
            f"Storyline ID: {info.storyline or 'N/A'}",
            f"Created: {info.createdAt or 'Unknown'}",
        ],
        [
            f"User: {t.agentDetectionInfo.agentLastLoggedInUserName or 'Unknown'}",
            f"Agent ID: {t.agentRealtimeInfo.agentId or 'Unknown'}",
            f"OS: {t.agentDetectionInfo.agentOsName or 'Unknown'}",
        ],
        [
            f"File Path: {info.filePath or 'N/A'}",
            f"SHA256: {info.sha256 or 'N/A'}",
            f"SHA1: {info.sha1 or 'N/A'}",
            f"MD5: {info.md5 or 'N/A'}",
        ],
    ])


# ---- agents ----
def summarize_agent(a: Agent) -> str:
    return (
        f"{BULLET} {a.computerName or 'Unknown'} | {a.osName or a.osType or 'Unknown'}"
        f" | {a.networkStatus or 'unknown'} | {_yes(a.infected, 'INFECTED', 'clean')} | {_ago(a.lastActiveDate)}\n"
        f"  ID: {a.id} | User: {a.lastLoggedInUserName or 'unknown'}"
        f" | IP: {a.externalIp or a.lastIpToMgmt or 'N/A'}"
    )


def agent_details(a: Agent) -> str:
    return details("Agent Details", [
        [
            f"Computer: {a.computerName or 'Unknown'}",
            f"OS: {a.osName or 'Unknown'} {a.osRevision or ''}".rstrip(),
            f"Status: {a.networkStatus or 'Unknown'}",
            f"Infected: {_yes(a.infected, 'YES')}",
            f"Active: {_yes(a.isActive)}",
        ],
        [
            f"ID: {a.id}",
            f"UUID: {a.uuid or 'N/A'}",
            f"Domain: {a.domain or 'N/A'}",
            f"Site: {a.siteName or 'N/A'}",
            f"Group: {a.groupName or 'N/A'}",
        ],
        [
            f"Last Active: {a.lastActiveDate or 'Unknown'}",
            f"User: {a.lastLoggedInUserName or 'Unknown'}",
            f"External IP: {a.externalIp or 'N/A'}",
            f"Agent Version: {a.agentVersion or 'N/A'}",
        ],
    ])


# ---- alerts ----
def summarize_alert(a: Alert) -> str:
    verdict = a.analystVerdict.replace("_", " ", 1) if a.analystVerdict else "UNDEFINED"
    return (
        f"{BULLET} {a.name or 'Unknown'} | {a.severity or 'Unknown'} | {a.status or 'Unknown'} | {_ago(a.detectedAt)}\n"
        f"  ID: {a.id} | Verdict: {verdict}\n"
        f"  Classification: {a.classification or 'N/A'} | Confidence: {a.confidenceLevel or 'N/A'}\n"
        f"  Storyline: {a.storylineId or 'N/A'}"
    )


# ---- deep visibility ----
def summarize_event(e: DVEvent) -> str:
    extra = ""
    if e.srcIp and e.dstIp:
        extra += f" | {e.srcIp} -> {e.dstIp}:{e.dstPort or '?'}"
    elif e.dstIp:
        extra += f" -> {e.dstIp}:{e.dstPort or '?'}"
    if e.filePath:
        extra += f" | {truncate_path(e.filePath, 60)}"
    if e.dnsRequest:
        extra += f" | DNS: {e.dnsRequest}"
    if e.user:
        extra += f" | User: {e.user}"
    return (
        f"{BULLET} {e.eventType or 'Unknown'} | {e.agentName or 'Unknown'}"
        f" | {e.processName or 'N/A'} | {_ago(e.eventTime)}{extra}"
    )


# ---- sites / groups ----
def summarize_site(s: Site) -> str:
    return (
        f"{BULLET} {s.name or 'Unknown'} | {s.state or 'unknown'} | {s.siteType or 'unknown'}"
        f" | SKU: {s.sku or 'N/A'} | Licenses: {s.activeLicenses or 0}/{s.totalLicenses or 0}\n"
        f"  ID: {s.id} | Account: {s.accountName or 'N/A'}"
    )


def site_details(s: Site) -> str:
    expiration = "Unlimited" if s.unlimitedExpiration else (s.expiration or "N/A")
    total = "Unlimited" if s.unlimitedLicenses else (s.totalLicenses or 0)
    return details("Site Details", [
        [
            f"Name: {s.name or 'Unknown'}",
            f"State: {s.state or 'Unknown'}",
            f"Type: {s.siteType or 'N/A'}",
            f"SKU: {s.sku or 'N/A'}",
        ],
        [
            f"ID: {s.id}",
            f"Account: {s.accountName or 'N/A'} ({s.accountId or 'N/A'})",
            f"Description: {s.description or 'N/A'}",
            f"External ID: {s.externalId or 'N/A'}",
        ],
        [
            f"Licenses: {s.activeLicenses or 0}/{total}",
            f"Expiration: {expiration}",
            f"Default Site: {_yes(s.isDefault)}",
        ],
        [
            f"Created: {s.createdAt or 'Unknown'} by {s.creator or 'Unknown'}",
            f"Updated: {s.updatedAt or 'Unknown'}",
        ],
    ])


def summarize_group(g: Group) -> str:
    return (
        f"{BULLET} {g.name or 'Unknown'} | Type: {g.type or 'unknown'} | Default: {_yes(g.isDefault)}\n"
        f"  ID: {g.id} | Site: {g.siteId or 'N/A'}"
    )


def group_details(g: Group) -> str:
    return details("Group Details", [
        [
            f"Name: {g.name or 'Unknown'}",
            f"Type: {g.type or 'N/A'}",
            f"Default: {_yes(g.isDefault)}",
            f"Inherits: {_yes(g.inherits)}",
        ],
        [
            f"ID: {g.id}",
            f"Site: {g.siteName or 'N/A'} ({g.siteId or 'N/A'})",
            f"Rank: {g.rank if g.rank is not None else 'N/A'}",
            f"Total Agents: {g.totalAgents or 0}",
        ],
        [
            f"Filter: {g.filterName or 'None'} ({g.filterId or 'N/A'})",
            f"Registration Token: {g.registrationToken or 'N/A'}",
        ],
        [
            f"Created: {g.createdAt or 'Unknown'} by {g.creator or 'Unknown'}",
            f"Updated: {g.updatedAt or 'Unknown'}",
        ],
    ])


# ---- everything else ----
def summarize_activity(a: Activity) -> str:
    kind = a.activityType if a.activityType is not None else "unknown"
    return (
        f"{BULLET} {a.primaryDescription or 'No description'} | Type: {kind} | {_ago(a.createdAt)}\n"
        f"  Site: {a.siteName or 'N/A'} | Agent: {a.agentId or 'N/A'}"
    )


def summarize_exclusion(e: Exclusion) -> str:
    return (
        f"{BULLET} {e.type or 'unknown'}: {e.value or 'N/A'} | OS: {e.osType or 'all'} | Scope: {e.scopeName or 'Global'}\n"
        f"  User: {e.userName or 'N/A'} | Created: {e.createdAt or 'unknown'}"
    )


def summarize_app_risk(r: AppRisk) -> str:
    score = r.riskScore if r.riskScore is not None else "N/A"
    return (
        f"{BULLET} {r.cveId or 'N/A'} | {r.severity or 'unknown'} | {r.applicationName or 'Unknown'} {r.applicationVendor or 'Unknown'}\n"
        f"  Score: {score} | Exploited: {_yes(r.exploitedInTheWild)} | Status: {r.mitigationStatus or 'N/A'}"
    )


def summarize_app(a: AppInventoryItem) -> str:
    return (
        f"{BULLET} {a.applicationName or 'Unknown'} | {a.applicationVendor or 'Unknown'}"
        f" | Endpoints: {a.endpointsCount or 0} | Versions: {a.applicationVersionsCount or 0}"
    )


def summarize_tag(t: Tag) -> str:
    return (
        f"{BULLET} {t.name or 'Unknown'} | Type: {t.type or 'unknown'} | Kind: {t.kind or 'N/A'}\n"
        f"  ID: {t.id} | Created: {t.createdAt or 'unknown'}"
    )


def summarize_device_control_event(e: DeviceControlEvent) -> str:
    return (
        f"{BULLET} {e.interface or 'unknown'} | {e.eventType or 'unknown'} | {e.accessPermission or 'N/A'} | {e.eventTime or 'unknown'}\n"
        f"  Agent: {e.agentId or 'N/A'} | Device: {e.vendorId or 'N/A'}:{e.productId or 'N/A'}"
    )


def summarize_ranger_device(d: RangerDevice) -> str:
    return (
        f"{BULLET} {d.localIp or 'N/A'} | {d.osName or 'unknown'} | {d.deviceType or 'unknown'} | {d.managedState or 'unknown'}\n"
        f"  MAC: {d.macAddress or 'N/A'} | Manufacturer: {d.manufacturer or 'N/A'} | Last seen: {d.lastSeen or 'unknown'}"
    )


def summarize_ioc(i: IOC) -> str:
    return (
        f"{BULLET} {i.type or 'unknown'}: {i.value or 'N/A'} | Severity: {i.severity or 'N/A'} | Source: {i.source or 'N/A'}\n"
        f"  Created: {i.creationTime or 'unknown'} | Category: {i.category or 'N/A'}"
    )
