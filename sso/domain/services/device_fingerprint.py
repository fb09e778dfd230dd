from __future__ import annotations

import ipaddress
from dataclasses import dataclass

from user_agents import parse as parse_user_agent

from sso.domain.entities.device import DeviceFingerprint
from sso.domain.exceptions import NoDeviceInfoError


@dataclass(frozen=True)
class DeviceProfile:
    name: str
    device_type: str
    os: str
    browser: str


def is_ipv4(value: str) -> bool:
    try:
        ipaddress.IPv4Address(value)
    except ValueError:
        return False
    return True


def extract_fingerprint(
    *,
    peer_ip: str | None,
    user_agent: str | None,
    forwarded_for: str | None = None,
    real_ip: str | None = None,
    trust_proxy_headers: bool = False,
) -> DeviceFingerprint:
    ip = peer_ip
    if trust_proxy_headers:
        if forwarded_for:
            ip = forwarded_for.split(",")[0].strip()
        elif real_ip:
            ip = real_ip.strip()

    ua = (user_agent or "").strip()
    if not ip or not is_ipv4(ip) or not ua:
        raise NoDeviceInfoError()
    return DeviceFingerprint(ip=ip, user_agent=ua)


def describe_device(user_agent: str) -> DeviceProfile:
    parsed = parse_user_agent(user_agent)
    if parsed.is_bot:
        device_type = "bot"
    elif parsed.is_tablet:
        device_type = "tablet"
    elif parsed.is_mobile:
        device_type = "mobile"
    else:
        device_type = "desktop"

    return DeviceProfile(
        name=f"My {device_type}",
        device_type=device_type,
        os=parsed.os.family or "Other",
        browser=parsed.browser.family or "Other",
    )
