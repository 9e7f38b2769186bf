"""Browser user-agent strings for talking to sites that reject bare HTTP clients."""

import sys
from functools import lru_cache

import requests
from loguru import logger

CHROME_VERSION_API = (
    "https://versionhistory.googleapis.com/v1/chrome/platforms/{platform}"
    "/channels/stable/versions?fields=versions(version)&filter=endtime=none"
)
FALLBACK_CHROME_VERSION = "119.0.0.0"
REQUEST_TIMEOUT = 5  # seconds

_UA_TEMPLATES = {
    "linux": "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/{version} Safari/537.36",
    "darwin": "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/{version} Safari/537.36",
    "windows": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/{version} Safari/537.36",
}

# Version History API platform identifiers
_API_PLATFORMS = {"linux": "linux", "darwin": "mac", "windows": "win64"}


def normalize_os_name(platform_name: str) -> str:
    """Map sys.platform style names onto linux/darwin/windows."""
    if platform_name.startswith("win"):
        return "windows"
    if platform_name == "darwin":
        return "darwin"
    return "linux"


def chrome_user_agent_with_version(version: str, os_name: str) -> str:
    """Build a Chrome user agent for the given version. Unknown OS uses the Linux form."""
    template = _UA_TEMPLATES.get(os_name, _UA_TEMPLATES["linux"])
    return template.format(version=version)


def fallback_user_agent(os_name: str) -> str:
    return chrome_user_agent_with_version(FALLBACK_CHROME_VERSION, os_name)


@lru_cache(maxsize=None)
def get_latest_chrome_user_agent(platform_name: str = sys.platform) -> str:
    """
    Get a Chrome user agent carrying the current stable Chrome version.

    Queries the Chrome Version History API. Any failure (network, status,
    malformed body, empty version list) returns the fallback user agent.

    Args:
        platform_name: sys.platform value or one of linux/darwin/windows

    Returns:
        User agent string for that OS
    """
    os_name = normalize_os_name(platform_name)
    platform = _API_PLATFORMS.get(os_name, "linux")
    url = CHROME_VERSION_API.format(platform=platform)

    try:
        response = requests.get(url, timeout=REQUEST_TIMEOUT)
    except requests.RequestException as e:
        logger.debug(f"Failed to fetch Chrome version for {os_name}, using fallback: {e}")
        return fallback_user_agent(os_name)

    if response.status_code != 200:
        logger.debug(
            f"Chrome version API returned status {response.status_code} for {os_name}, using fallback"
        )
        return fallback_user_agent(os_name)

    try:
        versions = response.json().get("versions") or []
        latest = versions[0]["version"]
    except (ValueError, AttributeError, IndexError, KeyError, TypeError) as e:
        logger.debug(f"Unusable Chrome version response for {os_name}, using fallback: {e}")
        return fallback_user_agent(os_name)

    logger.debug(f"Using Chrome user agent for {os_name} with version {latest}")
    return chrome_user_agent_with_version(latest, os_name)
