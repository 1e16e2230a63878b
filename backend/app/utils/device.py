"""
User agent and referer classification.

Everything here is a pure function over ordered rule tables: the first rule
that matches wins, so the order of each table matters.
"""
import re
from typing import Optional
from urllib.parse import urlparse

from ..schemas.click import DeviceInfo, RefererInfo

UNKNOWN = "Unknown"

# Tablets also carry mobile-looking tokens, so they must be checked first
DEVICE_TYPE_RULES = [
    ("tablet", re.compile(r'tablet|ipad|playbook|silk')),
    ("mobile", re.compile(
        r'mobile|iphone|ipod|android|blackberry|opera|mini|windows\sce|palm|smartphone|iemobile'
    )),
    ("desktop", re.compile(r'desktop|windows|macintosh|linux')),
]

# (browser, must contain one of, must contain none of, version pattern)
BROWSER_RULES = [
    ("Chrome", ("chrome",), ("edg",), re.compile(r'chrome/(\d+)')),
    ("Firefox", ("firefox",), (), re.compile(r'firefox/(\d+)')),
    ("Safari", ("safari",), ("chrome",), re.compile(r'version/(\d+)')),
    ("Edge", ("edg",), (), re.compile(r'edg/(\d+)')),
    ("Internet Explorer", ("trident", "msie"), (), re.compile(r'(?:msie |rv:)(\d+)')),
    ("Opera", ("opr", "opera"), (), re.compile(r'(?:opr|opera)/(\d+)')),
]

WINDOWS_VERSIONS = [
    ("windows nt 10.0", "10/11"),
    ("windows nt 6.3", "8.1"),
    ("windows nt 6.2", "8"),
    ("windows nt 6.1", "7"),
    ("windows nt 6.0", "Vista"),
    ("windows nt 5.1", "XP"),
]

LINUX_DISTRIBUTIONS = [
    ("ubuntu", "Ubuntu"),
    ("fedora", "Fedora"),
    ("debian", "Debian"),
]

MAC_VERSION = re.compile(r'mac os x (\d+)[._](\d+)')
IOS_VERSION = re.compile(r'os (\d+)[._](\d+)')
ANDROID_VERSION = re.compile(r'android (\d+)\.(\d+)')

APPLE_MOBILE_TOKENS = ("iphone", "ipad", "ipod")

BOT_PATTERNS = (
    'bot', 'crawler', 'spider', 'crawling',
    'facebook', 'twitter', 'google', 'bing',
    'yahoo', 'slurp', 'duckduckbot', 'baiduspider',
    'yandexbot', 'facebookexternalhit', 'twitterbot',
    'linkedinbot', 'whatsapp', 'telegram', 'skype',
)

SEARCH_ENGINES = [
    ('google.com', 'Google'),
    ('bing.com', 'Bing'),
    ('yahoo.com', 'Yahoo'),
    ('duckduckgo.com', 'DuckDuckGo'),
    ('yandex.com', 'Yandex'),
    ('baidu.com', 'Baidu'),
]

SOCIAL_PLATFORMS = [
    ('facebook.com', 'Facebook'),
    ('twitter.com', 'Twitter'),
    ('linkedin.com', 'LinkedIn'),
    ('instagram.com', 'Instagram'),
    ('youtube.com', 'YouTube'),
    ('tiktok.com', 'TikTok'),
    ('pinterest.com', 'Pinterest'),
    ('reddit.com', 'Reddit'),
    ('discord.com', 'Discord'),
    ('telegram.org', 'Telegram'),
    ('whatsapp.com', 'WhatsApp'),
]

EMAIL_HOST_MARKERS = ('mail.', 'gmail.', 'outlook.')


def _dotted(match: Optional[re.Match]) -> str:
    return f"{match.group(1)}.{match.group(2)}" if match else UNKNOWN


def get_device_type(ua: str) -> str:
    for device_type, pattern in DEVICE_TYPE_RULES:
        if pattern.search(ua):
            return device_type
    return "unknown"


def get_browser_info(ua: str) -> tuple[str, str]:
    for name, required, excluded, version_pattern in BROWSER_RULES:
        if not any(token in ua for token in required):
            continue
        if any(token in ua for token in excluded):
            continue
        match = version_pattern.search(ua)
        return name, match.group(1) if match else UNKNOWN
    return UNKNOWN, UNKNOWN


def _windows_version(ua: str) -> str:
    for token, version in WINDOWS_VERSIONS:
        if token in ua:
            return version
    return UNKNOWN


def _linux_version(ua: str) -> str:
    for token, distribution in LINUX_DISTRIBUTIONS:
        if token in ua:
            return distribution
    return UNKNOWN


def _apple_mobile_os(ua: str) -> str:
    return "iPadOS" if "ipad" in ua else "iOS"


# (matches, os name, version extractor)
OS_RULES = [
    (lambda ua: "windows" in ua, lambda ua: "Windows", _windows_version),
    # iOS agents say "like Mac OS X", leave them to the next rule
    (lambda ua: "mac os x" in ua and not any(t in ua for t in APPLE_MOBILE_TOKENS),
     lambda ua: "macOS", lambda ua: _dotted(MAC_VERSION.search(ua))),
    (lambda ua: "iphone" in ua or "ipad" in ua,
     _apple_mobile_os, lambda ua: _dotted(IOS_VERSION.search(ua))),
    (lambda ua: "android" in ua, lambda ua: "Android", lambda ua: _dotted(ANDROID_VERSION.search(ua))),
    (lambda ua: "linux" in ua, lambda ua: "Linux", _linux_version),
]


def get_os_info(ua: str) -> tuple[str, str]:
    for matches, name, version in OS_RULES:
        if matches(ua):
            return name(ua), version(ua)
    return UNKNOWN, UNKNOWN


def parse_user_agent(user_agent: str) -> DeviceInfo:
    """Parse a user agent string into device information"""
    ua = (user_agent or "").lower()
    browser, browser_version = get_browser_info(ua)
    os_name, os_version = get_os_info(ua)
    return DeviceInfo(
        type=get_device_type(ua),
        browser=browser,
        browser_version=browser_version,
        os=os_name,
        os_version=os_version,
    )


def is_bot(user_agent: str) -> bool:
    """Check if the user agent belongs to a bot, crawler or link previewer"""
    ua = (user_agent or "").lower()
    return any(pattern in ua for pattern in BOT_PATTERNS)


def parse_referer(referer: Optional[str]) -> RefererInfo:
    """
    Classify where a visit came from.

    Args:
        referer: Value of the Referer header, if any

    Returns:
        RefererInfo with the referring host and its source type
    """
    if not referer:
        return RefererInfo(domain="direct", source_type="direct")

    try:
        hostname = urlparse(referer).hostname
    except ValueError:
        hostname = None
    if not hostname:
        return RefererInfo(domain="unknown", source_type="other")

    domain = hostname.lower()

    for search_domain, engine in SEARCH_ENGINES:
        if search_domain in domain:
            return RefererInfo(domain=domain, source_type="search", search_engine=engine)

    for social_domain, platform in SOCIAL_PLATFORMS:
        if social_domain in domain:
            return RefererInfo(domain=domain, source_type="social", social_platform=platform)

    if any(marker in domain for marker in EMAIL_HOST_MARKERS):
        return RefererInfo(domain=domain, source_type="email")

    return RefererInfo(domain=domain, source_type="other")
