import re
from typing import Iterable, Optional


# ---- Known automation signatures (matched case-insensitively) ----
BOT_SIGNATURES = {
    "curl": re.compile(r"\bcurl/", re.I),
    "wget": re.compile(r"\bwget/", re.I),
    "python-requests": re.compile(r"python-requests", re.I),
    "python-urllib": re.compile(r"python-urllib", re.I),
    "httpx": re.compile(r"python-httpx", re.I),
    "aiohttp": re.compile(r"aiohttp", re.I),
    "go-http-client": re.compile(r"go-http-client", re.I),
    "java": re.compile(r"\bjava/", re.I),
    "okhttp": re.compile(r"okhttp", re.I),
    "scrapy": re.compile(r"scrapy", re.I),
    "headless": re.compile(r"headlesschrome|phantomjs|puppeteer|playwright|selenium", re.I),
    "crawler": re.compile(r"bot\b|crawl|spider|scraper", re.I),
}

MISSING_USER_AGENT = "missing-user-agent"

# Only generic crawler matches can be cleared by the allow-list
ALLOWLISTABLE_SIGNATURES = {"crawler"}


def detect_bot(user_agent: Optional[str], allowlist: Iterable[str] = ()) -> Optional[str]:
    """
    Return the matched automation signature for a user-agent, or None.

    A missing or blank user-agent counts as automated. An allow-listed
    token (search engines, link previews) only clears a generic crawler
    match; client libraries and headless browsers stay flagged.
    """
    if not user_agent or not user_agent.strip():
        return MISSING_USER_AGENT

    lowered = user_agent.lower()
    allowlisted = any(token and token in lowered for token in allowlist)

    for name, pattern in BOT_SIGNATURES.items():
        if not pattern.search(user_agent):
            continue
        if allowlisted and name in ALLOWLISTABLE_SIGNATURES:
            continue
        return name

    return None
