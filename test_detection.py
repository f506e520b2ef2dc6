import pytest

from bot_detection import MISSING_USER_AGENT, detect_bot
from shield import inspect_request

BROWSER_UA = "Mozilla/5.0 (Macintosh; Intel Mac OS X 14_0) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.0 Safari/605.1.15"


@pytest.mark.parametrize(
    "user_agent,expected",
    [
        ("curl/8.4.0", "curl"),
        ("Wget/1.21.4", "wget"),
        ("python-requests/2.31.0", "python-requests"),
        ("Scrapy/2.11 (+https://scrapy.org)", "scrapy"),
        ("Mozilla/5.0 HeadlessChrome/120.0", "headless"),
        ("AhrefsBot/7.0; +http://ahrefs.com/robot/", "crawler"),
    ],
)
def test_known_automation_is_flagged(user_agent, expected):
    assert detect_bot(user_agent) == expected


def test_browser_is_not_flagged():
    assert detect_bot(BROWSER_UA) is None


def test_missing_user_agent_is_flagged():
    assert detect_bot(None) == MISSING_USER_AGENT
    assert detect_bot("   ") == MISSING_USER_AGENT


def test_allowlisted_crawler_passes():
    ua = "Mozilla/5.0 (compatible; Googlebot/2.1; +http://www.google.com/bot.html)"
    assert detect_bot(ua) == "crawler"
    assert detect_bot(ua, allowlist=("googlebot",)) is None


@pytest.mark.parametrize(
    "path,query,rule",
    [
        ("/api/users", "id=1'%20OR%20'1'='1", "sql_injection"),
        ("/api/users", "q=1 UNION SELECT password FROM users", "sql_injection"),
        ("/search", "q=%3Cscript%3Ealert(1)%3C/script%3E", "xss"),
        ("/files/../../etc/passwd", "", "path_traversal"),
        ("/download", "file=%252e%252e%252fsecret", "path_traversal"),
        ("/ping", "host=127.0.0.1;cat /etc/hosts", "command_injection"),
    ],
)
def test_attack_patterns_are_detected(path, query, rule):
    assert rule in inspect_request(path=path, query=query)


def test_clean_request_passes_shield():
    assert inspect_request(path="/api/auth/sign-in", query="redirect=%2Fdashboard&page=2") == []


@pytest.mark.parametrize(
    "user_agent,expected",
    [
        ("python-requests/2.31.0 googlebot", "python-requests"),
        ("curl/8.4.0 (compatible; Googlebot/2.1)", "curl"),
        ("Mozilla/5.0 HeadlessChrome/120.0 bingbot", "headless"),
    ],
)
def test_allowlist_does_not_clear_client_libraries(user_agent, expected):
    assert detect_bot(user_agent, allowlist=("googlebot", "bingbot")) == expected


def test_ordinary_search_terms_pass_shield():
    assert inspect_request(path="/api/search", query="q=european+union+select+committee") == []
    assert "sql_injection" in inspect_request(path="/api/search", query="q=1+UNION+ALL+SELECT+password")
