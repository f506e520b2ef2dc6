import re
from typing import List
from urllib.parse import unquote_plus


# ---- Attack pattern rules (v1 signatures) ----
SHIELD_RULES = {
    "sql_injection": re.compile(
        r"(\bunion\s+(all\s+)?select\b)"
        r"|('\s*or\s+'?\d+'?\s*=\s*'?\d+)"
        r"|(\b(drop|truncate)\s+table\b)"
        r"|(;\s*(shutdown|exec|xp_cmdshell)\b)"
        r"|(\bsleep\s*\(\s*\d+\s*\))"
        r"|('\s*--)",
        re.I,
    ),
    "xss": re.compile(
        r"(<\s*script\b)|(javascript\s*:)|(\bon(error|load|mouseover|focus)\s*=)|(<\s*iframe\b)",
        re.I,
    ),
    "path_traversal": re.compile(r"(\.\./|\.\.\\)|(/etc/(passwd|shadow))|(\bwin\.ini\b)", re.I),
    "command_injection": re.compile(
        r"([;|`]\s*(cat|ls|id|whoami|uname|wget|curl|nc|bash|sh)\b)|(\$\()",
        re.I,
    ),
}

# Decoding rounds applied to catch double-encoded payloads
MAX_DECODE_ROUNDS = 2


def _decode(value: str) -> str:
    for _ in range(MAX_DECODE_ROUNDS):
        decoded = unquote_plus(value)
        if decoded == value:
            break
        value = decoded
    return value


def inspect_request(*, path: str, query: str = "") -> List[str]:
    """
    Inspect the request target for common attack patterns.

    Returns the names of the matched rules, empty when the request is clean.
    """
    target = _decode(path)
    if query:
        target = f"{target}?{_decode(query)}"

    return [name for name, pattern in SHIELD_RULES.items() if pattern.search(target)]
