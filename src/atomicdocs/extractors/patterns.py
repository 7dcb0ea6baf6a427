from __future__ import annotations

import re

# {id} / {id:int}  (Starlette, FastAPI)
_PARAM_BRACE = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)(?::[^}]*)?\}")
# <id> / <int:id> / <string(length=2):code>  (Werkzeug, Flask)
_PARAM_ANGLE = re.compile(
    r"<(?:[A-Za-z_][A-Za-z0-9_]*(?:\([^)]*\))?:)?([A-Za-z_][A-Za-z0-9_]*)>"
)

# \/?(?=\/|$)  optional trailing slash + lookahead that ends Express mount regexes
_OPTIONAL_SLASH_TAIL = re.compile(r"\\/\?\(\?=\\/\|\$\)$")
# /(?P<path>.*)$  catch-all tail Starlette appends to Mount regexes
_CATCH_ALL_TAIL = re.compile(r"/?\(\?P<path>\.\*\)\$?$")

_INLINE_FLAGS = set("aiLmsux-")
_QUANTIFIERS = set("?*+")

GENERIC_PARAM = ":param"


def to_colon_params(path: str) -> str:
    """Rewrite framework placeholders into the single `:name` notation."""
    p = _PARAM_BRACE.sub(r":\1", path)
    p = _PARAM_ANGLE.sub(r":\1", p)
    return p


def regex_to_prefix(regex: str) -> str:
    """
    Reverse-engineer a literal mount prefix from a path-matching regex.

      ^\\/api\\/?(?=\\/|$)               -> /api
      ^\\/users\\/(?:([^\\/]+?))\\/?(?=\\/|$) -> /users/:param
      ^/users/(?P<uid>[^/]+)/(?P<path>.*)$   -> /users/:uid

    Capture groups become a parameter marker: the group name when the
    regex names it, `:param` otherwise. Lookarounds and inline flags are
    dropped. The result never ends with a slash.
    """
    src = (regex or "").strip()
    src = _OPTIONAL_SLASH_TAIL.sub("", src)
    src = _CATCH_ALL_TAIL.sub("", src)
    if src.startswith("^"):
        src = src[1:]
    if src.endswith("$") and not src.endswith("\\$"):
        src = src[:-1]

    out: list[str] = []
    i = 0
    n = len(src)
    while i < n:
        ch = src[i]
        if ch == "\\" and i + 1 < n:
            out.append(src[i + 1])
            i += 2
            continue
        if ch == "(":
            end = _group_end(src, i)
            marker = _group_marker(src[i:end])
            if marker:
                out.append(marker)
            i = _skip_quantifier(src, end)
            continue
        if ch == "[":
            # bare character class outside a group still matches one dynamic segment
            end = _class_end(src, i)
            out.append(GENERIC_PARAM)
            i = _skip_quantifier(src, end)
            continue
        if ch in _QUANTIFIERS or ch in "^$":
            i += 1
            continue
        out.append(ch)
        i += 1

    prefix = "".join(out)
    prefix = prefix.rstrip("/")
    if prefix and not prefix.startswith("/"):
        prefix = "/" + prefix
    return prefix


def _group_marker(group: str) -> str:
    if group.startswith("(?P<"):
        name = group[4 : group.index(">")] if ">" in group else ""
        return f":{name}" if name else GENERIC_PARAM
    if group[:3] in ("(?=", "(?!") or group[:4] in ("(?<=", "(?<!"):
        return ""
    if len(group) > 2 and group[1] == "?" and group[2] in _INLINE_FLAGS:
        # (?i) or (?i:...) flags; only a scoped group can hold a capture
        if ")" == group[-1] and "(" not in group[1:-1] and ":" not in group:
            return ""
    return GENERIC_PARAM


def _group_end(src: str, start: int) -> int:
    """Index just past the paren that closes the group opened at `start`."""
    depth = 0
    i = start
    n = len(src)
    while i < n:
        ch = src[i]
        if ch == "\\":
            i += 2
            continue
        if ch == "[":
            i = _class_end(src, i)
            continue
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return i + 1
        i += 1
    return n


def _class_end(src: str, start: int) -> int:
    i = start + 1
    n = len(src)
    if i < n and src[i] == "^":
        i += 1
    if i < n and src[i] == "]":
        i += 1
    while i < n:
        if src[i] == "\\":
            i += 2
            continue
        if src[i] == "]":
            return i + 1
        i += 1
    return n


def _skip_quantifier(src: str, i: int) -> int:
    n = len(src)
    while i < n and src[i] in _QUANTIFIERS:
        i += 1
    if i < n and src[i] == "{":
        close = src.find("}", i)
        if close != -1:
            i = close + 1
    return i
