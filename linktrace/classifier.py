"""User-agent classification.

``classify()`` is a pure, total function: it never performs I/O, keeps no
state and maps an empty or missing user agent to ``"Unknown"`` in every field.

Each field is resolved by an ordered rule table evaluated top-down, first
match wins. Order matters: Edge and Opera user agents also carry a
``Chrome/`` token, so the more specific browser rules are listed first.
Mobile Safari on iPhone and iPad carries ``like Mac OS X`` and therefore
reports ``macOS``; only iOS agents without that token reach the iOS rule.
"""

import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from linktrace.models import UNKNOWN

__all__ = ["UserAgentInfo", "classify"]

Rule = tuple[Callable[[str], bool], str]


def _has(pattern: str) -> Callable[[str], bool]:
    regex = re.compile(pattern)
    return lambda ua: regex.search(ua) is not None


def _has_all(*patterns: str) -> Callable[[str], bool]:
    checks = [_has(p) for p in patterns]
    return lambda ua: all(check(ua) for check in checks)


def _has_without(pattern: str, excluded: str) -> Callable[[str], bool]:
    present, absent = _has(pattern), _has(excluded)
    return lambda ua: present(ua) and not absent(ua)


def _always(ua: str) -> bool:
    return True


BROWSER_RULES: Sequence[Rule] = (
    (_has(r"Edg/"), "Microsoft Edge"),
    (_has(r"OPR/|Opera"), "Opera"),
    (_has(r"Chrome/"), "Chrome"),
    (_has(r"Firefox/"), "Firefox"),
    (_has_without(r"Safari/", r"Chrome"), "Safari"),
    (_has(r"MSIE|Trident"), "Internet Explorer"),
)

OS_RULES: Sequence[Rule] = (
    (_has(r"Windows NT 10"), "Windows 10/11"),
    (_has(r"Windows NT 6"), "Windows Vista/7/8"),
    (_has(r"Windows"), "Windows"),
    (_has(r"Mac OS X"), "macOS"),
    (_has(r"iPhone|iPad"), "iOS"),
    (_has(r"Android"), "Android"),
    (_has(r"Linux"), "Linux"),
)

DEVICE_RULES: Sequence[Rule] = (
    (_has(r"iPhone"), "iPhone"),
    (_has(r"iPad"), "iPad"),
    (_has_all(r"Android", r"Mobile"), "Android Phone"),
    (_has(r"Android"), "Android Tablet"),
    (_always, "Desktop"),
)

ENGINE_RULES: Sequence[Rule] = (
    (_has(r"Edg/|Chrome/|OPR/"), "Blink"),
    (_has(r"Trident|MSIE"), "Trident"),
    (_has_all(r"Gecko/", r"Firefox/"), "Gecko"),
    (_has(r"AppleWebKit/"), "WebKit"),
)


@dataclass(frozen=True)
class UserAgentInfo:
    browser: str = UNKNOWN
    os: str = UNKNOWN
    device: str = UNKNOWN
    engine: str = UNKNOWN


def _first_match(rules: Sequence[Rule], ua: str) -> str:
    for predicate, label in rules:
        if predicate(ua):
            return label
    return UNKNOWN


def classify(user_agent: str | None) -> UserAgentInfo:
    if not user_agent or user_agent == UNKNOWN:
        return UserAgentInfo()
    return UserAgentInfo(
        browser=_first_match(BROWSER_RULES, user_agent),
        os=_first_match(OS_RULES, user_agent),
        device=_first_match(DEVICE_RULES, user_agent),
        engine=_first_match(ENGINE_RULES, user_agent),
    )
