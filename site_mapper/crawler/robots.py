"""
robots.txt rules (RFC 9309) and the indexing policy built on top of them.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
from urllib.parse import urlparse

from aiohttp import ClientError, ClientSession, ClientTimeout

from site_mapper.exceptions import PolicyError
from site_mapper.logger import logger

__all__ = ("RobotsTxtRules", "RobotsPolicy", "load_robots_policy")

_Directive = Tuple[str, str]


@dataclass
class _Group:
    agents: List[str] = field(default_factory=list)
    directives: List[_Directive] = field(default_factory=list)
    crawl_delay: Optional[float] = None

    @property
    def has_rules(self) -> bool:
        return bool(self.directives) or self.crawl_delay is not None


class RobotsTxtRules:
    """
    Parsed robots.txt. The longest matching pattern decides, Allow wins a tie.
    An empty Disallow allows everything.
    """
    _WILDCARD_RE = re.compile(r"(\*|\$)")

    def __init__(self, text: str) -> None:
        self.groups: List[_Group] = []
        self._regex_cache: Dict[str, re.Pattern[str]] = {}
        self._parse(text)

    def can_fetch(self, user_agent: str, path: str) -> bool:
        """Return True if *user_agent* may access *path* (path plus query)."""
        group = self._match_group(user_agent)
        if group is None:
            return True
        best_len = -1
        allow: Optional[bool] = None
        for directive, pattern in group.directives:
            if not self._match_path(path, pattern):
                continue
            length = self._rule_len(pattern)
            if length > best_len or (length == best_len and directive == "allow"):
                best_len = length
                allow = directive == "allow"
        return True if allow is None else allow

    def crawl_delay(self, user_agent: str) -> Optional[float]:
        group = self._match_group(user_agent)
        return None if group is None else group.crawl_delay

    def _current(self, current: Optional[_Group]) -> _Group:
        # rules before any User-agent line apply to everyone
        if current is None:
            current = _Group(agents=["*"])
            self.groups.append(current)
        return current

    def _parse(self, text: str) -> None:
        current: Optional[_Group] = None
        for raw in text.splitlines():
            line = raw.split("#", 1)[0].strip()
            if not line or ":" not in line:
                continue
            key, _, val = line.partition(":")
            key = key.lower().strip()
            val = val.strip()
            if key == "user-agent":
                if current is None or current.has_rules:
                    current = _Group()
                    self.groups.append(current)
                current.agents.append(val.lower())
            elif key in ("allow", "disallow"):
                current = self._current(current)
                if val:
                    current.directives.append((key, val))
            elif key == "crawl-delay":
                current = self._current(current)
                try:
                    current.crawl_delay = float(val)
                except ValueError:
                    logger.debug("Ignoring malformed Crawl-delay: %r", val)

    def _match_group(self, user_agent: str) -> Optional[_Group]:
        ua = user_agent.lower()
        for group in self.groups:
            if any(a != "*" and ua.startswith(a) for a in group.agents):
                return group
        for group in self.groups:
            if "*" in group.agents:
                return group
        return None

    def _match_path(self, path: str, pattern: str) -> bool:
        if pattern not in self._regex_cache:
            esc = re.escape(pattern).replace(r"\*", ".*")
            if pattern.endswith("$"):
                esc = esc[:-2] + "$"
            self._regex_cache[pattern] = re.compile(f"^{esc}")
        return bool(self._regex_cache[pattern].match(path))

    @classmethod
    def _rule_len(cls, pattern: str) -> int:
        return len(cls._WILDCARD_RE.sub("", pattern))


class RobotsPolicy:
    """Answers "may this URL be indexed?" for one site and one user agent."""

    def __init__(self, rules: RobotsTxtRules, user_agent: str = "*") -> None:
        self.rules = rules
        self.user_agent = user_agent

    @classmethod
    def from_text(cls, text: str, user_agent: str = "*") -> RobotsPolicy:
        return cls(RobotsTxtRules(text), user_agent)

    @classmethod
    def allow_all(cls, user_agent: str = "*") -> RobotsPolicy:
        return cls(RobotsTxtRules(""), user_agent)

    def may_index(self, url: str) -> bool:
        parsed = urlparse(url)
        path = parsed.path or "/"
        if parsed.query:
            path = f"{path}?{parsed.query}"
        return self.rules.can_fetch(self.user_agent, path)

    @property
    def crawl_delay(self) -> Optional[float]:
        return self.rules.crawl_delay(self.user_agent)


async def load_robots_policy(
    session: ClientSession,
    robots_url: str,
    user_agent: str,
    timeout: float = 10.0,
) -> RobotsPolicy:
    """
    Download robots.txt and build the policy.

    A 4xx answer means the site publishes no rules. Network errors, timeouts,
    5xx answers and undecodable bodies raise PolicyError.
    """
    logger.info("Loading robots.txt from %s", robots_url)
    try:
        async with session.get(robots_url, timeout=ClientTimeout(total=timeout)) as resp:
            if 400 <= resp.status < 500:
                logger.info("robots.txt %s -> HTTP %s, no rules applied", robots_url, resp.status)
                return RobotsPolicy.allow_all(user_agent)
            if resp.status >= 500:
                raise PolicyError(robots_url, f"HTTP {resp.status}")
            text = await resp.text()
    except (ClientError, TimeoutError, UnicodeDecodeError) as exc:
        raise PolicyError(robots_url, exc) from exc
    return RobotsPolicy.from_text(text, user_agent)
