"""User-Agent rotation utilities for anti-detection."""

import random
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional

import structlog

logger = structlog.get_logger(__name__)


# Desktop browsers: Chrome, Firefox, Safari and Edge on Windows, macOS and Linux
DESKTOP_USER_AGENTS: List[str] = [
    # Chrome on Windows
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/130.0.0.0 Safari/537.36",
    # Chrome on macOS
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
    # Chrome on Linux
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
    # Firefox
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:133.0) Gecko/20100101 Firefox/133.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10.15; rv:133.0) Gecko/20100101 Firefox/133.0",
    # Safari on macOS
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/18.1 Safari/605.1.15",
    # Edge on Windows
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36 Edg/131.0.0.0",
]

MOBILE_USER_AGENTS: List[str] = [
    # iPhone Safari
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_1 like Mac OS X) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.1 Mobile/15E148 Safari/604.1",
    # iPad Safari
    "Mozilla/5.0 (iPad; CPU OS 17_1 like Mac OS X) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.1 Mobile/15E148 Safari/604.1",
    # Android Chrome
    "Mozilla/5.0 (Linux; Android 14; Pixel 8) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Mobile Safari/537.36",
    "Mozilla/5.0 (Linux; Android 14; SM-S918B) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Mobile Safari/537.36",
]

USER_AGENTS: List[str] = DESKTOP_USER_AGENTS + MOBILE_USER_AGENTS

STRATEGIES = ("random", "round_robin", "weighted")


def get_random_user_agent() -> str:
    """Get a random user-agent string from the pool.

    Returns:
        Random user-agent string
    """
    return random.choice(USER_AGENTS)


def detect_mobile(user_agent: str) -> bool:
    return any(k in user_agent for k in ("Mobile", "Android", "iPhone", "iPad", "iPod"))


def detect_browser(user_agent: str) -> str:
    if "Edg/" in user_agent:
        return "Edge"
    if "Firefox/" in user_agent:
        return "Firefox"
    if "Chrome/" in user_agent:
        return "Chrome"
    if "Safari/" in user_agent:
        return "Safari"
    return "Unknown"


def detect_os(user_agent: str) -> str:
    # Check mobile platforms first, their strings also mention desktop systems
    if "Android" in user_agent:
        return "Android"
    if "iPhone" in user_agent or "iPad" in user_agent:
        return "iOS"
    if "Windows NT" in user_agent:
        return "Windows"
    if "Mac OS X" in user_agent:
        return "macOS"
    if "Linux" in user_agent:
        return "Linux"
    return "Unknown"


@dataclass
class UserAgentInfo:
    """A pooled user agent with usage tracking."""

    user_agent: str
    is_mobile: bool
    browser: str
    os: str
    usage_count: int = 0
    last_used: Optional[datetime] = None

    @classmethod
    def from_string(cls, user_agent: str) -> "UserAgentInfo":
        return cls(
            user_agent=user_agent,
            is_mobile=detect_mobile(user_agent),
            browser=detect_browser(user_agent),
            os=detect_os(user_agent),
        )


class UserAgentRotator:
    """Supplies a varying client identity per request.

    Each instance owns its pool and usage counters; nothing is shared between
    rotators. The ``random`` strategy may return the same agent twice in a row.
    """

    def __init__(
        self,
        user_agents: Optional[List[str]] = None,
        strategy: str = "random",
        mobile_ratio: float = 0.0,
        rng: Optional[random.Random] = None,
    ):
        """Initialize the rotator.

        Args:
            user_agents: Custom pool; defaults to the built-in desktop/mobile mix
            strategy: 'random', 'round_robin' or 'weighted'
            mobile_ratio: Share of the built-in mobile agents to include (0-1)
            rng: Random source, injectable for tests
        """
        if strategy not in STRATEGIES:
            raise ValueError(f"Unknown user agent strategy: {strategy}")

        self.strategy = strategy
        self._rng = rng or random.Random()
        self._index = 0

        if user_agents:
            pool = list(user_agents)
        else:
            mobile_count = int(len(MOBILE_USER_AGENTS) * max(0.0, min(1.0, mobile_ratio)))
            pool = DESKTOP_USER_AGENTS + MOBILE_USER_AGENTS[:mobile_count]

        self._agents: List[UserAgentInfo] = [UserAgentInfo.from_string(ua) for ua in pool]

    def get_next(self, prefer_mobile: Optional[bool] = None) -> str:
        """Return the next user agent according to the strategy.

        Args:
            prefer_mobile: Restrict to mobile (True) or desktop (False) agents
                when the pool has any; None uses the whole pool

        Raises:
            ValueError: If the pool is empty
        """
        if not self._agents:
            raise ValueError("User agent pool is empty")

        candidates = self._agents
        if prefer_mobile is not None:
            filtered = [a for a in self._agents if a.is_mobile == prefer_mobile]
            candidates = filtered or self._agents

        if self.strategy == "round_robin":
            agent = candidates[self._index % len(candidates)]
            self._index = (self._index + 1) % len(candidates)
        elif self.strategy == "weighted":
            agent = self._pick_weighted(candidates)
        else:
            agent = self._rng.choice(candidates)

        agent.usage_count += 1
        agent.last_used = datetime.now(timezone.utc)
        return agent.user_agent

    def _pick_weighted(self, candidates: List[UserAgentInfo]) -> UserAgentInfo:
        """Less-used agents get proportionally higher weight."""
        max_usage = max(a.usage_count for a in candidates)
        weights = [max_usage - a.usage_count + 1 for a in candidates]
        return self._rng.choices(candidates, weights=weights, k=1)[0]

    def add_user_agent(self, user_agent: str) -> None:
        """Add a custom user agent to the pool."""
        if any(a.user_agent == user_agent for a in self._agents):
            return
        info = UserAgentInfo.from_string(user_agent)
        self._agents.append(info)
        logger.info("user_agent_added", browser=info.browser, os=info.os, is_mobile=info.is_mobile)

    def remove_user_agent(self, user_agent: str) -> bool:
        """Remove a user agent from the pool.

        Returns:
            True if it was in the pool
        """
        for i, agent in enumerate(self._agents):
            if agent.user_agent == user_agent:
                del self._agents[i]
                return True
        return False

    def get_stats(self) -> Dict[str, object]:
        """Summarize the pool composition and usage."""
        by_browser: Dict[str, int] = {}
        by_os: Dict[str, int] = {}
        for agent in self._agents:
            by_browser[agent.browser] = by_browser.get(agent.browser, 0) + 1
            by_os[agent.os] = by_os.get(agent.os, 0) + 1
        mobile = sum(1 for a in self._agents if a.is_mobile)
        return {
            "total": len(self._agents),
            "mobile": mobile,
            "desktop": len(self._agents) - mobile,
            "by_browser": by_browser,
            "by_os": by_os,
            "total_usage": sum(a.usage_count for a in self._agents),
        }

    def reset_stats(self) -> None:
        for agent in self._agents:
            agent.usage_count = 0
            agent.last_used = None
        self._index = 0
