"""Achievement catalog: 18 definitions, fixed for the life of the process.

The catalog is module-level constant data: a tuple of frozen dataclasses plus a
read-only id index. Nothing mutates it after import.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Literal

AchievementCategory = Literal["explorer", "contributor", "streak", "special", "social"]
AchievementRarity = Literal["common", "rare", "epic", "legendary"]
CriteriaType = Literal["scan_count", "report_count", "streak", "time_based", "rank", "custom"]

CATEGORIES: frozenset[str] = frozenset({"explorer", "contributor", "streak", "special", "social"})
RARITIES: tuple[str, ...] = ("common", "rare", "epic", "legendary")
CRITERIA_TYPES: frozenset[str] = frozenset(
    {"scan_count", "report_count", "streak", "time_based", "rank", "custom"}
)

# Points awarded for actions (achievement rewards come from the catalog itself)
SCAN_SITE_POINTS = 50
DETAILED_REPORT_POINTS = 100
STREAK_BONUS_PER_DAY = 10


@dataclass(frozen=True)
class AchievementCriteria:
    type: CriteriaType
    target: int | None = None
    condition: str | None = None


@dataclass(frozen=True)
class Achievement:
    id: str
    title: str
    description: str
    icon: str
    category: AchievementCategory
    rarity: AchievementRarity
    points: int
    criteria: AchievementCriteria


ACHIEVEMENTS: tuple[Achievement, ...] = (
    # Explorer
    Achievement(
        id="first_steps",
        title="First Steps",
        description="Complete your first heritage site scan",
        icon="\U0001F3AF",
        category="explorer",
        rarity="common",
        points=50,
        criteria=AchievementCriteria(type="scan_count", target=1),
    ),
    Achievement(
        id="site_explorer",
        title="Site Explorer",
        description="Scan 10 different heritage sites",
        icon="\U0001F5FA️",
        category="explorer",
        rarity="common",
        points=100,
        criteria=AchievementCriteria(type="scan_count", target=10),
    ),
    Achievement(
        id="heritage_hunter",
        title="Heritage Hunter",
        description="Scan 50 heritage sites",
        icon="\U0001F3DB️",
        category="explorer",
        rarity="rare",
        points=250,
        criteria=AchievementCriteria(type="scan_count", target=50),
    ),
    Achievement(
        id="master_guardian",
        title="Master Guardian",
        description="Scan 100 heritage sites",
        icon="\U0001F451",
        category="explorer",
        rarity="legendary",
        points=500,
        criteria=AchievementCriteria(type="scan_count", target=100),
    ),
    # Contributor
    Achievement(
        id="data_contributor",
        title="Data Contributor",
        description="Submit your first detailed analysis",
        icon="\U0001F4CA",
        category="contributor",
        rarity="common",
        points=75,
        criteria=AchievementCriteria(type="report_count", target=1),
    ),
    Achievement(
        id="quality_reporter",
        title="Quality Reporter",
        description="Submit 10 detailed reports",
        icon="\U0001F4DD",
        category="contributor",
        rarity="rare",
        points=200,
        criteria=AchievementCriteria(type="report_count", target=10),
    ),
    Achievement(
        id="conservation_champion",
        title="Conservation Champion",
        description="Submit 50 conservation reports",
        icon="\U0001F31F",
        category="contributor",
        rarity="epic",
        points=400,
        criteria=AchievementCriteria(type="report_count", target=50),
    ),
    # Streak
    Achievement(
        id="week_warrior",
        title="Week Warrior",
        description="Maintain a 7-day scanning streak",
        icon="\U0001F525",
        category="streak",
        rarity="rare",
        points=150,
        criteria=AchievementCriteria(type="streak", target=7),
    ),
    Achievement(
        id="month_master",
        title="Month Master",
        description="Maintain a 30-day scanning streak",
        icon="⚡",
        category="streak",
        rarity="epic",
        points=350,
        criteria=AchievementCriteria(type="streak", target=30),
    ),
    Achievement(
        id="dedication_legend",
        title="Dedication Legend",
        description="Maintain a 100-day scanning streak",
        icon="\U0001F48E",
        category="streak",
        rarity="legendary",
        points=500,
        criteria=AchievementCriteria(type="streak", target=100),
    ),
    # Special
    Achievement(
        id="early_bird",
        title="Early Bird",
        description="Scan a site before 7 AM",
        icon="\U0001F305",
        category="special",
        rarity="rare",
        points=100,
        criteria=AchievementCriteria(type="time_based", condition="Scan before 7 AM"),
    ),
    Achievement(
        id="night_owl",
        title="Night Owl",
        description="Scan a site after 10 PM",
        icon="\U0001F989",
        category="special",
        rarity="rare",
        points=100,
        criteria=AchievementCriteria(type="time_based", condition="Scan after 10 PM"),
    ),
    Achievement(
        id="weekend_warrior",
        title="Weekend Warrior",
        description="Scan 5 sites on weekends",
        icon="\U0001F389",
        category="special",
        rarity="common",
        points=75,
        criteria=AchievementCriteria(
            type="custom", target=5, condition="Scan 5 sites on Saturday or Sunday"
        ),
    ),
    # Social
    Achievement(
        id="top_ten",
        title="Top Ten",
        description="Reach the top 10 on the leaderboard",
        icon="\U0001F3C6",
        category="social",
        rarity="epic",
        points=300,
        criteria=AchievementCriteria(type="rank", target=10),
    ),
    Achievement(
        id="podium_finish",
        title="Podium Finish",
        description="Reach the top 3 on the leaderboard",
        icon="\U0001F947",
        category="social",
        rarity="legendary",
        points=500,
        criteria=AchievementCriteria(type="rank", target=3),
    ),
    Achievement(
        id="rising_star",
        title="Rising Star",
        description="Reach level 5",
        icon="⭐",
        category="social",
        rarity="rare",
        points=150,
        criteria=AchievementCriteria(type="custom", target=5, condition="Reach level 5"),
    ),
    Achievement(
        id="heritage_hero",
        title="Heritage Hero",
        description="Reach level 10",
        icon="\U0001F9B8",
        category="social",
        rarity="epic",
        points=300,
        criteria=AchievementCriteria(type="custom", target=10, condition="Reach level 10"),
    ),
    Achievement(
        id="legendary_guardian",
        title="Legendary Guardian",
        description="Reach level 20",
        icon="\U0001F451",
        category="social",
        rarity="legendary",
        points=500,
        criteria=AchievementCriteria(type="custom", target=20, condition="Reach level 20"),
    ),
)

# Stats field each custom achievement is measured against (compared with criteria.target)
CUSTOM_METRICS: MappingProxyType[str, str] = MappingProxyType({
    "weekend_warrior": "weekend_scans",
    "rising_star": "level",
    "heritage_hero": "level",
    "legendary_guardian": "level",
})

# Local-hour windows [start, end) for time-based achievements
TIME_WINDOWS: MappingProxyType[str, tuple[int, int]] = MappingProxyType({
    "early_bird": (0, 7),
    "night_owl": (22, 24),
})

CATEGORY_INFO: MappingProxyType[str, dict[str, str]] = MappingProxyType({
    "explorer": {"name": "Explorer", "icon": "\U0001F5FA️"},
    "contributor": {"name": "Contributor", "icon": "\U0001F4CA"},
    "streak": {"name": "Streak", "icon": "\U0001F525"},
    "special": {"name": "Special", "icon": "✨"},
    "social": {"name": "Social", "icon": "\U0001F465"},
})


def _index(achievements: tuple[Achievement, ...]) -> MappingProxyType[str, Achievement]:
    """Validate the catalog and build a read-only id index."""
    by_id: dict[str, Achievement] = {}
    for a in achievements:
        if a.id in by_id:
            raise ValueError(f"Duplicate achievement id: {a.id}")
        if a.category not in CATEGORIES or a.rarity not in RARITIES:
            raise ValueError(f"Bad category/rarity on {a.id}")
        if a.criteria.type not in CRITERIA_TYPES:
            raise ValueError(f"Unknown criteria type on {a.id}: {a.criteria.type}")
        if a.criteria.type == "custom" and a.id not in CUSTOM_METRICS:
            raise ValueError(f"Custom achievement without metric: {a.id}")
        if a.criteria.type == "time_based" and a.id not in TIME_WINDOWS:
            raise ValueError(f"Time-based achievement without window: {a.id}")
        by_id[a.id] = a
    return MappingProxyType(by_id)


ACHIEVEMENTS_BY_ID: MappingProxyType[str, Achievement] = _index(ACHIEVEMENTS)


def get_achievement(achievement_id: str) -> Achievement | None:
    """Look up a catalog entry by id."""
    return ACHIEVEMENTS_BY_ID.get(achievement_id)
