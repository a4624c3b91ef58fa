"""Achievement catalog."""

from cortex.domain.achievement import Achievement, AchievementTier


WEEKLY_ACHIEVEMENTS: list[Achievement] = [
    Achievement(
        id="streak_starter",
        name="Streak Starter",
        description="Complete tasks 3+ days in a row",
        tier=AchievementTier.WEEKLY,
        requirement=3,
        reward_xp=50,
        icon="🔥",
    ),
    Achievement(
        id="productive_week",
        name="Productive Week",
        description="Complete 10+ tasks this week",
        tier=AchievementTier.WEEKLY,
        requirement=10,
        reward_xp=75,
        icon="⚡",
    ),
    Achievement(
        id="goal_crusher",
        name="Goal Crusher",
        description="Complete a week-level goal",
        tier=AchievementTier.WEEKLY,
        requirement=1,
        reward_xp=100,
        icon="🎯",
    ),
    Achievement(
        id="outreach_champion",
        name="Outreach Champion",
        description="Hit daily outreach target 5 days",
        tier=AchievementTier.WEEKLY,
        requirement=5,
        reward_xp=75,
        icon="📣",
    ),
]

MONTHLY_ACHIEVEMENTS: list[Achievement] = [
    Achievement(
        id="consistent",
        name="Consistent",
        description="Complete tasks on 20+ days",
        tier=AchievementTier.MONTHLY,
        requirement=20,
        reward_xp=150,
        icon="📅",
    ),
    Achievement(
        id="progress_master",
        name="Progress Master",
        description="All month goals at 50%+ progress",
        tier=AchievementTier.MONTHLY,
        requirement=50,
        reward_xp=200,
        icon="📈",
    ),
    Achievement(
        id="perfect_week",
        name="Perfect Week",
        description="100% task completion in any week",
        tier=AchievementTier.MONTHLY,
        requirement=100,
        reward_xp=175,
        icon="💯",
    ),
    Achievement(
        id="overachiever",
        name="Overachiever",
        description="Complete 50+ tasks this month",
        tier=AchievementTier.MONTHLY,
        requirement=50,
        reward_xp=250,
        icon="🚀",
    ),
    Achievement(
        id="deadline_keeper",
        name="Deadline Keeper",
        description="Meet all deadlines this month",
        tier=AchievementTier.MONTHLY,
        requirement=100,  # percentage
        reward_xp=200,
        icon="⏰",
    ),
    Achievement(
        id="networking_pro",
        name="Networking Pro",
        description="Log 100+ outreach contacts",
        tier=AchievementTier.MONTHLY,
        requirement=100,
        reward_xp=250,
        icon="🤝",
    ),
]

YEARLY_ACHIEVEMENTS: list[Achievement] = [
    Achievement(
        id="year_champion",
        name="Year Champion",
        description="Complete a year-level goal",
        tier=AchievementTier.YEARLY,
        requirement=1,
        reward_xp=500,
        icon="👑",
    ),
    Achievement(
        id="veteran",
        name="Veteran",
        description="Use the app for 365 days",
        tier=AchievementTier.YEARLY,
        requirement=365,
        reward_xp=1000,
        icon="🎖️",
    ),
    Achievement(
        id="productivity_legend",
        name="Productivity Legend",
        description="Complete 500+ tasks",
        tier=AchievementTier.YEARLY,
        requirement=500,
        reward_xp=750,
        icon="🌟",
    ),
    Achievement(
        id="monthly_maven",
        name="Monthly Maven",
        description="Earn all monthly achievements in one month",
        tier=AchievementTier.YEARLY,
        requirement=len(MONTHLY_ACHIEVEMENTS),
        reward_xp=400,
        icon="🏅",
    ),
    Achievement(
        id="century_club",
        name="Century Club",
        description="100 days with completed tasks",
        tier=AchievementTier.YEARLY,
        requirement=100,
        reward_xp=300,
        icon="💪",
    ),
    Achievement(
        id="diverse_achiever",
        name="Diverse Achiever",
        description="Complete tasks in all 4 scopes",
        tier=AchievementTier.YEARLY,
        requirement=4,
        reward_xp=200,
        icon="🌈",
    ),
    Achievement(
        id="time_master",
        name="Time Master",
        description="Meet 50+ deadlines",
        tier=AchievementTier.YEARLY,
        requirement=50,
        reward_xp=350,
        icon="⌛",
    ),
    Achievement(
        id="streak_legend",
        name="Streak Legend",
        description="Achieve a 30-day completion streak",
        tier=AchievementTier.YEARLY,
        requirement=30,
        reward_xp=500,
        icon="☄️",
    ),
    Achievement(
        id="data_driven",
        name="Data Driven",
        description="90%+ average progress on all goals",
        tier=AchievementTier.YEARLY,
        requirement=90,
        reward_xp=400,
        icon="📊",
    ),
    Achievement(
        id="celebration",
        name="Celebration",
        description="Complete 12 month-level goals",
        tier=AchievementTier.YEARLY,
        requirement=12,
        reward_xp=600,
        icon="🎉",
    ),
]

ALL_ACHIEVEMENTS: list[Achievement] = [*WEEKLY_ACHIEVEMENTS, *MONTHLY_ACHIEVEMENTS, *YEARLY_ACHIEVEMENTS]

_BY_ID: dict[str, Achievement] = {achievement.id: achievement for achievement in ALL_ACHIEVEMENTS}


def get_achievement(achievement_id: str) -> Achievement | None:
    return _BY_ID.get(achievement_id)


def achievements_for_tier(tier: AchievementTier) -> list[Achievement]:
    return [achievement for achievement in ALL_ACHIEVEMENTS if achievement.tier == tier]
