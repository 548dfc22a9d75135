"""Mood vocabulary shared by the API, the client data layer and the views.

The mood set is closed: the database enum, the request schemas and the
display table below must list the same six values.
"""

from dataclasses import dataclass
from enum import Enum

# Fallbacks used when an entry carries no mood
NO_MOOD_COLOR = "#6B7280"


class Mood(str, Enum):
    """Emotional state tag for a journal entry."""

    happy = "happy"
    sad = "sad"
    anxious = "anxious"
    calm = "calm"
    stressed = "stressed"
    neutral = "neutral"


@dataclass(frozen=True)
class MoodConfig:
    """Display attributes for one mood."""

    value: Mood
    label: str
    emoji: str
    color: str
    description: str


MOODS: tuple[MoodConfig, ...] = (
    MoodConfig(Mood.happy, "Happy", "😊", "#10B981", "Feeling joyful and content"),
    MoodConfig(Mood.sad, "Sad", "😢", "#3B82F6", "Feeling down or melancholic"),
    MoodConfig(Mood.anxious, "Anxious", "😰", "#F59E0B", "Feeling worried or uneasy"),
    MoodConfig(Mood.calm, "Calm", "😌", "#8B5CF6", "Feeling peaceful and relaxed"),
    MoodConfig(Mood.stressed, "Stressed", "😫", "#EF4444", "Feeling overwhelmed or pressured"),
    MoodConfig(Mood.neutral, "Neutral", "😐", "#6B7280", "Feeling neither positive nor negative"),
)

_BY_VALUE: dict[Mood, MoodConfig] = {config.value: config for config in MOODS}

MOOD_VALUES: tuple[str, ...] = tuple(m.value for m in Mood)


def parse_mood(value: str | Mood | None) -> Mood | None:
    """Coerce a raw value into a Mood.

    Raises:
        ValueError: If the value is not one of the six moods.
    """
    if value is None or isinstance(value, Mood):
        return value
    return Mood(value)


def get_mood_config(mood: Mood | str | None) -> MoodConfig | None:
    """Return the display configuration for a mood, or None for no/unknown mood."""
    if not mood:
        return None
    try:
        return _BY_VALUE[Mood(mood)]
    except ValueError:
        return None


def get_mood_emoji(mood: Mood | str | None) -> str:
    config = get_mood_config(mood)
    return config.emoji if config else ""


def get_mood_label(mood: Mood | str | None) -> str:
    config = get_mood_config(mood)
    return config.label if config else ""


def get_mood_color(mood: Mood | str | None) -> str:
    config = get_mood_config(mood)
    return config.color if config else NO_MOOD_COLOR


def get_mood_description(mood: Mood | str | None) -> str:
    config = get_mood_config(mood)
    return config.description if config else ""


class MoodSelection:
    """Editor-side mood picker state.

    Selecting the mood that is already selected changes nothing; clearing
    is a separate action that leaves the entry without a mood.
    """

    def __init__(self, initial: Mood | str | None = None):
        self._mood = parse_mood(initial)

    @property
    def mood(self) -> Mood | None:
        return self._mood

    def select(self, mood: Mood | str) -> bool:
        """Select a mood.

        Returns:
            True if the selection changed, False for a repeated selection.
        """
        selected = parse_mood(mood)
        if selected == self._mood:
            return False
        self._mood = selected
        return True

    def clear(self) -> bool:
        """Remove the mood. Returns True if a mood was set before."""
        if self._mood is None:
            return False
        self._mood = None
        return True
