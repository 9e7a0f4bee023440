"""Timeline compiler — content items + duration target to a scene script.

The script is always:

  intro | card x N | review | outro

where N is the number of content items that fit the target runtime,
clamped to [MIN_CARDS, MAX_CARDS]. The clamp bounds N but never pads:
with fewer items than MIN_CARDS, every item becomes a card and the
script is simply shorter. With a tiny or non-positive target the lower
bound still applies, so the video may run longer than asked.

Only the intro and outro (the bookends) are reserved from the target
before dividing by the card duration. The review scene is not, so the
total runtime overshoots the target by up to one review scene.
"""

import math

from .models import ContentItem, SceneDescriptor, TimelineRequest


CARD_SECONDS = 15

MIN_CARDS = 10
MAX_CARDS = 18

# Card backgrounds alternate by index parity: even, odd.
CARD_BACKGROUNDS = ("#F7E6A5", "#BEEBC4")

INTRO = SceneDescriptor(
    duration_seconds=6,
    background="#A9D6F5",
    title="FUN LEARNING TIME!",
    subtitle="Let’s Learn Our ABCs",
)

REVIEW = SceneDescriptor(
    duration_seconds=10,
    background="#D9C2F0",
    title="Let’s Review!",
    subtitle="Say the sounds with me!",
)

OUTRO = SceneDescriptor(
    duration_seconds=6,
    background="#A9D6F5",
    title="Great Job!",
    subtitle="See you next time!",
)

BOOKEND_SECONDS = INTRO.duration_seconds + OUTRO.duration_seconds


def max_cards(duration_target_minutes: float) -> int:
    """Number of cards that fit the target, clamped to [MIN_CARDS, MAX_CARDS]."""
    fit = math.floor(
        (duration_target_minutes * 60 - BOOKEND_SECONDS) / CARD_SECONDS
    )
    return max(MIN_CARDS, min(MAX_CARDS, fit))


def card_scene(index: int, item: ContentItem) -> SceneDescriptor:
    return SceneDescriptor(
        duration_seconds=CARD_SECONDS,
        background=CARD_BACKGROUNDS[index % 2],
        title=item.label,
        subtitle=f"{item.label} is for {item.caption}",
    )


def compile_timeline(
    items, duration_target_minutes: float,
) -> tuple[SceneDescriptor, ...]:
    """Compile content items into an ordered scene script.

    Args:
        items: Sequence of ContentItem, in presentation order.
        duration_target_minutes: Requested runtime. A target, not a contract.

    Returns:
        Tuple of scenes: intro, cards, review, outro.
    """
    kept = list(items)[:max_cards(duration_target_minutes)]
    cards = [card_scene(i, item) for i, item in enumerate(kept)]
    return (INTRO, *cards, REVIEW, OUTRO)


def compile_request(request: TimelineRequest) -> tuple[SceneDescriptor, ...]:
    return compile_timeline(request.items, request.duration_target_minutes)


def script_duration(script) -> float:
    """Total scripted runtime in seconds."""
    return sum(scene.duration_seconds for scene in script)
