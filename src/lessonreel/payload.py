"""Submission payload parsing — raw request dict to TimelineRequest.

Payload schema (as posted by a client):
  type: "ABCS"                     # optional, the only supported theme
  title: "ABCs A-L"                # optional, display only
  durationTargetMinutes: 4         # or legacy "durationTarget"
  contentJson: '[{"label": "A", "caption": "Apple"}, ...]'

contentJson may also be an already-decoded list. Items may use
label/caption or the legacy letter/word keys.

Parsing degrades instead of failing: unparsable content becomes an empty
item list and an unusable duration becomes the default. Only the type tag
is a hard error, and only at submission time (validate_payload).
"""

import json
import logging
import math
from pathlib import Path

import yaml

from .models import ContentItem, TimelineRequest

logger = logging.getLogger(__name__)

VALID_TYPES = {"ABCS"}

DEFAULT_TYPE = "ABCS"

DEFAULT_DURATION_MINUTES = 4

# (label key, caption key) pairs, tried in order.
ITEM_KEYS = [("label", "caption"), ("letter", "word")]


class SubmissionError(ValueError):
    """A payload that cannot be accepted, or a job that cannot be enqueued."""


def validate_payload(payload) -> None:
    """Reject payloads the gateway must not enqueue.

    Raises:
        SubmissionError: payload is not a mapping or has an unknown type.
    """
    if not isinstance(payload, dict):
        raise SubmissionError(
            f"Payload must be a JSON object, got {type(payload).__name__}"
        )
    kind = payload.get("type") or DEFAULT_TYPE
    if kind not in VALID_TYPES:
        raise SubmissionError(
            f"Unknown type '{kind}'. Valid: {sorted(VALID_TYPES)}"
        )


def parse_duration(payload: dict) -> float:
    """Read the duration target in minutes, falling back to the default."""
    raw = payload.get("durationTargetMinutes", payload.get("durationTarget"))
    if raw is None or raw == "" or raw == 0 or isinstance(raw, bool):
        return DEFAULT_DURATION_MINUTES
    try:
        minutes = float(raw)
    except (TypeError, ValueError):
        logger.warning("Unusable duration target %r, using default", raw)
        return DEFAULT_DURATION_MINUTES
    if not math.isfinite(minutes):
        return DEFAULT_DURATION_MINUTES
    return minutes


def _parse_item(entry) -> ContentItem | None:
    if not isinstance(entry, dict):
        return None
    for label_key, caption_key in ITEM_KEYS:
        if label_key in entry and caption_key in entry:
            return ContentItem(
                label=str(entry[label_key]), caption=str(entry[caption_key]),
            )
    return None


def parse_items(content) -> tuple[ContentItem, ...]:
    """Decode the content field into items.

    Anything that is not a list (after JSON decoding, if a string) yields
    an empty tuple. Entries without a recognizable label/caption pair are
    skipped.
    """
    if isinstance(content, (str, bytes)):
        try:
            content = json.loads(content)
        except ValueError:
            logger.warning("Unparsable content JSON, using empty content list")
            return ()
    if not isinstance(content, list):
        if content is not None:
            logger.warning(
                "Content is %s, not a list; using empty content list",
                type(content).__name__,
            )
        return ()

    items = []
    for i, entry in enumerate(content):
        item = _parse_item(entry)
        if item is None:
            logger.warning("Skipping content entry %d: no label/caption", i)
            continue
        items.append(item)
    return tuple(items)


def parse_payload(payload: dict) -> TimelineRequest:
    """Build a TimelineRequest from a submission payload. Never raises
    for malformed content; see module docstring."""
    return TimelineRequest(
        type=payload.get("type") or DEFAULT_TYPE,
        title=str(payload.get("title") or ""),
        duration_target_minutes=parse_duration(payload),
        items=parse_items(payload.get("contentJson")),
    )


def load_content_file(path: str | Path) -> list:
    """Load a content list from a JSON or YAML file for the CLI.

    Unlike submitted payloads, a local file that is missing or not a list
    is an error.

    Raises:
        FileNotFoundError: Missing file.
        ValueError: File does not contain a list.
    """
    with open(path) as f:
        raw = yaml.safe_load(f)
    if not isinstance(raw, list):
        raise ValueError(
            f"Content file {path}: expected a list of items, "
            f"got {type(raw).__name__}"
        )
    return raw
