"""Import and export cards as markdown with YAML frontmatter.

A file holds any number of cards separated by a line containing only ``---``.
Each card may open with a frontmatter block::

    ---
    tags: [vocabulary, spanish]
    created: 2025-01-01T12:00:00Z
    interval: 1
    easeFactor: 2.5
    repetitions: 0
    ---

    Front content

    ===

    Back content

Front and back are split by a line of ``===`` (``***`` and ``___`` also work).
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Optional

import yaml

from dango.flashcards import get_all_cards, get_cards_by_deck, insert_cards
from dango.models import Card, ModernDifficulty, ease_slot_from_storage
from dango.scheduler import now_ms

logger = logging.getLogger(__name__)

FRONT_BACK_SEPARATORS = ("===", "***", "___")
CARD_SEPARATOR = "---"


class ImportFormatError(ValueError):
    pass


@dataclass
class ParsedCard:
    front: str
    back: str = ""
    metadata: dict = field(default_factory=dict)


def _split_sections(content: str) -> list[str]:
    sections = []
    current = []
    in_frontmatter = False
    for line in content.split("\n"):
        if line.strip() != CARD_SEPARATOR:
            current.append(line)
            continue
        if not "\n".join(current).strip():
            in_frontmatter = True
            current.append(line)
        elif in_frontmatter:
            in_frontmatter = False
            current.append(line)
        else:
            sections.append("\n".join(current))
            current = []
    if "\n".join(current).strip():
        sections.append("\n".join(current))
    return sections


def parse_frontmatter(text: str) -> dict:
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ImportFormatError(f"Invalid frontmatter: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ImportFormatError(f"Frontmatter must be a mapping, got {type(data).__name__}")
    return data


def parse_card(text: str) -> Optional[ParsedCard]:
    """Parse one card section. Returns None when there is no front text."""
    metadata = {}
    lines = text.strip().split("\n")
    if lines and lines[0].strip() == CARD_SEPARATOR:
        try:
            end = next(i for i, line in enumerate(lines[1:], 1) if line.strip() == CARD_SEPARATOR)
        except StopIteration:
            end = None
        if end is not None:
            metadata = parse_frontmatter("\n".join(lines[1:end]))
            lines = lines[end + 1:]

    body = "\n" + "\n".join(lines) + "\n"
    front, back = body, ""
    for separator in FRONT_BACK_SEPARATORS:
        marker = f"\n{separator}\n"
        index = body.find(marker)
        if index != -1:
            front, back = body[:index], body[index + len(marker):]
            break

    front, back = front.strip(), back.strip()
    if not front:
        return None
    return ParsedCard(front=front, back=back, metadata=metadata)


def parse_markdown(content: str) -> list[ParsedCard]:
    cards = []
    for section in _split_sections(content):
        card = parse_card(section)
        if card is None:
            logger.warning("Skipping card with no front text")
            continue
        cards.append(card)
    return cards


def to_epoch_ms(value) -> Optional[int]:
    """Convert an ISO-8601 string, date or datetime to epoch ms (UTC if naive)."""
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError as e:
            raise ImportFormatError(f"Invalid date: {value!r}") from e
    if isinstance(value, date) and not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp() * 1000)


def from_epoch_ms(value: int) -> str:
    moment = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    return moment.isoformat(timespec="seconds").replace("+00:00", "Z")


def _number(meta: dict, key: str, convert=float):
    """Read a numeric frontmatter field; missing or null means 0."""
    value = meta.get(key)
    if value is None:
        return convert(0)
    try:
        return convert(value)
    except (TypeError, ValueError) as e:
        raise ImportFormatError(f"Invalid {key}: {value!r}") from e


def to_card(parsed: ParsedCard, deck_id: int, now: Optional[int] = None) -> Card:
    if now is None:
        now = now_ms()
    meta = parsed.metadata
    created = to_epoch_ms(meta.get("created")) or now
    tags = meta.get("tags") or []
    if isinstance(tags, str):
        tags = [t.strip() for t in tags.split(",") if t.strip()]
    card = Card(
        id=None,
        deck_id=deck_id,
        front=parsed.front,
        back=parsed.back,
        created=created,
        modified=to_epoch_ms(meta.get("modified")) or created,
        next_review=to_epoch_ms(meta.get("nextReview")) or now,
        interval=_number(meta, "interval"),
        repetitions=_number(meta, "repetitions", int),
        tags=[str(t) for t in tags],
    )
    if meta.get("easeFactor") is not None:
        card.ease_slot = ease_slot_from_storage(_number(meta, "easeFactor"), meta.get("easeKind"))
    return card


def import_file(db_path: str, file_path: str, deck_id: int = 1, now: Optional[int] = None) -> dict:
    """Import every card in a markdown file into a deck.

    All cards are converted before anything is written, so a bad card aborts
    the whole import.
    """
    content = Path(file_path).read_text(encoding="utf-8")
    sections = _split_sections(content)
    parsed = parse_markdown(content)
    insert_cards(db_path, [to_card(p, deck_id, now) for p in parsed])
    result = {
        "filename": Path(file_path).name,
        "imported": len(parsed),
        "skipped": len(sections) - len(parsed),
    }
    logger.info("Imported %d cards from %s into deck %d", len(parsed), result["filename"], deck_id)
    return result


def export_cards(cards: list[Card]) -> str:
    """Render cards in the format parse_markdown reads."""
    blocks = []
    for card in cards:
        meta = {
            "tags": list(card.tags),
            "created": from_epoch_ms(card.created),
            "modified": from_epoch_ms(card.modified),
            "nextReview": from_epoch_ms(card.next_review),
            "interval": card.interval,
            "repetitions": card.repetitions,
        }
        if card.ease_slot is not None:
            meta["easeFactor"] = card.ease_slot.value
            if isinstance(card.ease_slot, ModernDifficulty):
                meta["easeKind"] = card.ease_slot.kind
        frontmatter = yaml.safe_dump(meta, sort_keys=False, default_flow_style=None).strip()
        body = card.front if not card.back else f"{card.front}\n\n===\n\n{card.back}"
        blocks.append(f"---\n{frontmatter}\n---\n\n{body}\n")
    return f"\n{CARD_SEPARATOR}\n\n".join(blocks)


def export_file(db_path: str, file_path: str, deck_id: Optional[int] = None) -> int:
    """Write a deck (or every card) to a markdown file. Returns the card count."""
    cards = get_all_cards(db_path) if deck_id is None else get_cards_by_deck(db_path, deck_id)
    Path(file_path).write_text(export_cards(cards), encoding="utf-8")
    logger.info("Exported %d cards to %s", len(cards), file_path)
    return len(cards)
