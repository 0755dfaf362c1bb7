"""Deck import and export (JSON and YAML)."""
import json
import logging
from datetime import datetime
from pathlib import Path

import yaml
from bs4 import BeautifulSoup

from medcards.errors import ImportFormatError
from medcards.models import Flashcard

logger = logging.getLogger(__name__)

DECK_SUFFIXES = (".json", ".yaml", ".yml")


def strip_html(text):
    """Reduce markup (as produced by AI generators or Anki exports) to plain text."""
    if not text or "<" not in text:
        return text
    return BeautifulSoup(text, "html.parser").get_text("\n").strip()


def read_deck(file_path: str) -> list:
    """Return the raw card records from a deck file.

    Accepts a bare list, or an object with a ``cards`` or ``flashcards`` list.
    """
    path = Path(file_path)
    suffix = path.suffix.lower()
    if suffix not in DECK_SUFFIXES:
        raise ImportFormatError(f"Unsupported deck format: {suffix or path.name}")
    try:
        text = path.read_text(encoding="utf-8")
        if suffix == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise ImportFormatError(f"Could not read {path.name}: {e}") from e

    records = data if isinstance(data, list) else (data or {}).get("cards") or (data or {}).get("flashcards")
    if not isinstance(records, list) or not records:
        raise ImportFormatError("No valid cards found in deck")
    return records


def _normalize_record(record: dict) -> dict:
    # Flat {front, back, tags, ...} records are accepted as shorthand.
    if "content" not in record and "front" in record:
        record = {
            "id": record.get("id"),
            "content": {k: record[k] for k in ("front", "back", "explanation", "references") if k in record},
            "metadata": {k: v for k, v in record.items()
                         if k not in ("id", "front", "back", "explanation", "references")},
        }
    record = dict(record)
    content = dict(record.get("content") or {})
    for key in ("front", "back", "explanation"):
        if content.get(key):
            content[key] = strip_html(str(content[key]))
    record["content"] = content
    metadata = dict(record.get("metadata") or {})
    metadata.setdefault("topic", "Imported")
    record["metadata"] = metadata
    return record


def parse_cards(records: list, now: datetime) -> list[Flashcard]:
    """Build cards from raw records, skipping ones without both a front and a back."""
    cards = []
    for record in records:
        if not isinstance(record, dict):
            continue
        record = _normalize_record(record)
        if not record["content"].get("front") or not record["content"].get("back"):
            continue
        cards.append(Flashcard.from_dict(record, now))
    if not cards:
        raise ImportFormatError("No cards with valid content (front/back) found")
    return cards


def import_file(manager, file_path: str) -> dict:
    """Import a deck file through the session manager, skipping duplicates."""
    records = read_deck(file_path)
    cards = parse_cards(records, manager.clock())
    added = manager.add_cards(cards)
    logger.info("Imported %d of %d cards from %s", len(added), len(records), file_path)
    return {
        "filename": Path(file_path).name,
        "found": len(records),
        "valid": len(cards),
        "added": len(added),
    }


def export_cards(cards: list[Flashcard], file_path: str, exported_at: datetime) -> int:
    path = Path(file_path)
    payload = {
        "flashcards": [card.to_dict() for card in cards],
        "exportedAt": exported_at.isoformat(),
    }
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.suffix.lower() in (".yaml", ".yml"):
        path.write_text(yaml.safe_dump(payload, sort_keys=False, allow_unicode=True), encoding="utf-8")
    else:
        path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    return len(cards)
