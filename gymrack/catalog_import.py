"""
Seed the exercise catalog from a normalized CSV export.

The CSV has one row per (exercise id, attribute): shared columns describe the
exercise, while `attribute_name` / `attribute_value` carry one TYPE,
PRIMARY_MUSCLE, SECONDARY_MUSCLE, EQUIPMENT or MECHANICS_TYPE value each.
"""
import csv
import html
import logging
import re
from pathlib import Path
from typing import Any, Dict, Iterable, List, Union

from gymrack.core.errors import StoreError

logger = logging.getLogger(__name__)

LIST_ATTRIBUTES = {
    "TYPE": "types",
    "PRIMARY_MUSCLE": "primary_muscles",
    "SECONDARY_MUSCLE": "secondary_muscles",
    "EQUIPMENT": "equipment",
}

TAG_RE = re.compile(r"<[^>]*>")


def strip_html(text: str) -> str:
    """Drop tags and decode entities (&nbsp;, &amp;, ...)."""
    if not text:
        return ""
    return html.unescape(TAG_RE.sub("", text)).replace("\xa0", " ").strip()


def difficulty_for(mechanics_type: str, types: List[str]) -> str:
    if mechanics_type == "COMPOUND":
        return "intermediate"
    if mechanics_type == "ISOLATION":
        return "beginner"
    if "PLYOMETRICS" in types or "CROSSFIT" in types:
        return "expert"
    return "intermediate"


def parse_exercise_csv(csv_path: Union[str, Path]) -> List[Dict[str, Any]]:
    """
    Collapse attribute rows into one catalog record per exercise id.

    Raises:
        FileNotFoundError: csv_path does not exist
    """
    csv_path = Path(csv_path)
    if not csv_path.exists():
        raise FileNotFoundError(f"CSV file not found: {csv_path}")

    raw: Dict[str, Dict[str, Any]] = {}
    with open(csv_path, newline="", encoding="utf-8") as f:
        for row in csv.DictReader(f):
            exercise = raw.get(row.get("id"))
            if exercise is None:
                exercise = {
                    "name": row.get("name_en") or row.get("name") or "",
                    "description": row.get("description_en") or row.get("description") or "",
                    "video_url": row.get("full_video_url") or "",
                    "thumbnail_url": row.get("full_video_image_url") or "",
                    "types": [],
                    "primary_muscles": [],
                    "secondary_muscles": [],
                    "equipment": [],
                    "mechanics_type": "",
                }
                raw[row.get("id")] = exercise

            attribute = row.get("attribute_name")
            value = row.get("attribute_value")
            if attribute in LIST_ATTRIBUTES:
                values = exercise[LIST_ATTRIBUTES[attribute]]
                if value and value not in values:
                    values.append(value)
            elif attribute == "MECHANICS_TYPE":
                exercise["mechanics_type"] = value or ""

    exercises = []
    for ex in raw.values():
        muscles = ex["primary_muscles"] + ex["secondary_muscles"]
        exercises.append({
            "name": ex["name"].strip(),
            "type": ex["types"][0] if ex["types"] else "",
            "muscle": ", ".join(muscles).lower(),
            "equipment": ", ".join(ex["equipment"]),
            "difficulty": difficulty_for(ex["mechanics_type"], ex["types"]),
            "instructions": strip_html(ex["description"]),
            "video_url": ex["video_url"],
            "thumbnail_url": ex["thumbnail_url"],
        })

    logger.info(f"Parsed {len(exercises)} unique exercises from {csv_path}")
    return exercises


def import_exercises(exercises: Iterable[Dict[str, Any]], store) -> Dict[str, int]:
    """
    Upsert parsed exercises into the catalog, keyed by name.

    `store` needs an upsert_exercise(dict) method (SupabaseStore or
    InMemoryStore). Blank names and failed upserts are skipped.
    """
    imported = 0
    skipped = 0

    for exercise in exercises:
        name = (exercise.get("name") or "").strip()
        if not name:
            skipped += 1
            continue

        # empty strings become NULLs in the catalog
        record = {k: (v or None) for k, v in exercise.items()}
        record["name"] = name
        try:
            store.upsert_exercise(record)
        except StoreError as e:
            logger.error(f"Error importing exercise '{name}': {e}")
            skipped += 1
            continue
        imported += 1

    logger.info(f"Imported {imported} exercises, skipped {skipped}")
    return {"imported": imported, "skipped": skipped}
