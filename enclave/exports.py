"""Markdown and JSON downloads of classes and character sheets."""

import json
import re
from dataclasses import dataclass
from typing import List

from enclave.clock import utcnow
from enclave.consts import STAT_LIST
from enclave.errors import ValidationFailed

MARKDOWN = "markdown"
JSON = "json"
EXPORT_FORMATS = [MARKDOWN, JSON]

MIME_TYPES = {MARKDOWN: "text/markdown", JSON: "application/json"}
EXTENSIONS = {MARKDOWN: "md", JSON: "json"}

# Classes list three base items, then up to three electives
BASE_GEAR_COUNT = 3


@dataclass
class ExportedFile:
    content: str
    mimetype: str
    filename: str


def safe_filename(name: str, extension: str) -> str:
    stem = re.sub(r'[<>:"/\\|?*]', "", name or "")
    stem = re.sub(r"\s+", "_", stem.strip()) or "export"
    return f"{stem}.{extension}"


def _capitalize(value) -> str:
    value = str(value or "")
    return value[:1].upper() + value[1:]


def _entry(item) -> dict:
    """Abilities and gear are stored either as plain names or name/description dicts."""
    if isinstance(item, dict):
        return {"name": item.get("name", ""), "description": item.get("description") or None}
    return {"name": str(item), "description": None}


def _entries_markdown(lines: List[str], items, bullet_plain: bool = False) -> None:
    for item in map(_entry, items):
        if item["description"]:
            lines.append(f"**{item['name']}**")
            lines.append("")
            lines.append("> " + item["description"].replace("\n", "\n> "))
            lines.append("")
        elif bullet_plain:
            lines.append(f"- **{item['name']}**")
        else:
            lines.append(f"**{item['name']}**")
            lines.append("")
    if bullet_plain and items:
        lines.append("")


def _section(lines: List[str], title: str, text) -> None:
    text = (text or "").strip()
    if text:
        lines.extend([f"## {title}", "", text, ""])


def _footer(lines: List[str]) -> None:
    today = utcnow()
    lines.append(f"*Exported from Enclave · {today:%B} {today.day}, {today.year}*")


def _check_format(fmt: str) -> str:
    fmt = (fmt or MARKDOWN).lower()
    if fmt not in EXPORT_FORMATS:
        raise ValidationFailed(f"Unsupported format. Supported formats: {', '.join(EXPORT_FORMATS)}")
    return fmt


# ============== CLASSES ==============

def class_to_markdown(cls) -> str:
    lines = [f"# {cls.name}", ""]
    lines.append(
        f"**{_capitalize(cls.rules_edition or 'unknown')}** {cls.rules_version or ''}"
        f" · **Status:** {_capitalize(cls.status or 'unknown')}"
    )
    lines.append("")
    if cls.image_url:
        lines.extend([f"![{cls.name}]({cls.image_url})", ""])
    lines.extend(["---", ""])

    _section(lines, "Description", cls.description)

    gear = cls.gear
    if gear:
        lines.extend(["## Gear", ""])
        base, elective = gear[:BASE_GEAR_COUNT], gear[BASE_GEAR_COUNT:BASE_GEAR_COUNT * 2]
        if base:
            lines.extend(["### Base Gear", ""])
            _entries_markdown(lines, base)
        if elective:
            lines.extend(["### Elective Gear", ""])
            _entries_markdown(lines, elective)

    if cls.abilities:
        lines.extend(["## Abilities", ""])
        _entries_markdown(lines, cls.abilities)

    lines.extend(["---", ""])
    lines.append(
        f"**Public:** {'Yes' if cls.is_public else 'No'}"
        f" · **Player Created:** {'Yes' if cls.is_player_created else 'No'}"
    )
    lines.append("")
    _footer(lines)
    return "\n".join(lines)


def class_to_dict(cls) -> dict:
    return {
        "name": cls.name,
        "description": cls.description or "",
        "rules_edition": cls.rules_edition,
        "rules_version": cls.rules_version,
        "status": cls.status,
        "is_public": bool(cls.is_public),
        "is_player_created": bool(cls.is_player_created),
        "gear": [_compact(_entry(g)) for g in cls.gear],
        "abilities": [_compact(_entry(a)) for a in cls.abilities],
        "image_url": cls.image_url or None,
    }


def export_class(cls, fmt: str = MARKDOWN) -> ExportedFile:
    fmt = _check_format(fmt)
    if fmt == JSON:
        content = json.dumps(class_to_dict(cls), ensure_ascii=False, indent=2)
    else:
        content = class_to_markdown(cls)
    return ExportedFile(content, MIME_TYPES[fmt], safe_filename(cls.name, EXTENSIONS[fmt]))


# ============== CHARACTERS ==============

def stat_pluses(value) -> str:
    """Render a stat as a run of plus signs; zero or less is a dash."""
    if not value or value <= 0:
        return "—"
    return "+" * value


def character_to_markdown(character) -> str:
    lines = [f"# {character.name}", ""]
    lines.extend([f"**{character.class_name or 'Unknown'}** · Level {character.level or 1}", ""])
    if character.image_url:
        lines.extend([f"![{character.name}]({character.image_url})", ""])
    if character.traits:
        tags = " · ".join(f"`{_capitalize(t)}`" for t in character.traits)
        lines.extend([f"**Personality:** {tags}", ""])
    lines.extend(["---", ""])

    lines.extend(["## Stats", ""])
    lines.append("| Stat | Value | Stat | Value | Stat | Value |")
    lines.append("|:-----|:-----:|:-----|:-----:|:-----|:-----:|")
    stats = [(_capitalize(s), stat_pluses(getattr(character, s, 0))) for s in STAT_LIST]
    for i in range(0, len(stats), 3):
        row = stats[i:i + 3]
        cells = "".join(f"| {name} | {value} " for name, value in row)
        cells += "| | " * (3 - len(row))
        lines.append(cells + "|")
    lines.append("")

    if character.abilities:
        lines.extend(["## Class Abilities", ""])
        _entries_markdown(lines, character.abilities, bullet_plain=True)
    _section(lines, "Ability Perks", character.perks)
    if character.gear:
        lines.extend(["## Class Gear", ""])
        _entries_markdown(lines, character.gear, bullet_plain=True)
    _section(lines, "Additional Gear", character.additional_gear)
    lines.extend(["---", ""])

    _section(lines, "Appearance", character.appearance)
    _section(lines, "Background", character.background)
    _section(lines, "Flavor", character.flavor)
    _section(lines, "Ideas", character.ideas)

    lines.extend(["---", ""])
    lines.append(
        f"**Missions Completed:** {character.completed_missions or 0}"
        f" · **Commissary Reward:** {character.commissary_reward or 0}"
    )
    lines.append("")
    _footer(lines)
    return "\n".join(lines)


def character_to_dict(character) -> dict:
    return {
        "name": character.name,
        "class": character.class_name,
        "level": character.level,
        "completed_missions": character.completed_missions,
        "commissary_reward": character.commissary_reward,
        "traits": character.traits,
        "stats": {stat: getattr(character, stat, 0) or 0 for stat in STAT_LIST},
        "abilities": [_compact(_entry(a)) for a in character.abilities],
        "perks": character.perks or "",
        "gear": [_compact(_entry(g)) for g in character.gear],
        "additional_gear": character.additional_gear or "",
        "appearance": character.appearance or "",
        "background": character.background or "",
        "flavor": character.flavor or "",
        "ideas": character.ideas or "",
        "image_url": character.image_url or None,
    }


def export_character(character, fmt: str = MARKDOWN) -> ExportedFile:
    fmt = _check_format(fmt)
    if fmt == JSON:
        content = json.dumps(character_to_dict(character), ensure_ascii=False, indent=2)
    else:
        content = character_to_markdown(character)
    return ExportedFile(content, MIME_TYPES[fmt], safe_filename(character.name, EXTENSIONS[fmt]))


def _compact(entry: dict) -> dict:
    return {k: v for k, v in entry.items() if v is not None}
