"""
Memory Profile Builder - turns a business record into the brand-identity
document stored on an agent and injected into every prompt.

The builder never raises: structured fields may arrive as JSON text (how they
are stored), as already-parsed Python values, or as garbage. Anything that
does not parse into the expected shape is treated as absent.
"""

import json
import logging
from collections.abc import Mapping
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

NOT_SPECIFIED = "Not specified"
DEFAULT_BRAND_TONE = "professional"

# Conditions the model to phrase action items as "I'll ..." sentences.
# services/task_extraction.py depends on this phrasing; change both together.
TASK_PHRASING_INSTRUCTIONS = """IMPORTANT INSTRUCTIONS:
- When discussing tasks, action items, or things to do, structure your response to include clear action statements
- Use phrases like "I'll [action]", "I will [action]", or "Task: [action]" to make tasks extractable
- When creating content or making plans, break them down into actionable tasks
- Keep task descriptions concise and specific"""


def parse_json_field(value: Any, field_name: str = "field") -> Any:
    """
    Parse a JSON-as-text column.

    Returns the parsed value, the value itself when it is already structured,
    or None when it is empty or malformed.
    """
    if value is None:
        return None
    if isinstance(value, (dict, list)):
        return value
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8", errors="replace")
    if isinstance(value, str):
        if not value.strip():
            return None
        try:
            return json.loads(value)
        except (ValueError, TypeError, RecursionError):
            logger.warning(f"Ignoring malformed JSON in {field_name}: {value[:80]!r}")
            return None
    logger.warning(f"Ignoring unexpected {type(value).__name__} in {field_name}")
    return None


def parse_string_map(value: Any, field_name: str = "field") -> Dict[str, str]:
    """Parse a string-keyed map (social links, brand colors); {} when absent."""
    parsed = parse_json_field(value, field_name)
    if not isinstance(parsed, Mapping):
        return {}
    return {str(k): str(v) for k, v in parsed.items() if v is not None and str(v).strip()}


def parse_string_list(value: Any, field_name: str = "field") -> List[str]:
    """Parse an ordered list of strings (goals); [] when absent."""
    parsed = parse_json_field(value, field_name)
    if not isinstance(parsed, list):
        return []
    return [str(item) for item in parsed if item is not None and str(item).strip()]


def _get(business: Any, name: str) -> Any:
    if isinstance(business, Mapping):
        return business.get(name)
    return getattr(business, name, None)


def _text(value: Any, default: str = NOT_SPECIFIED) -> str:
    if value is None:
        return default
    text = str(value).strip()
    return text or default


def _lines(items: List[str]) -> Optional[str]:
    return "\n".join(items) if items else None


def build_profile(business: Any) -> str:
    """
    Build the brand-identity document for a business.

    ``business`` may be a ``Business`` row or any mapping with the same
    snake_case field names.
    """
    goals = parse_string_list(_get(business, "goals"), "goals")
    social_links = parse_string_map(_get(business, "social_links"), "social_links")
    brand_colors = parse_string_map(_get(business, "brand_colors"), "brand_colors")

    colors_block = _lines([f"- {key}: {value}" for key, value in brand_colors.items()])
    social_block = _lines([f"- {platform}: {link}" for platform, link in social_links.items()])
    goals_block = _lines([f"- {goal}" for goal in goals])

    sections = [
        "BUSINESS IDENTITY:\n"
        f"- Name: {_text(_get(business, 'name'))}\n"
        f"- Industry: {_text(_get(business, 'industry'))}\n"
        f"- Description: {_text(_get(business, 'description'))}",
        f"TARGET AUDIENCE:\n{_text(_get(business, 'target_audience'))}",
        f"BRAND VOICE & TONE:\n{_text(_get(business, 'brand_tone'), DEFAULT_BRAND_TONE)}",
        f"BRAND COLORS:\n{colors_block or NOT_SPECIFIED}",
        f"SOCIAL MEDIA PRESENCE:\n{social_block or NOT_SPECIFIED}",
        f"BUSINESS GOALS:\n{goals_block or NOT_SPECIFIED}",
        TASK_PHRASING_INSTRUCTIONS,
    ]
    return "\n\n".join(sections)
