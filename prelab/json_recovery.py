# prelab/json_recovery.py
"""
Best-effort recovery of JSON objects from model output.

Each stage is a separate function so it can be tested on its own:
    parse_strict  ->  parse_fenced  ->  extract_explanation_fields  ->  defaults
"""
import json
import re
from typing import Any, Dict, List, Optional

_FENCED_JSON_RE = re.compile(r"```json([\s\S]*?)```", re.IGNORECASE)
_SUMMARY_RE = re.compile(r'"summary"\s*:\s*"([\s\S]*?)"\s*,\s*"key_points"', re.IGNORECASE)
_KEY_POINTS_RE = re.compile(r'"key_points"\s*:\s*\[([\s\S]*?)\]\s*,\s*"study_tips"', re.IGNORECASE)
_STUDY_TIPS_RE = re.compile(r'"study_tips"\s*:\s*\[([\s\S]*?)\]', re.IGNORECASE)
_ARRAY_ITEM_SPLIT_RE = re.compile(r'",\s*"')

SUMMARY_FALLBACK_CHARS = 700
MAX_LIST_ITEMS = 8


def parse_strict(text: str) -> Optional[Any]:
    try:
        return json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return None


def parse_fenced(text: str) -> Optional[Any]:
    """Parse the first ```json fenced block in text, if any."""
    match = _FENCED_JSON_RE.search(text or "")
    if not match or not match.group(1):
        return None
    return parse_strict(match.group(1))


def safe_json_parse(text: str, fallback: Any = None) -> Any:
    parsed = parse_strict(text)
    if parsed is not None:
        return parsed
    parsed = parse_fenced(text)
    if parsed is not None:
        return parsed
    return fallback


def _split_array_items(block: str) -> List[str]:
    if not block:
        return []
    items = []
    for item in _ARRAY_ITEM_SPLIT_RE.split(block):
        item = item.strip().strip('"').replace('\\"', '"').strip()
        if item:
            items.append(item)
    return items[:MAX_LIST_ITEMS]


def extract_explanation_fields(raw: str) -> Dict[str, Any]:
    """Regex extraction of summary/key_points/study_tips from a broken JSON object."""
    summary_match = _SUMMARY_RE.search(raw)
    if summary_match and summary_match.group(1):
        summary = " ".join(summary_match.group(1).replace('\\"', '"').split())
    else:
        summary = raw[:SUMMARY_FALLBACK_CHARS]

    key_points = _KEY_POINTS_RE.search(raw)
    study_tips = _STUDY_TIPS_RE.search(raw)
    return {
        "summary": summary,
        "key_points": _split_array_items(key_points.group(1) if key_points else ""),
        "study_tips": _split_array_items(study_tips.group(1) if study_tips else ""),
    }


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(v) for v in value if v is not None]


def parse_explanation(raw: str) -> Dict[str, Any]:
    """
    Turn an explanation response into {summary, key_points, study_tips}.

    Falls back through strict parse, fenced block, regex field extraction
    (only for text that looks like a JSON object mentioning "summary") and
    finally the raw text as the summary.
    """
    raw = (raw or "").strip()
    parsed = safe_json_parse(raw)
    if isinstance(parsed, dict) and parsed.get("summary"):
        return {
            "summary": str(parsed["summary"]),
            "key_points": _string_list(parsed.get("key_points")),
            "study_tips": _string_list(parsed.get("study_tips")),
        }

    if raw.startswith("{") and '"summary"' in raw:
        return extract_explanation_fields(raw)

    return {"summary": raw, "key_points": [], "study_tips": []}
