# prelab/tutor.py
import json
import logging
from typing import Any, Dict, List, Optional, Sequence

from prelab.json_recovery import parse_explanation, safe_json_parse
from prelab.llm_client import ask_llm
from prelab.schemas import ChatMessage, Explanation, Feedback, QuestionReview

logger = logging.getLogger(__name__)

FALLBACK_ENCOURAGEMENT = "Keep practicing. You are improving with each attempt."
FALLBACK_NEXT_STEPS = ["Review incorrect answers", "Revisit module summary", "Take another quiz"]


def _as_strings(value: Any) -> List[str]:
    return [str(v) for v in value] if isinstance(value, list) else []


async def generate_explanation(subject_name: str, module_title: str, material_text: str,
                               topic: Optional[str] = None, *, generate=None) -> Explanation:
    """Beginner-friendly summary, key points and study tips for a module."""
    generate = generate or ask_llm
    messages = [
        {"role": "system", "content": "You are an academic tutor. Give concise, beginner-friendly explanations."},
        {
            "role": "user",
            "content": (
                f"Subject: {subject_name}\nModule: {module_title}\nFocus Topic: {topic or 'General overview'}\n"
                f"Material:\n{material_text}\n\n"
                "Return JSON with keys: summary (string), key_points (array of 4-6 strings), "
                "study_tips (array of 3 strings)."
            ),
        },
    ]
    raw = await generate(messages, 0.3, max_tokens=1800, response_format={"type": "json_object"})
    return Explanation(**parse_explanation(raw))


async def generate_feedback(module_title: str, score: float, weak_areas: List[str],
                            review: Sequence[QuestionReview], *, generate=None) -> Feedback:
    generate = generate or ask_llm
    review_json = json.dumps([r.model_dump() for r in review])
    messages = [
        {"role": "system", "content": "You are a supportive study coach. Give practical, specific improvement advice."},
        {
            "role": "user",
            "content": (
                f"Module: {module_title}\nScore: {score}\nWeak areas: {', '.join(weak_areas) or 'None'}\n"
                f"Question review: {review_json}\n\n"
                "Return JSON with keys: encouragement (string), weak_area_suggestions (array of strings), "
                "next_steps (array of 3-5 strings)."
            ),
        },
    ]
    raw = await generate(messages, 0.4, max_tokens=1400, response_format={"type": "json_object"})
    parsed = safe_json_parse(raw)
    if isinstance(parsed, dict) and parsed.get("encouragement"):
        return Feedback(
            encouragement=str(parsed["encouragement"]),
            weak_area_suggestions=_as_strings(parsed.get("weak_area_suggestions")),
            next_steps=_as_strings(parsed.get("next_steps")),
        )

    logger.warning("Feedback response had no encouragement, using the static fallback")
    return Feedback(
        encouragement=FALLBACK_ENCOURAGEMENT,
        weak_area_suggestions=list(weak_areas),
        next_steps=list(FALLBACK_NEXT_STEPS),
    )


async def chat_tutor(subject_name: str, module_title: str, material_text: str,
                     history: Sequence[ChatMessage], message: str, *, generate=None) -> str:
    generate = generate or ask_llm
    messages: List[Dict[str, Any]] = [
        {
            "role": "system",
            "content": (
                "You are the PreLab study assistant. Explain clearly for college IT students. "
                f"Subject: {subject_name}. Module: {module_title}. Use this material as context: {material_text}"
            ),
        }
    ]
    for item in history or []:
        if item.role in ("user", "assistant") and item.content:
            messages.append({"role": item.role, "content": item.content})
    messages.append({"role": "user", "content": message})
    return await generate(messages, 0.5, max_tokens=1200)
