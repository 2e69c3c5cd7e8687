# prelab/quiz_assembler.py
"""
Assembles a fixed-size multiple-choice quiz out of an unreliable LLM.

The primary phase asks for questions in batches of QUIZ_BATCH_SIZE; if the
model under-delivers, a bounded number of top-up passes ask for the rest.
Questions are deduplicated on their lower-cased, trimmed text. Both phases
have hard ceilings, so the run always terminates no matter what the model
returns.
"""
import asyncio
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from prelab.errors import LLMRequestError, QuizGenerationError
from prelab.json_recovery import safe_json_parse
from prelab.llm_client import ask_llm
from prelab.schemas import Question, QuizResult

logger = logging.getLogger(__name__)

MAX_QUIZ_COUNT = 50
DEFAULT_QUIZ_COUNT = 10
QUIZ_BATCH_SIZE = 10
QUIZ_MATERIAL_LIMIT = 7000
TOP_UP_BATCH_SIZE = 5
MAX_TOP_UP_PASSES = 6
MAX_OPTIONS = 4
BATCH_DELAY_SECONDS = 0.35
TOP_UP_DELAY_SECONDS = 0.25

SYSTEM_PROMPT = "You create multiple-choice quizzes for college students. Be accurate and clear."

_JSON_SHAPE = (
    "{\n  \"questions\": [\n    {\n      \"question\": \"...\",\n      \"options\": [\"A\", \"B\", \"C\", \"D\"],\n"
    "      \"correct_index\": 0,\n      \"explanation\": \"...\",\n      \"topic\": \"...\"\n    }\n  ]\n}"
)

GenerateFn = Callable[..., Awaitable[str]]
SleepFn = Callable[[float], Awaitable[Any]]


@dataclass
class _Accumulator:
    """Questions collected so far in one run and the dedup keys already used."""
    target: int
    questions: List[Question] = field(default_factory=list)
    seen: Set[str] = field(default_factory=set)

    @property
    def remaining(self) -> int:
        return self.target - len(self.questions)

    @property
    def full(self) -> bool:
        return len(self.questions) >= self.target

    def offer(self, item: Any) -> bool:
        """Normalize and keep item if it is usable and new. Returns True when kept."""
        question = normalize_question(item)
        if question is None:
            return False
        key = dedup_key(question.question)
        if key in self.seen:
            return False
        self.seen.add(key)
        self.questions.append(question)
        return True

    def absorb(self, items: List[Any]) -> int:
        accepted = 0
        for item in items:
            if self.full:
                break
            if self.offer(item):
                accepted += 1
        return accepted


def clamp_count(count: Any) -> int:
    """Clamp a requested question count to [1, MAX_QUIZ_COUNT]; unusable values mean the default."""
    if isinstance(count, bool):
        count = None
    try:
        value = int(count)
    except (TypeError, ValueError, OverflowError):
        value = DEFAULT_QUIZ_COUNT
    return min(MAX_QUIZ_COUNT, max(1, value))


def dedup_key(text: str) -> str:
    return text.strip().lower()


def normalize_question(item: Any) -> Optional[Question]:
    """
    Validate one raw item from the model and coerce it into a Question.

    Rejects items without question text, with fewer than two options, or whose
    integer correct_index does not point at one of the (at most four) kept
    options. A missing or non-integer correct_index becomes 0.
    """
    if not isinstance(item, dict):
        return None
    text = item.get("question")
    options = item.get("options")
    if not text or not isinstance(options, list) or len(options) < 2:
        return None
    text = str(text).strip()
    if not text:
        return None

    options = [str(o) for o in options[:MAX_OPTIONS]]
    correct_index = item.get("correct_index")
    if isinstance(correct_index, float) and correct_index.is_integer():
        correct_index = int(correct_index)
    if isinstance(correct_index, bool) or not isinstance(correct_index, int):
        correct_index = 0
    if not 0 <= correct_index < len(options):
        return None

    explanation = item.get("explanation")
    topic = item.get("topic")
    return Question(
        question=text,
        options=options,
        correct_index=correct_index,
        explanation=str(explanation) if explanation else "",
        topic=str(topic) if topic else "General",
    )


def parse_questions(raw: str) -> List[Any]:
    """Raw items under "questions" in a model response; [] when the response is unusable."""
    parsed = safe_json_parse(raw or "", {})
    questions = parsed.get("questions") if isinstance(parsed, dict) else None
    return questions if isinstance(questions, list) else []


def build_batch_prompt(subject_name: str, module_title: str, snippet: str,
                       count: int, batch_number: int, total_batches: int) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {
            "role": "user",
            "content": (
                f"Generate exactly {count} multiple-choice questions (batch {batch_number}/{total_batches}) for:\n"
                f"Subject: {subject_name}\nModule: {module_title}\n"
                f"Material excerpt:\n{snippet}\n\n"
                "Keep questions concise. Avoid repeating previous questions. Return ONLY JSON with this shape:\n"
                + _JSON_SHAPE
            ),
        },
    ]


def build_top_up_prompt(subject_name: str, module_title: str, snippet: str,
                        count: int, pass_number: int) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {
            "role": "user",
            "content": (
                f"Top-up pass {pass_number}: generate exactly {count} NEW multiple-choice questions for:\n"
                f"Subject: {subject_name}\nModule: {module_title}\n"
                f"Material excerpt:\n{snippet}\n\n"
                "Questions must be different from typical/common prompts. Return ONLY JSON with this shape:\n"
                + _JSON_SHAPE
            ),
        },
    ]


async def _request_items(generate: GenerateFn, messages: List[Dict[str, str]], *,
                         temperature: float, max_retries: int, max_tokens: int, label: str) -> List[Any]:
    # CreditsExhaustedError propagates and aborts the whole run.
    try:
        raw = await generate(
            messages,
            temperature,
            max_retries=max_retries,
            max_tokens=max_tokens,
            response_format={"type": "json_object"},
        )
    except LLMRequestError as exc:
        logger.warning("%s failed after retries, counting it as empty: %s", label, exc)
        return []
    items = parse_questions(raw)
    if not items:
        logger.warning("%s returned no parseable questions", label)
    return items


async def assemble_quiz(
    subject_name: str,
    module_title: str,
    material_text: str,
    requested_count: Any = DEFAULT_QUIZ_COUNT,
    *,
    generate: Optional[GenerateFn] = None,
    sleep: SleepFn = asyncio.sleep,
) -> QuizResult:
    """
    Build a quiz of up to requested_count unique questions.

    Returns a partial result (partial=True) whenever at least one question was
    produced. Raises QuizGenerationError when nothing usable came back, and
    lets CreditsExhaustedError through untouched.
    """
    generate = generate or ask_llm
    target = clamp_count(requested_count)
    snippet = str(material_text or "")[:QUIZ_MATERIAL_LIMIT]
    acc = _Accumulator(target=target)

    total_batches = math.ceil(target / QUIZ_BATCH_SIZE)
    for batch_index in range(total_batches):
        if acc.full:
            break
        batch_count = min(QUIZ_BATCH_SIZE, acc.remaining)
        label = f"Batch {batch_index + 1}/{total_batches}"
        items = await _request_items(
            generate,
            build_batch_prompt(subject_name, module_title, snippet, batch_count, batch_index + 1, total_batches),
            temperature=0.4, max_retries=2, max_tokens=2200, label=label,
        )
        accepted = acc.absorb(items)
        logger.info("%s: asked for %d, accepted %d, have %d/%d",
                    label, batch_count, accepted, len(acc.questions), target)
        if not acc.full:
            await sleep(BATCH_DELAY_SECONDS)

    pass_number = 0
    while not acc.full and pass_number < MAX_TOP_UP_PASSES:
        pass_number += 1
        batch_count = min(TOP_UP_BATCH_SIZE, acc.remaining)
        label = f"Top-up pass {pass_number}/{MAX_TOP_UP_PASSES}"
        items = await _request_items(
            generate,
            build_top_up_prompt(subject_name, module_title, snippet, batch_count, pass_number),
            temperature=0.45, max_retries=1, max_tokens=1400, label=label,
        )
        accepted = acc.absorb(items)
        logger.info("%s: asked for %d, accepted %d, have %d/%d",
                    label, batch_count, accepted, len(acc.questions), target)
        if not acc.full:
            await sleep(TOP_UP_DELAY_SECONDS)

    if not acc.questions:
        raise QuizGenerationError()

    generated = len(acc.questions)
    logger.info("Assembled quiz for %s / %s: %d of %d questions", subject_name, module_title, generated, target)
    return QuizResult(
        questions=acc.questions,
        requested_count=target,
        generated_count=generated,
        partial=generated < target,
    )
