"""
Shared pytest fixtures for the whole suite (unit/ and api/).
Nothing here touches the network: the LLM is replaced by scripted fakes.
"""

import json
from typing import Any, Callable, Dict, List

import pytest


def make_question(text: str, correct_index: int = 0, topic: str = "Networking") -> Dict[str, Any]:
    return {
        "question": text,
        "options": ["A", "B", "C", "D"],
        "correct_index": correct_index,
        "explanation": f"Because of {text}",
        "topic": topic,
    }


def questions_payload(items: List[Dict[str, Any]]) -> str:
    return json.dumps({"questions": items})


class ScriptedLLM:
    """
    Stand-in for the generate() call.

    `responder` receives (call_number, messages, kwargs) and returns the raw
    text, or raises. Every call is recorded for later assertions.
    """

    def __init__(self, responder: Callable[..., str]):
        self.responder = responder
        self.calls: List[Dict[str, Any]] = []

    async def __call__(self, messages, temperature=0.4, **kwargs):
        self.calls.append({"messages": messages, "temperature": temperature, **kwargs})
        return self.responder(len(self.calls), messages, kwargs)

    @property
    def prompts(self) -> List[str]:
        return [c["messages"][-1]["content"] for c in self.calls]


@pytest.fixture
def scripted_llm():
    """Factory: scripted_llm(responder) -> ScriptedLLM."""
    return ScriptedLLM


@pytest.fixture
def unique_llm():
    """An LLM that always answers with exactly the number of fresh questions asked for."""
    counter = {"n": 0}

    def responder(call_number, messages, kwargs):
        prompt = messages[-1]["content"]
        asked = int(prompt.split("exactly ")[1].split(" ")[0])
        items = []
        for _ in range(asked):
            counter["n"] += 1
            items.append(make_question(f"Unique question {counter['n']}?"))
        return questions_payload(items)

    return ScriptedLLM(responder)


@pytest.fixture
def no_sleep():
    """Recording replacement for asyncio.sleep."""
    delays: List[float] = []

    async def _sleep(seconds: float):
        delays.append(seconds)

    _sleep.delays = delays
    return _sleep
