"""Scripted recognition engines for coordinator and pipeline tests."""

import asyncio

from typing import Any

from screentrail.models.recognition import RecognitionResult
from screentrail.recognition.base import RecognitionEngine

Step = list[RecognitionResult] | Exception


class ScriptedEngine(RecognitionEngine):
    """
    Engine that replays a script of outputs, one per call.

    Each step is a result list or an exception to raise. The last step
    repeats once the script is exhausted. ``delay`` seconds are awaited
    before each call, so timeouts and cancellation can be exercised.
    """

    def __init__(self, name: str, *steps: Step, delay: float = 0.0, language: str = "en"):
        super().__init__(language)
        self.name = name
        self.steps = list(steps) or [[]]
        self.delay = delay
        self.calls = 0
        self.cancelled = 0

    def _recognize(self, image: Any) -> list[RecognitionResult]:
        step = self.steps[min(self.calls, len(self.steps) - 1)]
        self.calls += 1
        if isinstance(step, Exception):
            raise step
        return list(step)

    async def recognize_async(self, image: Any) -> list[RecognitionResult]:
        if self.delay:
            try:
                await asyncio.sleep(self.delay)
            except asyncio.CancelledError:
                self.cancelled += 1
                raise
        return self.recognize(image)
