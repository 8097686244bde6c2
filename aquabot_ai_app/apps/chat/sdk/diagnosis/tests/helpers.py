# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter

from aquabot_ai_app.infra.llm.llm_data_model import TokenUsage


class ScriptedVision:
    """Each complete() call pops the next outcome: an exception to raise or a text to return."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.requests = []

    async def complete(self, request):
        self.requests.append(request)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome, TokenUsage(input_tokens=100, output_tokens=50)


class RecordedSleep:
    def __init__(self):
        self.waits = []

    async def __call__(self, seconds):
        self.waits.append(seconds)
