#!/usr/bin/env python3
"""Shared test helpers: a scripted stand-in for the Ollama client and JSONL helpers"""

import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from tagmap.errors import ClassificationServiceError


class FakeClient:
    """
    Answers generate()/chat() from a responder function

    The responder receives the JSON payload the stage put in the prompt
    (the ### INPUT block, or the user chat message) and returns the raw model
    text. Returning a ClassificationServiceError instance raises it instead.
    """

    model = 'fake-model'

    def __init__(self, responder):
        self.responder = responder
        self.payloads = []

    def _answer(self, payload):
        self.payloads.append(payload)
        answer = self.responder(payload)
        if isinstance(answer, ClassificationServiceError):
            raise answer
        return answer

    def generate(self, prompt):
        block = prompt.split('### INPUT\n', 1)[1].split('\n\n### OUTPUT', 1)[0]
        return self._answer(json.loads(block))

    def chat(self, messages):
        return self._answer(json.loads(messages[-1]['content']))


def write_jsonl(path: Path, records) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        for record in records:
            f.write(json.dumps(record) + '\n')
    return path


def read_jsonl(path: Path):
    with open(path, 'r', encoding='utf-8') as f:
        return [json.loads(line) for line in f if line.strip()]
