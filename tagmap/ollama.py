#!/usr/bin/env python3
"""
Ollama API client for the classification stages

One outstanding request at a time. Callers own retry/skip decisions through
their ErrorPolicy; this client only turns transport and HTTP failures into
ClassificationServiceError.
"""

import logging
import time
from typing import Any, Dict, List, Optional

import requests

from tagmap.errors import ClassificationServiceError

logger = logging.getLogger(__name__)


class OllamaClient:
    """Interface to a local Ollama server"""

    def __init__(self, host: str = 'http://localhost:11434', model: str = 'gemma3:4b',
                 timeout: float = 120, temperature: Optional[float] = 0,
                 request_interval: float = 0.0):
        self.host = host.rstrip('/')
        self.model = model
        self.timeout = timeout
        self.temperature = temperature
        self.request_interval = request_interval
        self.calls = 0
        self.failures = 0
        self._last_request_at: Optional[float] = None

    @classmethod
    def from_config(cls, ollama_config: Dict[str, Any]) -> 'OllamaClient':
        return cls(
            host=ollama_config.get('host', 'http://localhost:11434'),
            model=ollama_config.get('model', 'gemma3:4b'),
            timeout=float(ollama_config.get('timeout', 120)),
            temperature=ollama_config.get('temperature', 0),
            request_interval=float(ollama_config.get('request_interval', 0.0) or 0.0),
        )

    def _options(self) -> Dict[str, Any]:
        if self.temperature is None:
            return {}
        return {'temperature': self.temperature}

    def _throttle(self) -> None:
        if self.request_interval <= 0 or self._last_request_at is None:
            return
        wait = self.request_interval - (time.monotonic() - self._last_request_at)
        if wait > 0:
            time.sleep(wait)

    def _post(self, endpoint: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """POST to the API and return the decoded JSON body"""
        self._throttle()
        self.calls += 1
        url = f"{self.host}{endpoint}"
        try:
            response = requests.post(url, json=payload, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            self.failures += 1
            raise ClassificationServiceError(f"Ollama request to {endpoint} failed: {e}") from e
        except ValueError as e:
            # Body was not JSON at all - the server, not the model, misbehaved
            self.failures += 1
            raise ClassificationServiceError(f"Ollama returned a non-JSON body from {endpoint}: {e}") from e
        finally:
            self._last_request_at = time.monotonic()

    def generate(self, prompt: str) -> str:
        """Single-prompt completion via /api/generate; returns the raw response text"""
        data = self._post('/api/generate', {
            'model': self.model,
            'prompt': prompt,
            'stream': False,
            'options': self._options(),
        })
        text = data.get('response')
        if not isinstance(text, str):
            self.failures += 1
            raise ClassificationServiceError("Ollama /api/generate body has no 'response' text")
        return text

    def chat(self, messages: List[Dict[str, str]]) -> str:
        """Chat completion via /api/chat; returns the assistant message content"""
        data = self._post('/api/chat', {
            'model': self.model,
            'messages': messages,
            'stream': False,
            'options': self._options(),
        })
        content = (data.get('message') or {}).get('content')
        if not isinstance(content, str):
            self.failures += 1
            raise ClassificationServiceError("Ollama /api/chat body has no message content")
        return content

    def is_model_available(self) -> bool:
        """True when the server answers /api/tags and lists the configured model"""
        try:
            response = requests.get(f"{self.host}/api/tags", timeout=10)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"Could not query Ollama models at {self.host}: {e}")
            return False

        models = data.get('models') or []
        return any(
            isinstance(m, dict) and isinstance(m.get('name'), str) and self.model in m['name']
            for m in models
        )

    def get_stats(self) -> Dict[str, int]:
        return {
            'calls': self.calls,
            'failures': self.failures,
        }
