#!/usr/bin/env python3
"""
Per-stage error policy for the LLM-backed stages

Two knobs, each 'abort' or 'skip':
  on_invalid_response - the service answered but the payload failed decoding
  on_service_error    - the call itself failed (network, HTTP status)

'abort' stops the stage at the failing key; 'skip' logs it and moves on,
leaving the key unrecorded so the next run retries it.
"""

from dataclasses import dataclass
from typing import Any, Dict

ABORT = 'abort'
SKIP = 'skip'
_MODES = (ABORT, SKIP)


def _mode(value: Any, default: str) -> str:
    value = str(value or default).strip().lower()
    if value not in _MODES:
        raise ValueError(f"Unknown error policy mode '{value}' (expected one of {_MODES})")
    return value


@dataclass(frozen=True)
class ErrorPolicy:
    on_invalid_response: str = ABORT
    on_service_error: str = ABORT

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ErrorPolicy':
        data = data or {}
        return cls(
            on_invalid_response=_mode(data.get('on_invalid_response'), ABORT),
            on_service_error=_mode(data.get('on_service_error'), ABORT),
        )

    @property
    def abort_on_invalid_response(self) -> bool:
        return self.on_invalid_response == ABORT

    @property
    def abort_on_service_error(self) -> bool:
        return self.on_service_error == ABORT


ABORT_ALL = ErrorPolicy(ABORT, ABORT)
SKIP_ALL = ErrorPolicy(SKIP, SKIP)
