from __future__ import annotations

import json
import os
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class EventLogger:
    """
    Append-only JSONL record of coordinator transitions.
    """

    path: str
    _lock: threading.Lock = field(default_factory=threading.Lock, compare=False, repr=False)

    def log(self, event_type: str, details: Optional[Dict[str, Any]] = None) -> None:
        parent = os.path.dirname(self.path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        payload = {
            "ts": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            "event": event_type,
            "details": details or {},
        }
        line = json.dumps(payload, ensure_ascii=False, default=repr)
        with self._lock:
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(line + "\n")

    def read_all(self) -> list[Dict[str, Any]]:
        if not os.path.exists(self.path):
            return []
        with self._lock:
            with open(self.path, "r", encoding="utf-8") as f:
                return [json.loads(line) for line in f if line.strip()]
