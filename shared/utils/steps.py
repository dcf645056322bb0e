"""
shared/utils/steps.py
Structured step logging for function endpoints.

    log = StepLogger("CREATE-CONNECT-ACCOUNT")
    log.step("User authenticated", userId=user.id)
    # -> [CREATE-CONNECT-ACCOUNT] User authenticated - {"userId": "..."}
"""

import json
import logging
from typing import Any

logger = logging.getLogger("functions")


class StepLogger:
    def __init__(self, function_name: str, log: logging.Logger = logger):
        self.function_name = function_name
        self.log = log

    def _format(self, step: str, details: dict[str, Any]) -> str:
        suffix = f" - {json.dumps(details, default=str)}" if details else ""
        return f"[{self.function_name}] {step}{suffix}"

    def step(self, step: str, **details: Any) -> None:
        self.log.info(self._format(step, details))

    def warning(self, step: str, **details: Any) -> None:
        self.log.warning(self._format(step, details))

    def error(self, step: str, **details: Any) -> None:
        self.log.error(self._format(step, details))
