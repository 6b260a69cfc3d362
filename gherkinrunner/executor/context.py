"""Per-scenario execution state threaded through every step handler"""
import asyncio
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from gherkinrunner.errors import ExecutionCancelled


class CancelToken:
    """Cooperative cancellation signal shared by the engine and long-running handlers"""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self):
        if self._event.is_set():
            raise ExecutionCancelled()

    async def wait(self, poll_interval: float = 0.05):
        """Suspend until the token is cancelled"""
        while not self._event.is_set():
            await asyncio.sleep(poll_interval)


@dataclass
class HttpResponse:
    status: int
    status_text: str
    headers: Dict[str, str]
    body: Any
    response_time: float  # milliseconds

    def to_dict(self) -> Dict:
        return {
            'status': self.status,
            'status_text': self.status_text,
            'headers': self.headers,
            'body': self.body,
            'response_time': self.response_time,
        }


@dataclass
class ExecutionContext:
    signal: CancelToken
    variables: Dict[str, Any] = field(default_factory=dict)
    url: str = ""
    method: str = "GET"
    headers: Dict[str, str] = field(default_factory=dict)
    params: Dict[str, str] = field(default_factory=dict)
    request_body: Any = None
    response: Optional[HttpResponse] = None
    prints: List[str] = field(default_factory=list)
    browser: Any = None  # CdpClient while a tab is attached
    screenshot: Optional[str] = None  # path of a screenshot taken by the current step


def create_execution_context(signal: CancelToken) -> ExecutionContext:
    """Fresh context for one scenario run"""
    return ExecutionContext(signal=signal)
