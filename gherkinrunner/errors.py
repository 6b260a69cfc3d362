"""Exception types raised across the runner"""
from dataclasses import dataclass
from typing import List


@dataclass(frozen=True)
class ParseError:
    """A single problem found in feature source"""
    message: str
    line: int
    column: int

    def __str__(self):
        return f"({self.line}:{self.column}) {self.message}"


class RunnerError(Exception):
    """Base class for runner errors"""


class FeatureParseError(RunnerError):
    """Feature source could not be parsed"""

    def __init__(self, errors: List[ParseError]):
        self.errors = errors
        super().__init__('; '.join(str(e) for e in errors))


class UnmatchedStepError(RunnerError):
    """No registered step definition matches the step text"""

    def __init__(self, text: str):
        self.text = text
        super().__init__(f'No matching step definition for: "{text}"')


class StepTimeoutError(RunnerError):
    """A bounded wait ran out before its condition held"""


class ExecutionCancelled(RunnerError):
    """The run was cancelled while a step was in flight"""

    def __init__(self, message: str = "Execution cancelled"):
        super().__init__(message)


class ProtocolError(RunnerError):
    """A remote debugging command failed or no session is attached"""


class PluginError(RunnerError):
    """Plugin could not be loaded or unloaded"""


class ScriptError(RunnerError):
    """A user script failed to compile or raised"""
