"""Result hierarchy: FeatureResult contains ScenarioResults contain StepResults"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional
from gherkinrunner.executor.context import HttpResponse
from gherkinrunner.parser.feature_parser import Step


class StepStatus(Enum):
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"
    RUNNING = "running"
    PENDING = "pending"


@dataclass
class StepResult:
    step: Step
    status: StepStatus
    duration: float = 0.0  # milliseconds
    error: Optional[str] = None
    response: Optional[HttpResponse] = None
    print_output: Optional[str] = None
    screenshot: Optional[str] = None

    def to_dict(self) -> Dict:
        return {
            'keyword': self.step.keyword,
            'text': self.step.text,
            'line': self.step.line_number,
            'status': self.status.value,
            'duration': self.duration,
            'error': self.error,
            'response': self.response.to_dict() if self.response else None,
            'print_output': self.print_output,
            'screenshot': self.screenshot,
        }


@dataclass
class ScenarioResult:
    name: str
    step_results: List[StepResult]
    status: StepStatus
    duration: float = 0.0
    error: Optional[str] = None

    def to_dict(self) -> Dict:
        return {
            'name': self.name,
            'status': self.status.value,
            'duration': self.duration,
            'error': self.error,
            'steps': [r.to_dict() for r in self.step_results],
        }


@dataclass
class FeatureResult:
    name: str
    scenario_results: List[ScenarioResult] = field(default_factory=list)
    status: StepStatus = StepStatus.PASSED
    duration: float = 0.0

    @property
    def stats(self) -> Dict[str, int]:
        """Step counts by status, derived from the step results"""
        counts = {'total': 0, 'passed': 0, 'failed': 0, 'skipped': 0}
        for scenario in self.scenario_results:
            for result in scenario.step_results:
                counts['total'] += 1
                if result.status.value in counts:
                    counts[result.status.value] += 1
        return counts

    def to_dict(self) -> Dict:
        return {
            'name': self.name,
            'status': self.status.value,
            'duration': self.duration,
            'stats': self.stats,
            'scenarios': [s.to_dict() for s in self.scenario_results],
        }
