"""Plugin interface"""
from abc import ABC, abstractmethod
from typing import List
from gherkinrunner.executor.context import ExecutionContext
from gherkinrunner.parser.step_registry import StepDefinition


class Plugin(ABC):
    """A source of step definitions with optional lifecycle hooks"""

    id: str = ""
    name: str = ""

    async def initialize(self):
        pass

    @abstractmethod
    def get_step_definitions(self) -> List[StepDefinition]:
        ...

    async def before_scenario(self, ctx: ExecutionContext):
        pass

    async def after_scenario(self, ctx: ExecutionContext):
        pass

    async def destroy(self):
        pass
