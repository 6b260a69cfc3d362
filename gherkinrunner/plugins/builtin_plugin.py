"""Built-in HTTP, assertion and variable steps"""
from typing import List
from gherkinrunner.executor.api_executor import APIExecutor
from gherkinrunner.parser.step_registry import StepDefinition
from gherkinrunner.plugins.base import Plugin
from gherkinrunner.steps.assertion_steps import get_assertion_step_definitions
from gherkinrunner.steps.http_steps import get_http_step_definitions
from gherkinrunner.steps.variable_steps import get_variable_step_definitions

SOURCE = "built-in"


class BuiltInPlugin(Plugin):
    id = "built-in-http"
    name = "Built-in HTTP & Assertions"

    def __init__(self, http_timeout: float = 30):
        self.executor = APIExecutor(timeout=http_timeout)

    def get_step_definitions(self) -> List[StepDefinition]:
        definitions = (get_http_step_definitions(self.executor)
                       + get_assertion_step_definitions()
                       + get_variable_step_definitions())
        for definition in definitions:
            definition.source = definition.source or SOURCE
        return definitions
