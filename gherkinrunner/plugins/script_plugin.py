"""Python scripting plugin"""
import asyncio
from typing import List, Optional
from gherkinrunner.errors import ExecutionCancelled
from gherkinrunner.executor.context import ExecutionContext, create_execution_context
from gherkinrunner.parser.step_registry import StepDefinition, StepRegistry
from gherkinrunner.plugins.base import Plugin
from gherkinrunner.scripting.script_bridge import CUSTOM_SOURCE, ScriptBridge
from gherkinrunner.scripting.script_storage import Script, ScriptStorage
from gherkinrunner.steps.script_steps import get_script_step_definitions
from gherkinrunner.utils.logger import setup_logger

logger = setup_logger(__name__)


class ScriptPlugin(Plugin):
    """Runs inline and stored scripts; stored scripts may register custom steps"""

    id = "scripting"
    name = "Python Scripting"

    def __init__(self, registry: StepRegistry, storage: Optional[ScriptStorage] = None):
        self.registry = registry
        self.storage = storage or ScriptStorage()
        self.scripts: List[Script] = []
        self._bridge: Optional[ScriptBridge] = None

    @property
    def bridge(self) -> ScriptBridge:
        if self._bridge is None:
            self._bridge = ScriptBridge()
        return self._bridge

    async def initialize(self):
        self.reload_scripts()

    def get_step_definitions(self) -> List[StepDefinition]:
        return get_script_step_definitions(lambda: self.bridge, lambda: self.scripts)

    async def before_scenario(self, ctx: ExecutionContext):
        """Re-register custom steps from the enabled scripts"""
        self.registry.unregister_by_source(CUSTOM_SOURCE)
        self.bridge.clear_custom_steps()
        await self._load_user_scripts(ctx)
        for step in self.bridge.custom_steps:
            self.registry.register(step)

    async def after_scenario(self, ctx: ExecutionContext):
        self.registry.unregister_by_source(CUSTOM_SOURCE)

    async def destroy(self):
        self.registry.unregister_by_source(CUSTOM_SOURCE)
        self._bridge = None

    def reload_scripts(self):
        self.scripts = self.storage.load()
        logger.debug(f"Loaded {len(self.scripts)} script(s) from {self.storage.path}")

    async def _load_user_scripts(self, ctx: ExecutionContext):
        for script in self.scripts:
            if not script.enabled:
                continue
            try:
                await asyncio.to_thread(self.bridge.execute, script.code, create_execution_context(ctx.signal))
            except ExecutionCancelled:
                raise
            except Exception as e:
                logger.warning(f"Error loading script '{script.name}': {str(e)}")
