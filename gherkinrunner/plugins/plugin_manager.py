"""Plugin loading and lifecycle fan-out"""
from typing import Dict, List
from gherkinrunner.errors import PluginError
from gherkinrunner.executor.context import ExecutionContext
from gherkinrunner.executor.test_executor import ExecutionHooks
from gherkinrunner.parser.step_registry import StepRegistry
from gherkinrunner.plugins.base import Plugin
from gherkinrunner.utils.logger import setup_logger

logger = setup_logger(__name__)


class PluginManager(ExecutionHooks):
    """Loads plugins into a step registry and forwards scenario hooks to them in load order"""

    def __init__(self, registry: StepRegistry):
        self.registry = registry
        self._plugins: Dict[str, Plugin] = {}

    async def load(self, plugin: Plugin):
        if plugin.id in self._plugins:
            raise PluginError(f'Plugin "{plugin.id}" is already loaded')

        await plugin.initialize()
        steps = plugin.get_step_definitions()
        self.registry.register_all(steps)
        self._plugins[plugin.id] = plugin

        logger.info(f"Plugin loaded: {plugin.name} ({len(steps)} steps)")

    async def unload(self, plugin_id: str):
        plugin = self._plugins.pop(plugin_id, None)
        if plugin is None:
            return
        await plugin.destroy()
        logger.info(f"Plugin unloaded: {plugin.name}")

    async def before_scenario(self, ctx: ExecutionContext):
        for plugin in self._plugins.values():
            await plugin.before_scenario(ctx)

    async def after_scenario(self, ctx: ExecutionContext):
        """Run every plugin's hook, then raise the first failure"""
        first_error = None
        for plugin in self._plugins.values():
            try:
                await plugin.after_scenario(ctx)
            except Exception as e:
                logger.error(f"after_scenario failed in plugin {plugin.id}: {str(e)}")
                if first_error is None:
                    first_error = e
        if first_error is not None:
            raise first_error

    @property
    def loaded_plugins(self) -> List[str]:
        return list(self._plugins)

    def get(self, plugin_id: str) -> Plugin:
        return self._plugins[plugin_id]

    async def destroy(self):
        for plugin_id in list(self._plugins):
            await self.unload(plugin_id)
