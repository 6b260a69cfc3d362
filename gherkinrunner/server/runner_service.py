"""
Runner service
Command surface (parse / execute / cancel / script management) that reports
progress as a stream of RunnerEvents to a listener callable
"""

import os
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional
from gherkinrunner.core.config_manager import ConfigManager
from gherkinrunner.executor.context import CancelToken
from gherkinrunner.executor.results import FeatureResult, StepResult
from gherkinrunner.executor.test_executor import ProgressCallbacks, TestExecutor
from gherkinrunner.parser.feature_parser import Feature, ParseResult, parse
from gherkinrunner.parser.step_registry import StepRegistry
from gherkinrunner.plugins.browser_plugin import BrowserPlugin
from gherkinrunner.plugins.builtin_plugin import BuiltInPlugin
from gherkinrunner.plugins.plugin_manager import PluginManager
from gherkinrunner.plugins.script_plugin import ScriptPlugin
from gherkinrunner.scripting.script_storage import Script, ScriptStorage
from gherkinrunner.utils.logger import setup_logger

logger = setup_logger(__name__)

PARSE_SUCCESS = "parse_success"
PARSE_ERROR = "parse_error"
STARTED = "started"
SCENARIO_STARTED = "scenario_started"
STEP_RESULT = "step_result"
DONE = "done"
ERROR = "error"
CANCELLED = "cancelled"


@dataclass
class RunnerEvent:
    type: str
    payload: Dict[str, Any] = field(default_factory=dict)


class RunnerService:
    """Owns the registry and plugins and runs one feature at a time"""

    def __init__(self, config: Optional[ConfigManager] = None,
                 listener: Optional[Callable[[RunnerEvent], None]] = None):
        self.config = config or ConfigManager()
        self.listener = listener
        self.registry = StepRegistry()
        self.plugin_manager = PluginManager(self.registry)
        self.storage = ScriptStorage(self.config.get('scripts.path', 'config/scripts.yaml'))
        self.script_plugin = ScriptPlugin(self.registry, self.storage)
        self._token: Optional[CancelToken] = None
        self._initialized = False

    async def initialize(self):
        """Load plugins; the scripting plugin goes first so its more specific patterns win"""
        if self._initialized:
            return

        reports_dir = self.config.get('reports.dir', 'reports')
        await self.plugin_manager.load(self.script_plugin)
        await self.plugin_manager.load(BrowserPlugin(
            options=self.config.section('browser'),
            screenshot_dir=os.path.join(reports_dir, 'screenshots')
        ))
        await self.plugin_manager.load(BuiltInPlugin(http_timeout=self.config.get('http.timeout', 30)))

        self._initialized = True
        logger.info(f"Runner initialized with {len(self.registry)} step definitions")

    async def shutdown(self):
        await self.plugin_manager.destroy()
        self._initialized = False

    def emit(self, event_type: str, **payload):
        if self.listener is None:
            return
        try:
            self.listener(RunnerEvent(type=event_type, payload=payload))
        except Exception as e:
            logger.warning(f"Event listener failed on '{event_type}': {str(e)}")

    def parse(self, source: str, file_path: str = "") -> ParseResult:
        result = parse(source, file_path)
        if result.ok:
            self.emit(PARSE_SUCCESS, feature_name=result.feature.name,
                      scenario_count=len(result.feature.scenarios))
        else:
            self.emit(PARSE_ERROR, errors=[
                {'message': e.message, 'line': e.line, 'column': e.column} for e in result.errors
            ])
        return result

    async def execute(self, source: str, file_path: str = "") -> Optional[FeatureResult]:
        """Parse and run source; malformed source only produces a parse_error event"""
        result = parse(source, file_path)
        if not result.ok:
            self.emit(PARSE_ERROR, errors=[
                {'message': e.message, 'line': e.line, 'column': e.column} for e in result.errors
            ])
            return None
        return await self.execute_feature(result.feature)

    async def execute_feature(self, feature: Feature, token: Optional[CancelToken] = None) -> Optional[FeatureResult]:
        await self.initialize()

        self._token = token or CancelToken()
        signal = self._token
        self.emit(STARTED, feature_name=feature.name)

        def on_scenario_start(name: str, index: int):
            self.emit(SCENARIO_STARTED, name=name, index=index)

        def on_step(step_result: StepResult, index: int):
            self.emit(STEP_RESULT, result=step_result.to_dict(), scenario_index=index)

        executor = TestExecutor(
            self.registry,
            hooks=self.plugin_manager,
            progress=ProgressCallbacks(on_scenario_start=on_scenario_start, on_step=on_step)
        )

        try:
            feature_result = await executor.run(feature, signal)
        except Exception as e:
            logger.error(f"Execution failed: {str(e)}")
            self.emit(ERROR, error=str(e))
            return None
        finally:
            self._token = None

        if signal.cancelled:
            self.emit(CANCELLED, result=feature_result.to_dict())
        else:
            self.emit(DONE, result=feature_result.to_dict())
        return feature_result

    def cancel(self):
        if self._token is not None:
            logger.info("Cancelling execution")
            self._token.cancel()

    @property
    def running(self) -> bool:
        return self._token is not None

    # Script management

    def list_scripts(self) -> List[Script]:
        return self.storage.load()

    def save_script(self, name: str, code: str, script_id: Optional[str] = None) -> Script:
        script = self.storage.save(name, code, script_id)
        self.script_plugin.reload_scripts()
        return script

    def delete_script(self, script_id: str):
        self.storage.delete(script_id)
        self.script_plugin.reload_scripts()

    def toggle_script(self, script_id: str, enabled: bool):
        self.storage.toggle(script_id, enabled)
        self.script_plugin.reload_scripts()
