"""Unit tests for the script bridge, script steps and script storage"""
import asyncio
import threading
import pytest
from gherkinrunner.errors import ExecutionCancelled, ScriptError
from gherkinrunner.executor.context import CancelToken, HttpResponse, create_execution_context
from gherkinrunner.parser.step_registry import StepRegistry, match_step
from gherkinrunner.scripting.script_bridge import CUSTOM_SOURCE, ScriptBridge
from gherkinrunner.scripting.script_storage import Script, ScriptStorage
from gherkinrunner.steps.script_steps import get_script_step_definitions


def make_context():
    ctx = create_execution_context(CancelToken())
    ctx.response = HttpResponse(status=200, status_text='OK', headers={},
                                body={'token': 'abc', 'items': [1, 2, 3]}, response_time=5.0)
    return ctx


def test_return_value():
    bridge = ScriptBridge()

    assert bridge.execute("return sum(response['body']['items'])", make_context()) == 6


def test_no_return_gives_none():
    assert ScriptBridge().execute("x = 1", make_context()) is None


def test_variables_are_shared():
    ctx = make_context()
    ctx.variables['count'] = 2

    ScriptBridge().execute("variables['count'] += 1", ctx)

    assert ctx.variables['count'] == 3


def test_print_collects_output():
    ctx = make_context()

    ScriptBridge().execute("print('total', 3, True, None, {'a': 1})", ctx)

    assert ctx.prints == ['total\t3\ttrue\tnull\t{"a": 1}']


def test_json_helpers():
    ctx = make_context()

    result = ScriptBridge().execute("return json.decode(json.encode({'a': [1, 2]}))", ctx)

    assert result == {'a': [1, 2]}
    with pytest.raises(ScriptError, match='json.decode error'):
        ScriptBridge().execute("json.decode('{not json')", ctx)


def test_syntax_error_reports_script_line():
    with pytest.raises(ScriptError, match=r'line 2'):
        ScriptBridge().execute("x = 1\nif x\n    pass", make_context())


def test_runtime_error_is_wrapped():
    with pytest.raises(ScriptError, match='ZeroDivisionError'):
        ScriptBridge().execute("return 1 / 0", make_context())


def test_assertions_propagate():
    with pytest.raises(AssertionError, match='bad token'):
        ScriptBridge().execute("assert response['body']['token'] == 'x', 'bad token'", make_context())


def test_cancelled_token_stops_runaway_script():
    ctx = make_context()
    timer = threading.Timer(0.2, ctx.signal.cancel)
    timer.start()
    try:
        with pytest.raises(ExecutionCancelled):
            ScriptBridge(check_interval=100).execute("while True:\n    pass", ctx)
    finally:
        timer.cancel()


def test_pre_cancelled_context_does_not_run():
    ctx = make_context()
    ctx.signal.cancel()

    with pytest.raises(ExecutionCancelled):
        ScriptBridge().execute("variables['ran'] = True", ctx)
    assert 'ran' not in ctx.variables


def test_custom_step_registration():
    bridge = ScriptBridge()
    bridge.execute(
        "def login(ctx, user):\n"
        "    ctx.variables['user'] = user\n"
        "step(r'I log in as (\\w+)', login)\n",
        make_context()
    )

    steps = bridge.custom_steps
    assert len(steps) == 1
    assert steps[0].source == CUSTOM_SOURCE

    ctx = make_context()
    result = match_step('I log in as ada', steps)
    asyncio.run(result.definition.handler(ctx, result.match))

    assert ctx.variables['user'] == 'ada'


def test_custom_step_bad_pattern():
    with pytest.raises(ScriptError, match='invalid regex'):
        ScriptBridge().execute("step('(', lambda ctx: None)", make_context())


def run_script_step(text, doc_string=None, scripts=None, ctx=None):
    bridge = ScriptBridge()
    registry = StepRegistry()
    registry.register_all(get_script_step_definitions(lambda: bridge, lambda: scripts or []))
    ctx = ctx or make_context()
    result = registry.match(text)
    assert result.found, text
    asyncio.run(result.definition.handler(ctx, result.match, doc_string))
    return ctx


def test_def_eval_step():
    ctx = run_script_step('def token = eval', doc_string="return response['body']['token']")

    assert ctx.variables['token'] == 'abc'


def test_eval_requires_doc_string():
    with pytest.raises(ValueError, match='requires a doc string'):
        run_script_step('eval')


def test_stored_script_step():
    scripts = [
        Script(id='1', name='setup', code="variables['ready'] = True"),
        Script(id='2', name='off', code="variables['off'] = True", enabled=False),
    ]

    ctx = run_script_step("script 'setup'", scripts=scripts)
    assert ctx.variables['ready'] is True

    with pytest.raises(LookupError, match="Script 'off' not found or disabled"):
        run_script_step("script 'off'", scripts=scripts)


def test_storage_save_update_toggle_delete(tmp_path):
    storage = ScriptStorage(str(tmp_path / "config" / "scripts.yaml"))

    created = storage.save('helpers', "variables['a'] = 1")
    assert created.id.startswith('script_')
    assert [s.name for s in storage.load()] == ['helpers']

    updated = storage.save('helpers v2', "variables['a'] = 2", created.id)
    assert updated.id == created.id
    assert storage.load()[0].code == "variables['a'] = 2"

    storage.toggle(created.id, False)
    assert storage.load()[0].enabled is False

    storage.delete(created.id)
    assert storage.load() == []


def test_storage_missing_file(tmp_path):
    assert ScriptStorage(str(tmp_path / "scripts.yaml")).load() == []
