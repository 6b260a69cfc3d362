"""Unit tests for the test executor"""
import asyncio
from gherkinrunner.executor.context import CancelToken
from gherkinrunner.executor.results import StepStatus
from gherkinrunner.executor.test_executor import (
    ExecutionHooks, ProgressCallbacks, TestExecutor, expand_scenario, run_feature
)
from gherkinrunner.parser.feature_parser import parse
from gherkinrunner.parser.step_registry import StepDefinition, StepRegistry


def make_registry(calls=None):
    calls = calls if calls is not None else []

    async def record(ctx, match, doc_string=None, data_table=None):
        calls.append(match.groups[0])
        ctx.variables.setdefault('seen', []).append(match.groups[0])

    async def fail(ctx, match, doc_string=None, data_table=None):
        raise AssertionError("boom")

    async def remember(ctx, match, doc_string=None, data_table=None):
        if 'id' in ctx.variables:
            raise AssertionError(f"leaked variable {ctx.variables['id']}")
        ctx.variables['id'] = match.groups[0]

    registry = StepRegistry()
    registry.register(StepDefinition(pattern=r'record (\w+)', handler=record))
    registry.register(StepDefinition(pattern=r'fail', handler=fail))
    registry.register(StepDefinition(pattern=r'remember (\w+)', handler=remember))
    return registry


def feature_from(source):
    result = parse(source)
    assert result.ok, result.errors
    return result.feature


def test_counts_and_statuses():
    feature = feature_from('''Feature: F
  Background:
    * record bg
  Scenario: Passing
    * record a
  Scenario: Failing
    * record b
    * fail
    * record c
''')
    result = asyncio.run(run_feature(feature, make_registry(), CancelToken()))

    assert result.status == StepStatus.FAILED
    assert [s.status for s in result.scenario_results] == [StepStatus.PASSED, StepStatus.FAILED]
    assert result.stats == {'total': 6, 'passed': 4, 'failed': 1, 'skipped': 1}
    assert result.scenario_results[1].error == "boom"


def test_failure_skips_remaining_steps():
    calls = []
    feature = feature_from("Feature: F\n  Scenario: S\n    * fail\n    * record never\n")

    result = asyncio.run(run_feature(feature, make_registry(calls), CancelToken()))

    steps = result.scenario_results[0].step_results
    assert [s.status for s in steps] == [StepStatus.FAILED, StepStatus.SKIPPED]
    assert calls == []


def test_unmatched_step_fails():
    feature = feature_from("Feature: F\n  Scenario: S\n    * launch rockets\n")

    result = asyncio.run(run_feature(feature, make_registry(), CancelToken()))

    step = result.scenario_results[0].step_results[0]
    assert step.status == StepStatus.FAILED
    assert step.error == 'No matching step definition for: "launch rockets"'


def test_pre_cancelled_run_skips_everything():
    calls = []
    token = CancelToken()
    token.cancel()
    feature = feature_from("Feature: F\n  Scenario: A\n    * record a\n  Scenario: B\n    * record b\n")

    result = asyncio.run(run_feature(feature, make_registry(calls), token))

    assert calls == []
    assert result.status == StepStatus.SKIPPED
    assert result.stats == {'total': 2, 'passed': 0, 'failed': 0, 'skipped': 2}


def test_cancel_mid_run():
    token = CancelToken()
    registry = make_registry()

    async def cancel(ctx, match, doc_string=None, data_table=None):
        token.cancel()

    registry.register(StepDefinition(pattern=r'cancel', handler=cancel))
    feature = feature_from('''Feature: F
  Scenario: A
    * record a
    * cancel
    * record b
  Scenario: B
    * record c
''')

    result = asyncio.run(run_feature(feature, registry, token))

    first, second = result.scenario_results
    assert [s.status for s in first.step_results] == [StepStatus.PASSED, StepStatus.PASSED, StepStatus.SKIPPED]
    assert first.status == StepStatus.SKIPPED
    assert second.status == StepStatus.SKIPPED
    assert result.status == StepStatus.SKIPPED


def test_outline_rows_run_independently():
    feature = feature_from('''Feature: F
  Scenario Outline: Remember <id>
    * remember <id>
    Examples:
      | id |
      | 1  |
      | 2  |
''')

    result = asyncio.run(run_feature(feature, make_registry(), CancelToken()))

    assert [s.name for s in result.scenario_results] == ['Remember <id> (1)', 'Remember <id> (2)']
    assert all(s.status == StepStatus.PASSED for s in result.scenario_results)


def test_expand_scenario_substitutes_tables_and_doc_strings():
    feature = feature_from('''Feature: F
  Scenario Outline: O
    * record <name>
      """
      hello <name>
      """
    * record x
      | <name> |
    Examples:
      | name |
      | ada  |
''')

    run = expand_scenario(feature.scenarios[0])[0]

    assert run.steps[0].text == 'record ada'
    assert run.steps[0].doc_string == 'hello ada'
    assert run.steps[1].data_table == [['ada']]


def test_hook_failure_fails_scenario():
    class BrokenHooks(ExecutionHooks):
        async def before_scenario(self, ctx):
            raise RuntimeError("no browser")

    calls = []
    feature = feature_from("Feature: F\n  Scenario: S\n    * record a\n")
    executor = TestExecutor(make_registry(calls), hooks=BrokenHooks())

    result = asyncio.run(executor.run(feature, CancelToken()))

    scenario = result.scenario_results[0]
    assert scenario.status == StepStatus.FAILED
    assert "no browser" in scenario.error
    assert calls == []


def test_after_hook_runs_after_failure():
    seen = []

    class Hooks(ExecutionHooks):
        async def after_scenario(self, ctx):
            seen.append(ctx.variables.get('seen'))

    feature = feature_from("Feature: F\n  Scenario: S\n    * record a\n    * fail\n")
    asyncio.run(TestExecutor(make_registry(), hooks=Hooks()).run(feature, CancelToken()))

    assert seen == [['a']]


def test_progress_callbacks():
    events = []
    progress = ProgressCallbacks(
        on_scenario_start=lambda name, index: events.append(('scenario', name, index)),
        on_step=lambda result, index: events.append(('step', result.step.text, result.status.value, index))
    )
    feature = feature_from("Feature: F\n  Scenario: A\n    * record a\n  Scenario: B\n    * fail\n")

    asyncio.run(TestExecutor(make_registry(), progress=progress).run(feature, CancelToken()))

    assert events == [
        ('scenario', 'A', 0),
        ('step', 'record a', 'passed', 0),
        ('scenario', 'B', 1),
        ('step', 'fail', 'failed', 1),
    ]


def test_prints_are_attached_to_the_step():
    async def say(ctx, match, doc_string=None, data_table=None):
        ctx.prints.append('hello')

    registry = StepRegistry()
    registry.register(StepDefinition(pattern=r'say', handler=say))
    feature = feature_from("Feature: F\n  Scenario: S\n    * say\n")

    result = asyncio.run(run_feature(feature, registry, CancelToken()))

    assert result.scenario_results[0].step_results[0].print_output == 'hello'


def test_execute_suites_runs_features_in_order():
    calls = []
    first = feature_from("Feature: One\n  Scenario: A\n    * record a\n")
    second = feature_from("Feature: Two\n  Scenario: B\n    * record b\n")

    results = asyncio.run(TestExecutor(make_registry(calls)).execute_suites([first, second], CancelToken()))

    assert [r.name for r in results] == ['One', 'Two']
    assert calls == ['a', 'b']
