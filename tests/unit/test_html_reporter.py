"""Unit tests for the HTML reporter"""
import os
from gherkinrunner.executor.context import HttpResponse
from gherkinrunner.executor.results import FeatureResult, ScenarioResult, StepResult, StepStatus
from gherkinrunner.parser.feature_parser import Step, StepType
from gherkinrunner.reports.html_reporter import HTMLReporter


def make_results(screenshot=None):
    passed = StepResult(
        step=Step(type=StepType.ANY, keyword='*', text='method GET', line_number=3),
        status=StepStatus.PASSED,
        duration=12.0,
        response=HttpResponse(status=200, status_text='OK', headers={}, body={'id': 1}, response_time=10.0),
        screenshot=screenshot
    )
    failed = StepResult(
        step=Step(type=StepType.ANY, keyword='*', text='match response.id == 2', line_number=4),
        status=StepStatus.FAILED,
        error='Expected 2 but got 1 <script>'
    )
    scenario = ScenarioResult(name='Lookup', step_results=[passed, failed], status=StepStatus.FAILED,
                              error=failed.error)
    return [FeatureResult(name='Users', scenario_results=[scenario], status=StepStatus.FAILED)]


def test_render_contains_totals_and_steps():
    html = HTMLReporter(environment='staging').render(make_results())

    assert 'Environment: staging' in html
    assert 'method GET' in html
    assert 'match response.id == 2' in html
    assert '<div class="number">2</div>' in html
    assert '&#34;id&#34;: 1' in html or '"id": 1' in html


def test_render_escapes_error_text():
    html = HTMLReporter().render(make_results())

    assert '<script>' not in html.split('</head>')[1]
    assert '&lt;script&gt;' in html


def test_generate_report_writes_file(tmp_path):
    shot = tmp_path / "screenshots" / "shot.png"
    reporter = HTMLReporter(output_dir=str(tmp_path))

    path = reporter.generate_report(make_results(screenshot=str(shot)))

    assert os.path.exists(path)
    with open(path, encoding='utf-8') as f:
        content = f.read()
    assert 'src="screenshots/shot.png"' in content
