"""HTML report generation for feature results"""
import os
from datetime import datetime
from typing import List
from jinja2 import Template
from gherkinrunner.executor.results import FeatureResult
from gherkinrunner.utils.logger import setup_logger

logger = setup_logger(__name__)

REPORT_TEMPLATE = """
<!DOCTYPE html>
<html>
<head>
    <title>Feature Test Report</title>
    <style>
        body { font-family: Arial, sans-serif; margin: 20px; background-color: #f5f5f5; }
        .container { max-width: 1400px; margin: 0 auto; }
        .header { background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); color: white; padding: 30px; border-radius: 8px; margin-bottom: 30px; }
        .header h1 { margin: 0; font-size: 2.5em; }
        .header p { margin: 10px 0 0 0; opacity: 0.9; }
        .summary { display: flex; gap: 20px; margin: 20px 0; }
        .summary-item { flex: 1; background: white; padding: 20px; border-radius: 8px; text-align: center; box-shadow: 0 2px 4px rgba(0,0,0,0.1); }
        .summary-item.passed { background: #d4edda; color: #155724; }
        .summary-item.failed { background: #f8d7da; color: #721c24; }
        .summary-item.skipped { background: #fff3cd; color: #856404; }
        .summary-item.total { background: #cce5ff; color: #004085; }
        .summary-item .number { font-size: 2.5em; font-weight: bold; }
        .summary-item .label { margin-top: 5px; font-size: 1.1em; }
        .feature { margin: 30px 0; }
        .scenario { background: white; border: 1px solid #dee2e6; margin: 15px 0; border-radius: 8px; box-shadow: 0 2px 4px rgba(0,0,0,0.1); }
        .scenario.passed .scenario-header { border-left: 5px solid #28a745; }
        .scenario.failed .scenario-header { border-left: 5px solid #dc3545; }
        .scenario.skipped .scenario-header { border-left: 5px solid #ffc107; }
        .scenario-header { padding: 15px 20px; background: #f8f9fa; cursor: pointer; border-radius: 8px 8px 0 0; }
        .scenario-header:hover { background: #e9ecef; }
        .scenario-details { padding: 10px 20px; display: none; }
        .scenario.expanded .scenario-details { display: block; }
        .step { padding: 6px 0; border-bottom: 1px solid #f1f1f1; }
        .step .status { display: inline-block; width: 70px; font-weight: bold; font-size: 0.9em; }
        .step.passed .status { color: #28a745; }
        .step.failed .status { color: #dc3545; }
        .step.skipped .status { color: #856404; }
        .step .error { color: #721c24; background: #f8d7da; padding: 8px; border-radius: 3px; margin: 5px 0 0 70px; }
        pre { white-space: pre-wrap; word-wrap: break-word; margin: 5px 0 0 70px; background: #f8f9fa; padding: 10px; border-radius: 3px; font-size: 0.9em; }
        img.screenshot { max-width: 600px; margin: 5px 0 0 70px; border: 1px solid #dee2e6; }
        .timing { color: #6c757d; font-size: 0.9em; float: right; }
    </style>
    <script>
        function toggleDetails(element) {
            element.closest('.scenario').classList.toggle('expanded');
        }
    </script>
</head>
<body>
    <div class="container">
        <div class="header">
            <h1>Feature Test Report</h1>
            <p>Generated: {{ timestamp }} | Environment: {{ environment }}</p>
        </div>

        <div class="summary">
            <div class="summary-item total">
                <div class="number">{{ totals.total }}</div>
                <div class="label">Steps</div>
            </div>
            <div class="summary-item passed">
                <div class="number">{{ totals.passed }}</div>
                <div class="label">Passed</div>
            </div>
            <div class="summary-item failed">
                <div class="number">{{ totals.failed }}</div>
                <div class="label">Failed</div>
            </div>
            <div class="summary-item skipped">
                <div class="number">{{ totals.skipped }}</div>
                <div class="label">Skipped</div>
            </div>
        </div>

        {% for feature in features %}
        <div class="feature">
            <h2>{{ feature.name }} <span class="timing">{{ "%.0f"|format(feature.duration) }}ms | {{ feature.status }}</span></h2>
            {% for scenario in feature.scenarios %}
            <div class="scenario {{ scenario.status }}{% if scenario.status == 'failed' %} expanded{% endif %}">
                <div class="scenario-header" onclick="toggleDetails(this)">
                    <strong>{{ scenario.name }}</strong>
                    <span class="timing">{{ "%.0f"|format(scenario.duration) }}ms</span>
                </div>
                <div class="scenario-details">
                    {% if scenario.error %}<div class="step failed"><div class="error">{{ scenario.error }}</div></div>{% endif %}
                    {% for step in scenario.steps %}
                    <div class="step {{ step.status }}">
                        <span class="status">{{ step.status }}</span>
                        <strong>{{ step.keyword }}</strong> {{ step.text }}
                        <span class="timing">{{ "%.0f"|format(step.duration) }}ms</span>
                        {% if step.error %}<div class="error">{{ step.error }}</div>{% endif %}
                        {% if step.print_output %}<pre>{{ step.print_output }}</pre>{% endif %}
                        {% if step.response %}<pre>{{ step.response.status }} {{ step.response.status_text }}
{{ step.response.body | tojson(indent=2) }}</pre>{% endif %}
                        {% if step.screenshot %}<img class="screenshot" src="{{ step.screenshot }}">{% endif %}
                    </div>
                    {% endfor %}
                </div>
            </div>
            {% endfor %}
        </div>
        {% endfor %}
    </div>
</body>
</html>
"""


class HTMLReporter:
    """Render FeatureResults to a standalone HTML page"""

    def __init__(self, output_dir: str = 'reports', environment: str = 'dev'):
        self.output_dir = output_dir
        self.environment = environment

    def render(self, results: List[FeatureResult]) -> str:
        totals = {'total': 0, 'passed': 0, 'failed': 0, 'skipped': 0}
        features = []
        for result in results:
            for key, value in result.stats.items():
                totals[key] += value
            feature = result.to_dict()
            # Screenshot paths become relative to the report file
            for scenario in feature['scenarios']:
                for step in scenario['steps']:
                    if step['screenshot']:
                        step['screenshot'] = os.path.relpath(step['screenshot'], self.output_dir)
            features.append(feature)

        return Template(REPORT_TEMPLATE, autoescape=True).render(
            timestamp=datetime.now().strftime('%Y-%m-%d %H:%M:%S'),
            environment=self.environment,
            features=features,
            totals=totals
        )

    def generate_report(self, results: List[FeatureResult]) -> str:
        """Write the report and return its path"""
        os.makedirs(self.output_dir, exist_ok=True)
        path = os.path.join(self.output_dir, f"report_{datetime.now().strftime('%Y%m%d_%H%M%S')}.html")

        with open(path, 'w', encoding='utf-8') as f:
            f.write(self.render(results))

        logger.info(f"HTML report generated: {path}")
        return path
