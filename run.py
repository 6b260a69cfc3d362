#!/usr/bin/env python3
"""
GherkinRunner - Gherkin feature runner for HTTP, browser and scripted steps
Main entry point for executing .feature files against the built-in step library
"""

import asyncio
import signal
import sys
import click
from gherkinrunner.core.config_manager import ConfigManager
from gherkinrunner.parser.feature_parser import FeatureParser
from gherkinrunner.reports.html_reporter import HTMLReporter
from gherkinrunner.server.runner_service import RunnerService, RunnerEvent, SCENARIO_STARTED, STEP_RESULT
from gherkinrunner.utils.logger import setup_logger, configure_logging

# Initialize logger
logger = setup_logger(__name__)


def log_event(event: RunnerEvent):
    """Print live progress for the console"""
    if event.type == SCENARIO_STARTED:
        logger.info(f"Scenario: {event.payload['name']}")
    elif event.type == STEP_RESULT:
        result = event.payload['result']
        line = f"  {result['status'].upper():8} {result['keyword']} {result['text']}"
        if result['error']:
            logger.error(f"{line}\n           {result['error']}")
        else:
            logger.info(line)
        if result['print_output']:
            logger.info(result['print_output'])


async def run_features(service: RunnerService, features) -> list:
    """Run features one after another; Ctrl+C cancels the current one and stops"""
    interrupted = []

    def on_interrupt(*_):
        interrupted.append(True)
        service.cancel()

    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, on_interrupt)
    except NotImplementedError:
        signal.signal(signal.SIGINT, on_interrupt)

    results = []
    try:
        await service.initialize()
        for feature in features:
            if interrupted:
                logger.warning("Run interrupted, remaining features not executed")
                break
            logger.info(f"Feature: {feature.name}")
            result = await service.execute_feature(feature)
            if result is not None:
                results.append(result)
    finally:
        await service.shutdown()
    return results


async def list_step_patterns(service: RunnerService):
    try:
        await service.initialize()
        for definition in service.registry.describe():
            click.echo(f"[{definition['source']}] {definition['pattern']}")
            if definition['description']:
                click.echo(f"    {definition['description']}")
    finally:
        await service.shutdown()


@click.command()
@click.option('--env', '-e', default='dev', help='Environment to run tests (dev/staging/prod)')
@click.option('--tags', '-t', multiple=True, help='Tags to filter scenarios')
@click.option('--features', '-f', default='features', help='Path to features directory or file')
@click.option('--config', '-c', default='config/config.yaml', help='Path to config file')
@click.option('--headless/--headed', default=None, help='Override browser headless mode')
@click.option('--cdp-endpoint', default=None, help='Connect to a running Chromium instead of launching one')
@click.option('--report', '-r', default='html', type=click.Choice(['html', 'none']), help='Report format')
@click.option('--log-level', default=None, help='Log level (DEBUG/INFO/WARNING/ERROR)')
@click.option('--list-steps', is_flag=True, help='Print the registered step patterns and exit')
def main(env, tags, features, config, headless, cdp_endpoint, report, log_level, list_steps):
    """
    GherkinRunner - Execute Gherkin feature files

    Examples:
        # Run all features in dev environment
        python run.py --env dev

        # Run specific tagged scenarios
        python run.py --env staging --tags @smoke --tags @api

        # Watch the browser steps run
        python run.py --headed
    """

    try:
        # Load configuration
        config_manager = ConfigManager(config, env)
        config_data = config_manager.load_config()
        if headless is not None:
            config_data['browser']['headless'] = headless
        if cdp_endpoint:
            config_data['browser']['cdp_endpoint'] = cdp_endpoint

        configure_logging(
            log_level or config_manager.get('logging.level'),
            config_manager.get('logging.file')
        )

        service = RunnerService(config_manager, listener=log_event)

        if list_steps:
            asyncio.run(list_step_patterns(service))
            return

        logger.info("Starting GherkinRunner v1.0.0")
        logger.info(f"Environment: {env}")

        # Parse feature files
        feature_parser = FeatureParser(features)
        test_suites = feature_parser.parse_features(list(tags))

        if not test_suites:
            logger.warning("No test scenarios found matching the criteria")
            return

        logger.info(f"Found {len(test_suites)} feature(s) to execute")

        results = asyncio.run(run_features(service, test_suites))

        # Generate reports
        if report == 'html' and results:
            reporter = HTMLReporter(config_manager.get('reports.dir', 'reports'), env)
            reporter.generate_report(results)

        # Exit with appropriate code
        failed_count = sum(r.stats['failed'] for r in results)
        if failed_count > 0:
            logger.error(f"Tests completed with {failed_count} failed step(s)")
            sys.exit(1)
        else:
            logger.info("All tests passed successfully!")
            sys.exit(0)

    except Exception as e:
        logger.error(f"Execution failed: {str(e)}")
        sys.exit(1)


if __name__ == '__main__':
    main()
