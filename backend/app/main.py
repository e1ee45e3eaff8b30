"""
QA pipeline: Jira stories -> AI test cases -> TXT / email -> Playwright run.

Usage:
    python main.py pipeline [--send-email]
    python main.py fetch | generate | convert | email | run
"""

from dotenv import load_dotenv
import pathlib

# Load .env from backend folder (parent of app)
env_path = pathlib.Path(__file__).parent.parent / '.env'
load_dotenv(env_path)

import argparse
import asyncio
import logging
import sys
import time
from typing import List, Optional

from playwright.async_api import async_playwright, Error as PlaywrightError

from models import RunReport
from settings import Settings
from runner import TestCaseRunner, UIAliasMap, load_test_cases

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )


# ==================== Pipeline stages ====================

def fetch_stories(settings: Settings):
    from jira_client import fetch_jira_stories

    logger.info("Fetching Jira stories...")
    fetch_jira_stories(settings)
    logger.info("Jira stories fetched.")


def generate_testcases(settings: Settings):
    from testcase_generator import TestCaseGenerator

    logger.info("Generating JSON test cases...")
    TestCaseGenerator(settings).generate_from_stories()
    logger.info("JSON test cases generated.")


def convert_testcases(settings: Settings):
    from txt_converter import convert_json_to_txt

    logger.info("Converting JSON test cases to TXT format...")
    convert_json_to_txt(settings.testcases_dir, settings.txt_dir, settings.mail_separator)
    logger.info("TXT conversion complete.")


def send_generated_tests(settings: Settings):
    from email_sender import send_emails_from_txt

    logger.info("Sending generated test cases via email...")
    send_emails_from_txt(settings)
    logger.info("Emails sent.")


async def run_generated_tests(settings: Settings) -> RunReport:
    """Execute every automatable generated test case in one browser session."""
    from session_bootstrap import bootstrap_session

    test_cases = load_test_cases(settings.testcases_dir)
    if not test_cases:
        logger.warning(f"No test cases in folder: {settings.testcases_dir}")
        return RunReport()

    alias_map = UIAliasMap.load(settings.ui_map_path)

    if not pathlib.Path(settings.auth_state_path).exists():
        await bootstrap_session(settings)

    async with async_playwright() as playwright:
        browser = await playwright.chromium.launch(headless=settings.headless)
        try:
            context = await browser.new_context(
                storage_state=settings.auth_state_path,
                viewport={'width': 1920, 'height': 1080},
                extra_http_headers={'Cache-Control': 'no-cache'}
            )
            page = await context.new_page()
            runner = TestCaseRunner.from_settings(settings, page, context, alias_map)
            return await runner.run(test_cases)
        finally:
            await browser.close()


def run_playwright_automation(settings: Settings) -> Optional[RunReport]:
    logger.info("Starting Playwright automation...")
    try:
        report = asyncio.run(run_generated_tests(settings))
    except (RuntimeError, ValueError, PlaywrightError) as e:
        # Login/bootstrap or browser launch problems
        logger.error(f"Playwright automation failed: {e}")
        return None
    logger.info(f"Playwright automation complete: {report.passed} passed, {report.failed} failed")
    return report


def run_pipeline(settings: Settings, send_email: bool = False) -> Optional[RunReport]:
    logger.info("Starting Jira -> Testcases -> Playwright pipeline...")
    start = time.time()
    report = None

    try:
        fetch_stories(settings)
        generate_testcases(settings)
        convert_testcases(settings)
        if send_email:
            send_generated_tests(settings)
        report = run_playwright_automation(settings)
    except (ValueError, OSError) as e:
        logger.error(f"Pipeline failed: {e}")
    finally:
        logger.info(f"Pipeline finished in {time.time() - start:.1f}s")

    return report


# ==================== CLI ====================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Generate and run AI test cases from Jira stories")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("fetch", help="Fetch Jira stories to the stories file")
    sub.add_parser("generate", help="Generate JSON test cases from the stories file")
    sub.add_parser("convert", help="Convert JSON test cases to TXT")
    sub.add_parser("email", help="Email TXT test cases to assignees")

    run = sub.add_parser("run", help="Execute generated test cases in the browser")
    run.add_argument("--testcases-dir", help="Folder of *_testcases.json files")
    run.add_argument("--ui-map", help="UI alias map JSON file")
    run.add_argument("--headed", action="store_true", help="Show the browser")

    pipeline = sub.add_parser("pipeline", help="Run all stages")
    pipeline.add_argument("--send-email", action="store_true", help="Also email the TXT test cases")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)
    try:
        settings = Settings.from_env(load_env_file=False)
    except ValueError as e:
        # Malformed numeric env var
        logger.error(f"Invalid configuration: {e}")
        return 2

    if args.command == "fetch":
        fetch_stories(settings)
    elif args.command == "generate":
        generate_testcases(settings)
    elif args.command == "convert":
        convert_testcases(settings)
    elif args.command == "email":
        send_generated_tests(settings)
    elif args.command == "run":
        updates = {}
        if args.testcases_dir:
            updates["testcases_dir"] = args.testcases_dir
        if args.ui_map:
            updates["ui_map_path"] = args.ui_map
        if args.headed:
            updates["headless"] = False
        report = run_playwright_automation(settings.model_copy(update=updates))
        return 0 if report is not None and report.failed == 0 else 1
    elif args.command == "pipeline":
        report = run_pipeline(settings, send_email=args.send_email)
        return 0 if report is not None and report.failed == 0 else 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
