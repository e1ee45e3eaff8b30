"""
Unit tests for the pipeline CLI.
"""

import pytest
from unittest.mock import patch

import main
import models
from models import CaseStatus, CaseSummary, RunReport


def report_with(status):
    return RunReport(total_loaded=1, cases=[
        CaseSummary(test_case_id="TC-1", test_case_type=models.TestCaseType.POSITIVE, status=status)
    ])


class TestParser:

    def test_pipeline_flags(self):
        args = main.build_parser().parse_args(["pipeline", "--send-email"])

        assert args.command == "pipeline"
        assert args.send_email is True

    def test_command_required(self):
        with pytest.raises(SystemExit):
            main.build_parser().parse_args([])


class TestPipeline:

    def test_stages_in_order(self, settings):
        calls = []
        with patch.object(main, "fetch_stories", side_effect=lambda s: calls.append("fetch")), \
                patch.object(main, "generate_testcases", side_effect=lambda s: calls.append("generate")), \
                patch.object(main, "convert_testcases", side_effect=lambda s: calls.append("convert")), \
                patch.object(main, "send_generated_tests", side_effect=lambda s: calls.append("email")), \
                patch.object(main, "run_playwright_automation", return_value=report_with(CaseStatus.PASSED)):
            report = main.run_pipeline(settings, send_email=True)

        assert calls == ["fetch", "generate", "convert", "email"]
        assert report.passed == 1

    def test_email_stage_optional(self, settings):
        with patch.object(main, "fetch_stories"), \
                patch.object(main, "generate_testcases"), \
                patch.object(main, "convert_testcases"), \
                patch.object(main, "send_generated_tests") as send, \
                patch.object(main, "run_playwright_automation", return_value=RunReport()):
            main.run_pipeline(settings)

        send.assert_not_called()

    def test_stage_error_is_logged_not_raised(self, settings):
        with patch.object(main, "fetch_stories", side_effect=ValueError("Missing required Jira configuration")), \
                patch.object(main, "run_playwright_automation") as run:
            assert main.run_pipeline(settings) is None

        run.assert_not_called()


class TestExitCode:

    @pytest.mark.parametrize("report,code", [
        (report_with(CaseStatus.PASSED), 0),
        (report_with(CaseStatus.FAILED), 1),
        (None, 1),
    ])
    def test_run_exit_code(self, report, code):
        with patch.object(main, "run_playwright_automation", return_value=report):
            assert main.main(["run"]) == code

    def test_run_overrides(self):
        with patch.object(main, "run_playwright_automation", return_value=RunReport()) as run:
            main.main(["run", "--testcases-dir", "cases", "--headed"])

        settings = run.call_args.args[0]
        assert settings.testcases_dir == "cases"
        assert settings.headless is False

    def test_malformed_env_is_logged_not_raised(self, monkeypatch):
        monkeypatch.setenv("SMTP_PORT", "abc")

        with patch.object(main, "convert_testcases") as convert:
            assert main.main(["convert"]) == 2

        convert.assert_not_called()

    def test_convert_command(self):
        with patch.object(main, "convert_testcases") as convert:
            assert main.main(["convert"]) == 0

        convert.assert_called_once()
