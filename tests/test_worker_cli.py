import os
import unittest
from unittest import mock

import daily_brief_worker


class TestWorkerCli(unittest.TestCase):
    def test_user_command_flags(self):
        args = daily_brief_worker.build_parser().parse_args(["user", "7", "--force-ingestion"])
        self.assertEqual(args.user_id, 7)
        self.assertTrue(args.force_ingestion)
        self.assertFalse(args.skip_ingestion)
        self.assertIs(args.func, daily_brief_worker.cmd_user)

    def test_ingestion_flags_are_exclusive(self):
        with self.assertRaises(SystemExit):
            daily_brief_worker.build_parser().parse_args(["user", "7", "--skip-ingestion", "--force-ingestion"])

    def test_repeatable_interest(self):
        args = daily_brief_worker.build_parser().parse_args(["ingest", "--interest", "AI/ML", "--interest", "Climate"])
        self.assertEqual(args.interest, ["AI/ML", "Climate"])

    @mock.patch("daily_brief_worker.build_orchestrator")
    def test_user_command_returns_1_on_any_failure(self, build_orchestrator):
        build_orchestrator.return_value.generate_digest_for_user.side_effect = ConnectionError("db unreachable")
        args = daily_brief_worker.build_parser().parse_args(["user", "7"])
        with self.assertLogs("daily_brief_worker", level="ERROR"):
            self.assertEqual(daily_brief_worker.cmd_user(mock.Mock(), args), 1)

    @mock.patch("daily_brief_worker.load_dotenv")
    def test_invalid_config_exits_2(self, _load_dotenv):
        with mock.patch.dict(os.environ, {}, clear=True):
            with mock.patch("daily_brief_worker.cmd_all") as cmd_all:
                self.assertEqual(daily_brief_worker.main(["all"]), 2)
        cmd_all.assert_not_called()


if __name__ == "__main__":
    unittest.main()
