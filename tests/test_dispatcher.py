"""Tests for the CLI dispatcher."""

from unittest import mock

import pytest

from restic_backup_ng.cli.dispatcher import (
    create_subcommand_parser,
    insert_run,
    is_implicit_run,
    main,
    split_short_flags,
)


class TestImplicitRun:
    """Tests for is_implicit_run and insert_run."""

    @pytest.mark.parametrize(
        "argv",
        [
            [],
            ["-c"],
            ["--cron"],
            ["--dry-run"],
            ["-v"],
            ["-v", "-c"],
            ["--config", "/etc/x.toml", "-c"],
            ["-x"],
        ],
    )
    def test_implicit(self, argv):
        """Test flag-only command lines run a backup."""
        assert is_implicit_run(argv) is True

    @pytest.mark.parametrize(
        "argv",
        [
            ["run"],
            ["unlock"],
            ["paths", "--json"],
            ["-v", "config", "validate"],
            ["--config", "/etc/x.toml", "run", "-c"],
            ["--help"],
            ["-V"],
        ],
    )
    def test_explicit(self, argv):
        """Test subcommands and help are passed through."""
        assert is_implicit_run(argv) is False

    def test_insert_after_globals(self):
        """Test run is inserted after global options."""
        assert insert_run(["-v", "-C", "/x.toml", "-c"]) == [
            "-v",
            "-C",
            "/x.toml",
            "run",
            "-c",
        ]

    def test_insert_empty(self):
        """Test run is the whole command line when nothing was given."""
        assert insert_run([]) == ["run"]

    def test_insert_with_equals_config(self):
        """Test --config=FILE counts as a global option."""
        assert insert_run(["--config=/x.toml", "-c"]) == ["--config=/x.toml", "run", "-c"]


class TestParser:
    """Tests for create_subcommand_parser."""

    def test_run_defaults(self):
        """Test run defaults to an interactive backup."""
        args = create_subcommand_parser().parse_args(["run"])
        assert args.command == "run"
        assert args.cron is False
        assert args.tag is None
        assert args.connections is None
        assert args.dry_run is False

    @pytest.mark.parametrize("flag", ["-c", "--cron", "--scheduled"])
    def test_scheduled_flags(self, flag):
        """Test every spelling of the scheduled flag."""
        args = create_subcommand_parser().parse_args(["run", flag])
        assert args.cron is True

    def test_run_options(self):
        """Test tag and connections overrides."""
        args = create_subcommand_parser().parse_args(
            ["run", "--tag", "weekly", "--connections", "8"]
        )
        assert args.tag == "weekly"
        assert args.connections == 8

    def test_config_subcommands(self):
        """Test config init output option."""
        args = create_subcommand_parser().parse_args(["config", "init", "-o", "x"])
        assert args.config_action == "init"
        assert args.output == "x"


class TestMain:
    """Tests for main entry point."""

    def test_version(self, capsys):
        """Test --version prints and exits 0."""
        assert main(["--version"]) == 0
        assert "restic-backup-ng" in capsys.readouterr().out

    def test_no_args_runs(self):
        """Test an empty command line dispatches to run."""
        with mock.patch("restic_backup_ng.cli.run.execute_run", return_value=0) as run:
            assert main([]) == 0

        args = run.call_args.args[0]
        assert args.command == "run"
        assert args.cron is False

    def test_cron_flag_runs_scheduled(self):
        """Test the cron flag alone selects a scheduled run."""
        with mock.patch("restic_backup_ng.cli.run.execute_run", return_value=0) as run:
            main(["-c"])

        assert run.call_args.args[0].cron is True

    def test_unknown_flags_are_collected(self):
        """Test unrecognized flags do not abort parsing."""
        with mock.patch("restic_backup_ng.cli.run.execute_run", return_value=0) as run:
            assert main(["-c", "--bogus"]) == 0

        args = run.call_args.args[0]
        assert args.cron is True
        assert args.unrecognized == ["--bogus"]

    def test_exit_code_propagates(self):
        """Test the handler's exit code is returned."""
        with mock.patch("restic_backup_ng.cli.unlock_cmd.execute_unlock", return_value=11):
            assert main(["unlock"]) == 11

    def test_bundled_unknown_letter_is_not_fatal(self):
        """Test -cx runs a scheduled backup and reports -x."""
        with mock.patch("restic_backup_ng.cli.run.execute_run", return_value=0) as run:
            assert main(["-cx"]) == 0

        args = run.call_args.args[0]
        assert args.cron is True
        assert args.unrecognized == ["-x"]

    def test_bundled_global_and_run_flags(self):
        """Test -vc sets verbose output and a scheduled run."""
        with mock.patch("restic_backup_ng.cli.run.execute_run", return_value=0) as run:
            main(["-vc"])

        args = run.call_args.args[0]
        assert args.verbose is True
        assert args.cron is True


class TestSplitShortFlags:
    """Tests for split_short_flags."""

    @pytest.mark.parametrize(
        "argv,expected",
        [
            (["-cx"], ["-c", "-x"]),
            (["-vc"], ["-v", "-c"]),
            (["-c", "--tag", "weekly"], ["-c", "--tag", "weekly"]),
            (["-C/etc/x.toml", "-c"], ["-C/etc/x.toml", "-c"]),
            (["-vCx.toml"], ["-vCx.toml"]),
            (["--cron"], ["--cron"]),
            (["run", "--connections", "-5"], ["run", "--connections", "-5"]),
        ],
    )
    def test_split(self, argv, expected):
        """Test only bundles of known switches are expanded."""
        assert split_short_flags(argv) == expected
