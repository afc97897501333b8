"""Tests for batch parsing and the command registry."""

from __future__ import annotations

import pytest

from nbctl.exceptions import CommandSyntaxError
from nbctl.models.command import UNLIMITED, CommandMode, CommandSyntax
from nbctl.parser import parse_command, parse_commands, split_commands
from nbctl.registry import CommandRegistry


class TestSplitCommands:
    def test_split_on_separator(self):
        assert split_commands(["a", "1", "--", "b", "--", "c", "2", "3"]) == [
            ["a", "1"], ["b"], ["c", "2", "3"],
        ]

    def test_empty_segments_are_dropped(self):
        assert split_commands(["--", "a", "--", "--", "b", "--"]) == [["a"], ["b"]]

    def test_options_are_not_separators(self):
        assert split_commands(["--may-exist", "lswitch-add", "sw0"]) == [
            ["--may-exist", "lswitch-add", "sw0"],
        ]


class TestParseCommand:
    def test_verb_and_args(self, registry):
        command = parse_command(["lport-add", "sw0", "p0"], registry)
        assert command.name == "lport-add"
        assert command.args == ["sw0", "p0"]
        assert command.options == {}

    def test_options_before_verb(self, registry):
        command = parse_command(["--may-exist", "lport-add", "sw0", "p0"], registry)
        assert command.has_option("--may-exist")
        assert command.options["--may-exist"] is None

    def test_option_with_value(self, registry):
        command = parse_command(["--id=@ls", "create", "Logical_Switch"], registry)
        assert command.options == {"--id": "@ls"}

    def test_unknown_command(self, registry):
        with pytest.raises(CommandSyntaxError, match="unknown command 'frobnicate'; use --help for help"):
            parse_command(["frobnicate"], registry)

    def test_option_not_accepted(self, registry):
        with pytest.raises(CommandSyntaxError, match="'lswitch-list' command has no '--may-exist' option"):
            parse_command(["--may-exist", "lswitch-list"], registry)

    def test_repeated_option(self, registry):
        with pytest.raises(CommandSyntaxError, match="'--if-exists' option specified multiple times"):
            parse_command(["--if-exists", "--if-exists", "lswitch-del", "sw0"], registry)

    def test_options_without_verb(self, registry):
        with pytest.raises(CommandSyntaxError, match="missing command name"):
            parse_command(["--may-exist"], registry)

    def test_too_few_arguments(self, registry):
        with pytest.raises(CommandSyntaxError, match="'lport-add' command requires at least 2 arguments"):
            parse_command(["lport-add", "sw0"], registry)

    def test_too_many_arguments(self, registry):
        with pytest.raises(CommandSyntaxError, match="'lswitch-list' command takes at most 0 arguments"):
            parse_command(["lswitch-list", "extra"], registry)


class TestParseCommands:
    def test_batch(self, registry):
        commands = parse_commands(
            ["lswitch-add", "sw0", "--", "--may-exist", "lport-add", "sw0", "p0"], registry
        )
        assert [c.name for c in commands] == ["lswitch-add", "lport-add"]
        assert commands[1].has_option("--may-exist")
        assert not commands[0].has_option("--may-exist")

    def test_empty_batch(self, registry):
        with pytest.raises(CommandSyntaxError, match="missing command name"):
            parse_commands(["--"], registry)


class TestRegistry:
    def test_duplicate_registration(self):
        syntax = CommandSyntax("x", 0, 0, "")
        registry = CommandRegistry([syntax])
        with pytest.raises(ValueError, match="already registered"):
            registry.register(syntax)

    def test_min_greater_than_max(self):
        with pytest.raises(ValueError, match="min_args > max_args"):
            CommandRegistry([CommandSyntax("x", 2, 1, "")])

    def test_might_write(self, registry):
        assert registry.might_write(["lswitch-list", "--", "lswitch-add", "sw0"])
        assert not registry.might_write(["lswitch-list", "--", "show"])

    def test_describe(self, registry):
        lines = registry.describe().splitlines()
        assert "lswitch-add,0,1,--add-duplicate --may-exist,RW" in lines
        assert "lport-set-addresses,1,*,,RW" in lines
        assert "show,0,1,,RO" in lines

    def test_option_names(self, registry):
        names = registry.option_names()
        assert names == sorted(names)
        assert {"--may-exist", "--if-exists", "--id", "--log", "--columns", "--all"} <= set(names)

    def test_every_command_is_registered(self, registry):
        for verb in ("show", "acl-add", "lport-get-options", "create", "wait-until"):
            assert verb in registry
        assert registry.get("create").mode is CommandMode.RW
        assert registry.get("list").max_args == UNLIMITED
