"""Tests for the generic database commands (list, find, get, set, add,
clear, create, destroy, wait-until) and symbolic row names."""

from __future__ import annotations

import json
import logging
import re
import threading

import pytest

from nbctl.exceptions import (
    CommandSyntaxError,
    DanglingReferenceError,
    NbctlTimeoutError,
    RowNotFoundError,
    UserInputError,
)
from nbctl.models.config import TableFormat, TableStyle

UUID_RE = r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}"
CSV = TableStyle(format=TableFormat.CSV)
CSV_BARE = TableStyle(format=TableFormat.CSV, headings=False)


@pytest.fixture
def populated(nbctl):
    nbctl(
        "lswitch-add", "sw0",
        "--", "lswitch-add", "sw1",
        "--", "lport-add", "sw0", "p0",
        "--", "lport-add", "sw0", "p1",
        "--", "lport-set-type", "p1", "vtep",
    )
    return nbctl


# ---------------------------------------------------------------------------
# Table lookup and prerequisite checks
# ---------------------------------------------------------------------------

class TestPrerequisites:
    def test_unknown_table(self, nbctl):
        with pytest.raises(CommandSyntaxError, match='unknown table "Bogus"'):
            nbctl("list", "Bogus")

    def test_ambiguous_table_prefix(self, nbctl):
        with pytest.raises(CommandSyntaxError, match='multiple table names match "logical_r"'):
            nbctl("list", "logical_r")

    def test_table_prefix_and_case(self, populated):
        out = populated("--columns=name", "list", "logical_s", style=CSV_BARE)
        assert out == "sw0\nsw1\n"

    def test_unknown_column(self, nbctl):
        with pytest.raises(CommandSyntaxError, match='does not contain a column whose name matches "bogus"'):
            nbctl("--columns=name,bogus", "list", "Logical_Switch")

    def test_bad_table_fails_whole_batch(self, nbctl):
        with pytest.raises(CommandSyntaxError):
            nbctl("lswitch-add", "sw0", "--", "set", "Nope", "x", "a=b")
        assert nbctl("lswitch-list") == ""

    def test_assignment_without_value(self, populated):
        with pytest.raises(CommandSyntaxError, match='name: argument does not end in "="'):
            populated("set", "Logical_Switch", "sw0", "name")

    def test_key_on_non_map_column(self, populated):
        with pytest.raises(CommandSyntaxError, match="non-map column name"):
            populated("get", "Logical_Switch", "sw0", "name:x")

    def test_record_id_needs_at(self, populated):
        with pytest.raises(CommandSyntaxError, match='row id "sw" does not begin with "@"'):
            populated("--id=sw", "get", "Logical_Switch", "sw0")

    @pytest.mark.parametrize("argv, message", [
        (("--all", "destroy", "Logical_Switch", "sw0"), "should not be specified together"),
        (("destroy", "Logical_Switch"), "either --all or records argument"),
    ])
    def test_destroy_arguments(self, nbctl, argv, message):
        with pytest.raises(CommandSyntaxError, match=message):
            nbctl(*argv)


# ---------------------------------------------------------------------------
# list / find
# ---------------------------------------------------------------------------

class TestList:
    def test_default_columns(self, populated):
        out = populated("list", "Logical_Switch", "sw1", style=CSV)
        heading, row = out.splitlines()
        assert heading == "_uuid,name,ports,acls,external_ids"
        assert re.fullmatch(rf"{UUID_RE},sw1,\[\],\[\],{{}}", row)

    def test_list_style(self, populated):
        out = populated("--columns=name,external_ids", "list", "Logical_Switch", "sw1")
        assert out == f"{'name':<12} : sw1\n{'external_ids':<12} : {{}}\n"

    def test_sorted_by_name(self, populated):
        out = populated("--columns=name", "list", "Logical_Port", style=CSV)
        assert out == "name\np0\np1\n"

    def test_json(self, populated):
        out = populated(
            "--columns=name,type", "list", "Logical_Port",
            style=TableStyle(format=TableFormat.JSON),
        )
        assert json.loads(out) == {
            "headings": ["name", "type"],
            "data": [["p0", '""'], ["p1", "vtep"]],
        }

    def test_missing_record(self, populated):
        with pytest.raises(RowNotFoundError, match='no row "sw9" in table Logical_Switch'):
            populated("list", "Logical_Switch", "sw9")

    def test_ambiguous_record(self, populated):
        populated("--add-duplicate", "lswitch-add", "sw0")
        with pytest.raises(UserInputError, match='multiple rows in Logical_Switch match "sw0"'):
            populated("list", "Logical_Switch", "sw0")


class TestFind:
    def test_find_by_column(self, populated):
        out = populated("--columns=name", "find", "Logical_Port", "type=vtep", style=CSV_BARE)
        assert out == "p1\n"

    def test_find_by_map_key(self, populated):
        populated("set", "Logical_Switch", "sw1", "external_ids:owner=alice")
        out = populated(
            "--columns=name", "find", "Logical_Switch", "external_ids:owner=alice",
            style=CSV_BARE,
        )
        assert out == "sw1\n"

    def test_find_by_set_ignores_order(self, populated):
        populated("lport-set-addresses", "p0", "00:00:00:00:00:02", "00:00:00:00:00:01")
        out = populated(
            "--columns=name", "find", "Logical_Port",
            "addresses=[00:00:00:00:00:01, 00:00:00:00:00:02]",
            style=CSV_BARE,
        )
        assert out == "p0\n"

    def test_find_nothing(self, populated):
        out = populated("--columns=name", "find", "Logical_Port", "type=patch", style=CSV_BARE)
        assert out == ""

    def test_find_all(self, populated):
        out = populated("--columns=name", "find", "Logical_Switch", style=CSV_BARE)
        assert out == "sw0\nsw1\n"


# ---------------------------------------------------------------------------
# get / set / add / clear
# ---------------------------------------------------------------------------

class TestGetSet:
    def test_get_columns(self, populated):
        populated("set", "Logical_Switch", "sw0", "external_ids:owner=alice")
        out = populated.lines("get", "Logical_Switch", "sw0", "name", "external_ids:owner", "_uuid")
        assert out[:2] == ["sw0", "alice"]
        assert re.fullmatch(UUID_RE, out[2])

    def test_get_whole_map(self, populated):
        populated("set", "Logical_Switch", "sw0", 'external_ids={b=2, a="x y"}')
        assert populated("get", "Logical_Switch", "sw0", "external_ids") == '{a="x y", b="2"}\n'

    def test_get_missing_key(self, populated):
        with pytest.raises(UserInputError, match='no key "nope" in Logical_Switch record "sw0" column external_ids'):
            populated("get", "Logical_Switch", "sw0", "external_ids:nope")

    def test_get_if_exists(self, populated):
        assert populated("--if-exists", "get", "Logical_Switch", "sw0", "external_ids:nope") == ""
        assert populated("--if-exists", "get", "Logical_Switch", "sw9", "name") == ""

    def test_get_by_uuid(self, populated):
        uuid = populated("get", "Logical_Switch", "sw1", "_uuid").strip()
        assert populated("get", "Logical_Switch", uuid, "name") == "sw1\n"

    def test_set_integer(self, populated):
        populated("set", "Logical_Port", "p0", "tag=5", "parent_name=vm1")
        assert populated("lport-get-tag", "p0", "--", "lport-get-parent", "p0") == "5\nvm1\n"

    def test_set_invalid_integer(self, populated):
        with pytest.raises(CommandSyntaxError, match='"five" is not a valid integer'):
            populated("set", "Logical_Port", "p0", "tag=five")

    def test_set_boolean(self, populated):
        populated("set", "Logical_Port", "p0", "enabled=false")
        assert populated("lport-get-enabled", "p0") == "disabled\n"

    def test_set_quoted_string(self, populated):
        populated("set", "Logical_Port", "p0", 'type="l2gateway"')
        assert populated("lport-get-type", "p0") == "l2gateway\n"

    def test_set_if_exists(self, populated):
        populated("--if-exists", "set", "Logical_Port", "p9", "type=vtep")

    def test_set_keys_accumulate(self, populated):
        populated(
            "set", "Logical_Switch", "sw0", "external_ids:a=1",
            "--", "set", "Logical_Switch", "sw0", "external_ids:b=2",
        )
        assert populated("get", "Logical_Switch", "sw0", "external_ids") == '{a="1", b="2"}\n'


class TestAddClear:
    def test_add_to_set(self, populated):
        populated("lport-set-addresses", "p0", "00:00:00:00:00:01")
        populated(
            "add", "Logical_Port", "p0", "addresses",
            "00:00:00:00:00:01", "00:00:00:00:00:02",
        )
        assert populated.lines("lport-get-addresses", "p0") == [
            "00:00:00:00:00:01",
            "00:00:00:00:00:02",
        ]

    def test_add_to_map_keeps_existing_keys(self, populated):
        populated("set", "Logical_Switch", "sw0", "external_ids:a=1")
        populated("add", "Logical_Switch", "sw0", "external_ids", "a=9", "b=2")
        assert populated("get", "Logical_Switch", "sw0", "external_ids") == '{a="1", b="2"}\n'

    def test_add_to_empty_optional(self, populated):
        populated("add", "Logical_Port", "p0", "tag", "12")
        assert populated("lport-get-tag", "p0") == "12\n"

    def test_add_to_scalar(self, populated):
        with pytest.raises(CommandSyntaxError, match='would put 2 values in column type of table Logical_Port'):
            populated("add", "Logical_Port", "p0", "type", "vtep")

    def test_clear(self, populated):
        populated(
            "lport-set-addresses", "p0", "00:00:00:00:00:01",
            "--", "set", "Logical_Port", "p0", "tag=3",
        )
        populated("clear", "Logical_Port", "p0", "addresses", "tag")
        assert populated("lport-get-addresses", "p0", "--", "lport-get-tag", "p0") == ""

    def test_clear_scalar(self, populated):
        with pytest.raises(CommandSyntaxError, match="cannot be applied to column type"):
            populated("clear", "Logical_Port", "p0", "type")


# ---------------------------------------------------------------------------
# create / destroy and symbolic names
# ---------------------------------------------------------------------------

class TestCreate:
    def test_create_root_row_prints_real_uuid(self, nbctl):
        out = nbctl("create", "Logical_Switch", "name=sw5")
        assert re.fullmatch(rf"{UUID_RE}\n", out)
        assert nbctl("get", "Logical_Switch", "sw5", "_uuid") == out

    def test_create_with_symbolic_reference(self, populated):
        out = populated(
            "--id=@p", "create", "Logical_Port", "name=p7",
            "--", "add", "Logical_Switch", "sw1", "ports", "@p",
        )
        (line,) = populated.lines("lport-list", "sw1")
        assert line == f"{out.strip()} (p7)"

    def test_reference_before_create(self, populated):
        populated(
            "add", "Logical_Switch", "sw1", "ports", "@p",
            "--", "--id=@p", "create", "Logical_Port", "name=p7",
        )
        assert [line.split()[1] for line in populated.lines("lport-list", "sw1")] == ["(p7)"]

    def test_create_acl_and_attach(self, populated):
        populated(
            "--id=@acl", "create", "ACL", "priority=10", "direction=to-lport",
            'match="ip4.src == 10.0.0.1"', "action=drop",
            "--", "add", "Logical_Switch", "sw0", "acls", "@acl",
        )
        assert populated.lines("acl-list", "sw0") == ["  to-lport    10 (ip4.src == 10.0.0.1) drop"]

    def test_dangling_reference(self, populated):
        with pytest.raises(DanglingReferenceError, match='row id "@nope" is referenced but never created'):
            populated("add", "Logical_Switch", "sw0", "ports", "@nope")
        assert len(populated.lines("lport-list", "sw0")) == 2

    def test_id_defined_twice(self, nbctl):
        with pytest.raises(CommandSyntaxError, match="may only be specified on one --id option"):
            nbctl(
                "--id=@p", "create", "Logical_Port", "name=a",
                "--", "--id=@p", "create", "Logical_Port", "name=b",
            )

    def test_unreferenced_create_warns(self, nbctl, caplog):
        with caplog.at_level(logging.WARNING):
            nbctl("--id=@p", "create", "Logical_Port", "name=p8")
        assert 'row id "@p" was created but no reference to it was inserted' in caplog.text
        assert nbctl("--columns=name", "list", "Logical_Port", style=CSV_BARE) == ""

    def test_create_without_id_in_non_root_table(self, nbctl, caplog):
        with caplog.at_level(logging.WARNING):
            nbctl("create", "ACL", "priority=1")
        assert 'applying "create" command to table ACL without --id option' in caplog.text
        assert nbctl("list", "ACL") == ""

    def test_dry_run(self, nbctl):
        out = nbctl("create", "Logical_Switch", "name=sw5", dry_run=True)
        assert re.fullmatch(rf"{UUID_RE}\n", out)
        assert nbctl("lswitch-list") == ""


class TestGetId:
    def test_get_id_keeps_row_referenced(self, populated):
        assert populated("--id=@sw", "get", "Logical_Switch", "sw0") == ""

    def test_get_id_after_reference(self, populated):
        with pytest.raises(CommandSyntaxError, match="was used before it was defined"):
            populated(
                "add", "Logical_Switch", "sw0", "ports", "@x",
                "--", "--id=@x", "get", "Logical_Switch", "sw1",
            )


class TestDestroy:
    def test_destroy_records(self, populated):
        populated("destroy", "Logical_Switch", "sw0", "sw1")
        assert populated("lswitch-list") == ""

    def test_destroy_all(self, populated):
        populated("--all", "destroy", "Logical_Switch")
        assert populated("lswitch-list") == ""
        assert populated("list", "Logical_Port") == ""

    def test_destroy_missing(self, populated):
        with pytest.raises(RowNotFoundError, match='no row "sw9" in table Logical_Switch'):
            populated("destroy", "Logical_Switch", "sw9")

    def test_destroy_if_exists(self, populated):
        populated("--if-exists", "destroy", "Logical_Switch", "sw9", "sw1")
        assert [line.split()[1] for line in populated.lines("lswitch-list")] == ["(sw0)"]


# ---------------------------------------------------------------------------
# wait-until
# ---------------------------------------------------------------------------

class TestWaitUntil:
    def test_already_satisfied(self, populated):
        populated("wait-until", "Logical_Port", "p1", "type=vtep", timeout=2.0)

    def test_times_out(self, populated):
        with pytest.raises(NbctlTimeoutError, match="timed out after 0.3 seconds"):
            populated("wait-until", "Logical_Switch", "sw9", timeout=0.3)

    def test_condition_never_met(self, populated):
        with pytest.raises(NbctlTimeoutError):
            populated("wait-until", "Logical_Port", "p0", "type=vtep", timeout=0.3)

    def test_waits_for_other_writer(self, populated):
        timer = threading.Timer(0.2, populated, args=("lswitch-add", "sw9"))
        timer.start()
        try:
            populated("wait-until", "Logical_Switch", "sw9", timeout=10.0)
        finally:
            timer.join()
        assert "(sw9)" in populated("lswitch-list")
