"""Tests for NMS CSV ingestion: field splitting, timestamps, headers and the details grammar."""

import re
from datetime import datetime

import pytest

from models.log_entry import Level, Result
from parsers.common import first_match, iter_csv_records, parse_timestamp, split_csv_line
from parsers.telecom import build_entry, looks_like_header, parse_details, parse_line, parse_nms_csv

NOW = datetime(2024, 6, 1, 12, 0, 0)

HEADER = "Operation,Level,Operator,Time,Source,Terminal IP Address,Operation Object,Result,Details"


class TestSplitCsvLine:
    def test_plain_fields(self):
        assert split_csv_line("a,b,c") == ["a", "b", "c"]

    def test_quoted_comma(self):
        assert split_csv_line('LST-PORT,"Dev01, rack 2",ok') == ["LST-PORT", "Dev01, rack 2", "ok"]

    def test_escaped_quotes(self):
        assert split_csv_line('x,"say ""hi""",y') == ["x", 'say "hi"', "y"]

    def test_fields_are_trimmed(self):
        assert split_csv_line(" a , b ") == ["a", "b"]

    def test_empty_quoted_field(self):
        assert split_csv_line('a,""') == ["a", ""]


class TestIterCsvRecords:
    def test_multiline_quoted_details(self):
        text = 'LST-PORT,Minor,bob,01/03/2024 10:15:00,NM,10.0.0.5,Dev01,Successful,"line one\nline two"\n'
        records = list(iter_csv_records(text))
        assert len(records) == 1
        assert records[0][8] == "line one\nline two"

    def test_blank_lines_dropped(self):
        records = list(iter_csv_records("a,b\n\n\nc,d\n"))
        assert records == [["a", "b"], ["c", "d"]]

    def test_unterminated_quote_does_not_swallow_following_records(self):
        text = 'a,b,c\n1,"open,3\n4,5,6\n7,8,9\n'
        records = list(iter_csv_records(text))
        assert records == [["a", "b", "c"], ["4", "5", "6"], ["7", "8", "9"]]

    def test_unterminated_quote_on_last_record(self):
        records = list(iter_csv_records('a,b\n1,"open\n'))
        assert records[0] == ["a", "b"]
        assert len(records) == 2

    def test_quote_inside_unquoted_field_is_literal(self):
        records = list(iter_csv_records('a,b\n5" cable,x\nc,d\n'))
        assert records == [["a", "b"], ['5" cable', "x"], ["c", "d"]]


class TestParseTimestamp:
    def test_day_first(self):
        assert parse_timestamp("01/03/2024 10:15:00") == datetime(2024, 3, 1, 10, 15, 0)

    def test_iso_with_space(self):
        assert parse_timestamp("2024-03-01 10:15:00") == datetime(2024, 3, 1, 10, 15, 0)

    def test_month_first_with_dashes(self):
        assert parse_timestamp("03-01-2024 10:15:00") == datetime(2024, 3, 1, 10, 15, 0)

    def test_day_first_wins_over_month_first(self):
        # 05/04 is read as 5 April, not 4 May.
        assert parse_timestamp("05/04/2024 08:00:00").month == 4

    def test_invalid_day_first_falls_through(self):
        # Day 31 of month 02 is impossible; no later format matches either.
        assert parse_timestamp("31/02/2024 08:00:00", now=NOW) == NOW

    def test_iso_t_separator(self):
        assert parse_timestamp("2024-03-01T10:15:00") == datetime(2024, 3, 1, 10, 15, 0)

    def test_tabs_are_ignored(self):
        assert parse_timestamp("\t01/03/2024 10:15:00\t") == datetime(2024, 3, 1, 10, 15, 0)

    @pytest.mark.parametrize(
        "text",
        ["", None, "not a date", "yesterday", "0001-01-01T00:00:00+05:00", "9999-12-31T23:59:59-14:00"],
    )
    def test_unparseable_falls_back_to_now(self, text):
        assert parse_timestamp(text, now=NOW) == NOW


class TestFirstMatch:
    def test_first_matching_rule_wins(self):
        rules = [
            (re.compile(r"b"), lambda m: "first"),
            (re.compile(r"a"), lambda m: "second"),
        ]
        assert first_match(rules, "ab") == "first"
        assert first_match(rules, "a") == "second"
        assert first_match(rules, "z") is None


class TestParseDetails:
    def test_full_details_block(self):
        details = (
            "Call Chain ID:123456 ProcessID:pid-9 EN=2686058552 "
            "DEV=OLT-01 FN=0 SN=3 PN=7 ONTID=12 VLANID=100 GEMPORTID=5 blkcount=2 blktotal=10"
        )
        parsed = parse_details(details)
        assert parsed.call_chain_id == "123456"
        assert parsed.process_id == "pid-9"
        assert parsed.error_code == "2686058552"
        assert parsed.error_description == "Resource does not exist"
        assert parsed.error_severity == Level.WARNING
        assert parsed.device == "OLT-01"
        assert (parsed.frame_number, parsed.slot_number, parsed.port_number) == (0, 3, 7)
        assert parsed.ont_id == 12
        assert parsed.vlan_id == 100
        assert parsed.gemport_id == 5
        assert (parsed.block_count, parsed.block_total) == (2, 10)

    def test_endesc_overrides_table_description(self):
        parsed = parse_details("EN=2686058504 ENDESC=Login rejected by RADIUS")
        assert parsed.error_description == "Login rejected by RADIUS"
        assert parsed.error_severity == Level.CRITICAL

    def test_unknown_code_has_no_severity(self):
        parsed = parse_details("EN=1234")
        assert parsed.error_code == "1234"
        assert parsed.error_severity is None
        assert parsed.error_description is None

    def test_absent_tags_stay_none(self):
        parsed = parse_details("nothing tagged here")
        assert parsed.error_code is None
        assert parsed.ont_id is None

    def test_sn_inside_word_is_ignored(self):
        assert parse_details("ONTSN=42").slot_number is None

    def test_empty(self):
        assert parse_details(None).error_code is None


class TestHeaderDetection:
    def test_header_row(self):
        assert looks_like_header(split_csv_line(HEADER))

    def test_data_row(self):
        assert not looks_like_header(["ADD-USER", "Minor", "bob", "01/03/2024 10:15:00"])


class TestBuildEntry:
    def test_add_user_line(self):
        entry = parse_line('ADD-USER,Minor,bob,01/03/2024 10:15:00,NM,10.0.0.5,Dev01,Successful,""')
        assert entry is not None
        assert entry.operation == "ADD-USER"
        assert entry.operator == "bob"
        assert entry.timestamp == datetime(2024, 3, 1, 10, 15, 0)
        assert entry.result == Result.SUCCESSFUL
        assert entry.level == Level.MINOR
        assert entry.source == "NM"
        assert entry.terminal_ip == "10.0.0.5"
        assert entry.operation_object == "Dev01"
        assert entry.details is None
        assert entry.command_type == "Addition"
        assert entry.classified is False

    def test_short_positional_row_is_skipped(self):
        assert build_entry(["ADD-USER", "Minor", "bob"]) is None

    def test_missing_operation_is_skipped(self):
        assert build_entry(["", "Minor", "bob", "", "", "", "", "", ""]) is None

    def test_missing_operator_becomes_unknown(self):
        entry = build_entry(["LST-PORT", "Minor", "", "", "", "", "", "Successful", ""], now=NOW)
        assert entry.operator == "Unknown"
        assert entry.timestamp == NOW

    def test_unknown_result_and_level(self):
        entry = build_entry(["LST-PORT", "Loud", "bob", "", "", "", "", "Partial", ""], now=NOW)
        assert entry.result == Result.UNKNOWN
        assert entry.level == Level.MINOR

    def test_device_detection_prefers_specific_model(self):
        entry = build_entry(
            ["ADD-ONT", "Minor", "bob", "", "", "", "OLT MA5800-X17 site A", "Successful", ""], now=NOW
        )
        assert entry.device_type == "Huawei MA5800-X17"
        assert entry.device_category == "OLT"

    def test_unknown_operation_command_type(self):
        entry = build_entry(["FOO-BAR", "Minor", "bob", "", "", "", "", "Successful", ""], now=NOW)
        assert entry.command_type == "Unknown"


class TestParseNmsCsv:
    def test_header_is_detected_and_skipped(self):
        text = (
            f"{HEADER}\n"
            'LST-PORT,Minor,alice,2024-03-01 09:00:00,NM,10.0.0.1,MA5600T,Successful,""\n'
            'DEL-ONT,Major,bob,2024-03-01 09:05:00,NM,10.0.0.2,MA5600T,Failed,"EN=2686058531"\n'
        )
        entries = parse_nms_csv(text)
        assert [e.operation for e in entries] == ["LST-PORT", "DEL-ONT"]
        assert entries[1].parsed.error_description == "The device does not exist"

    def test_reordered_header_maps_by_name(self):
        text = (
            "Operator,Operation,Result,Time,Level,Source,Terminal IP Address,Operation Object,Details\n"
            "carol,LST-VLAN,Successful,2024-03-01 09:00:00,Minor,NM,10.0.0.3,S5700,\n"
        )
        entries = parse_nms_csv(text)
        assert len(entries) == 1
        assert entries[0].operator == "carol"
        assert entries[0].operation == "LST-VLAN"
        assert entries[0].device_type == "Huawei Switch"

    def test_headerless_uses_default_order(self):
        text = 'LST-PORT,Minor,alice,2024-03-01 09:00:00,NM,10.0.0.1,Dev,Successful,""\n'
        entries = parse_nms_csv(text)
        assert entries[0].operator == "alice"

    def test_bad_lines_are_skipped_not_fatal(self):
        text = (
            f"{HEADER}\n"
            ",,,,,,,,\n"
            'LST-PORT,Minor,alice,2024-03-01 09:00:00,NM,10.0.0.1,Dev,Successful,""\n'
        )
        entries = parse_nms_csv(text)
        assert len(entries) == 1

    def test_empty_text(self):
        assert parse_nms_csv("") == []

    def test_unterminated_details_quote_keeps_rest_of_batch(self):
        valid = [
            f'LST-PORT,Minor,op{i},2024-03-01 09:{i:02d}:00,NM,10.0.0.{i},Dev,Successful,""'
            for i in range(10)
        ]
        broken = "LST-PORT,Minor,bob,2024-03-01 08:00:00,NM,10.0.0.9,Dev,Successful,\"oops 5' cable"
        text = "\n".join([HEADER, broken, *valid])
        entries = parse_nms_csv(text)
        assert [e.operator for e in entries] == [f"op{i}" for i in range(10)]

    def test_out_of_range_offset_timestamp_is_not_fatal(self):
        text = (
            f"{HEADER}\n"
            'LST-PORT,Minor,alice,9999-12-31T23:59:59-14:00,NM,10.0.0.1,Dev,Successful,""\n'
            'LST-PORT,Minor,bob,2024-03-01 09:00:00,NM,10.0.0.2,Dev,Successful,""\n'
        )
        entries = parse_nms_csv(text, now=NOW)
        assert len(entries) == 2
        assert entries[0].timestamp == NOW
        assert entries[1].timestamp == datetime(2024, 3, 1, 9, 0, 0)
