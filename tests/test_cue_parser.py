from __future__ import annotations

from unittest import TestCase

from practice_app.core.cue_parser import parse_cues, parse_timestamp
from practice_app.core.models import Cue

THREE_BLOCK_TRACK = """WEBVTT
Kind: captions

1
00:00:00.000 --> 00:00:05.000
Good morning and welcome
to the city library tour.

2
00:00:05.000 --> 00:00:10.000

3
00:00:10.000 --> 00:00:14.500
Today we will visit the reading rooms.

4
00:14.500 --> 00:20.000 align:start position:10%
Please keep your voices down.
"""


class ParseCuesTests(TestCase):
    def test_parses_blocks_and_drops_block_without_text(self):
        cues = parse_cues(THREE_BLOCK_TRACK)

        self.assertEqual(
            cues,
            [
                Cue(0.0, 5.0, "Good morning and welcome to the city library tour."),
                Cue(10.0, 14.5, "Today we will visit the reading rooms."),
                Cue(14.5, 20.0, "Please keep your voices down."),
            ],
        )

    def test_three_blocks_with_one_empty_give_two_cues(self):
        track = (
            "00:00:01.000 --> 00:00:02.000\nfirst\n\n"
            "00:00:02.000 --> 00:00:03.000\n\n"
            "00:00:03.000 --> 00:00:04.000\nthird\n"
        )

        cues = parse_cues(track)

        self.assertEqual([cue.text for cue in cues], ["first", "third"])

    def test_handles_bom_crlf_and_missing_trailing_blank_line(self):
        track = "\ufeffWEBVTT\r\n\r\n00:01.000 --> 00:02.000\r\nhello\r\n00:02.000 --> 00:03.000\r\nworld"

        cues = parse_cues(track)

        self.assertEqual(cues, [Cue(1.0, 2.0, "hello"), Cue(2.0, 3.0, "world")])

    def test_drops_cues_with_empty_time_range(self):
        track = "00:00:05.000 --> 00:00:05.000\nzero length\n\n00:00:09.000 --> 00:00:06.000\nbackwards\n"

        self.assertEqual(parse_cues(track), [])

    def test_empty_and_missing_text(self):
        self.assertEqual(parse_cues(""), [])
        self.assertEqual(parse_cues(None), [])
        self.assertEqual(parse_cues("WEBVTT\n\nNOTE nothing here\n"), [])

    def test_malformed_start_becomes_zero(self):
        cues = parse_cues("garbage --> 00:00:03.000\nstill shown\n")

        self.assertEqual(cues, [Cue(0.0, 3.0, "still shown")])


class ParseTimestampTests(TestCase):
    def test_supported_forms(self):
        self.assertAlmostEqual(parse_timestamp("01:02:03.250"), 3723.25)
        self.assertAlmostEqual(parse_timestamp("02:03.5"), 123.5)
        self.assertAlmostEqual(parse_timestamp("00:00:01,500"), 1.5)
        self.assertAlmostEqual(parse_timestamp("42"), 42.0)

    def test_malformed_values_are_zero(self):
        for value in ("", "abc", "1:2:3:4", "00:-01.000", "00:xx.000"):
            with self.subTest(value=value):
                self.assertEqual(parse_timestamp(value), 0.0)
