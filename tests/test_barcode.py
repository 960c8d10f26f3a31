"""바코드 명령 파서 테스트"""

import unittest
import sys
import os

# 상위 디렉토리의 모듈들을 import 하기 위해 경로 추가
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.barcode import Prefix, parse, parse_full_defect, parse_shell_label


class TestParse(unittest.TestCase):
    """parse 함수 테스트"""

    def test_every_prefix_is_recognized_case_insensitively(self):
        for prefix in Prefix:
            for text in (prefix.value, prefix.value.lower(), prefix.value.capitalize()):
                command = parse(f"{text};ABC-1")
                self.assertIsNotNone(command, text)
                self.assertIs(command.prefix, prefix)
                self.assertEqual(command.prefix.value, text.upper())
                self.assertEqual(command.value, "ABC-1")

    def test_value_is_everything_after_first_separator(self):
        command = parse("L;LOC1;C;CHAR2")
        self.assertIs(command.prefix, Prefix.LOCATION)
        self.assertEqual(command.value, "LOC1;C;CHAR2")

    def test_surrounding_whitespace_is_trimmed(self):
        command = parse("  sc;000123/L1 \r\n")
        self.assertIs(command.prefix, Prefix.SCAN)
        self.assertEqual(command.value, "000123/L1")
        self.assertEqual(command.raw, "sc;000123/L1")

    def test_empty_value_is_allowed(self):
        command = parse("S;")
        self.assertIs(command.prefix, Prefix.SAVE)
        self.assertEqual(command.value, "")

    def test_invalid_input_returns_none(self):
        for raw in ("", "   ", "SC123", "XYZ;1", ";1", "SCAN;1", "S C;1"):
            self.assertIsNone(parse(raw), raw)

    def test_non_string_input_returns_none(self):
        self.assertIsNone(parse(None))
        self.assertIsNone(parse(123))


class TestShellLabel(unittest.TestCase):
    """parse_shell_label 테스트"""

    def test_label_suffixes(self):
        label = parse_shell_label("000123/L1")
        self.assertEqual(label.serial_number, "000123")
        self.assertEqual(label.label_suffix, "L1")

        label = parse_shell_label("000123/L2")
        self.assertEqual(label.serial_number, "000123")
        self.assertEqual(label.label_suffix, "L2")

    def test_no_suffix(self):
        label = parse_shell_label("000123")
        self.assertEqual(label.serial_number, "000123")
        self.assertIsNone(label.label_suffix)

    def test_suffix_must_be_exact_and_trailing(self):
        self.assertIsNone(parse_shell_label("000123/L3").label_suffix)
        self.assertIsNone(parse_shell_label("000123/l1").label_suffix)
        label = parse_shell_label("000123/L1X")
        self.assertEqual(label.serial_number, "000123/L1X")
        self.assertIsNone(label.label_suffix)


class TestFullDefect(unittest.TestCase):
    """parse_full_defect 테스트"""

    def test_three_segments(self):
        fd = parse_full_defect("042-007-003")
        self.assertEqual(fd.defect_code, "042")
        self.assertEqual(fd.characteristic, "007")
        self.assertEqual(fd.location, "003")

    def test_wrong_segment_count(self):
        self.assertIsNone(parse_full_defect("042-007"))
        self.assertIsNone(parse_full_defect("042-007-003-999"))
        self.assertIsNone(parse_full_defect("042"))


if __name__ == '__main__':
    unittest.main()
