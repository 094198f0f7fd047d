"""Regression tests for ANSI-aware width math.

These keep boxed previews aligned when git output carries color codes,
tabs, or wide characters.
"""

import unittest

from lazylog import ansi as ansi_mod


class DisplayWidthTests(unittest.TestCase):
    def test_escape_sequences_take_no_columns(self) -> None:
        self.assertEqual(ansi_mod.display_width("\x1b[33mabc\x1b[0m"), 3)

    def test_wide_characters_take_two_columns(self) -> None:
        self.assertEqual(ansi_mod.display_width("日本"), 4)

    def test_tabs_expand_to_the_next_stop(self) -> None:
        self.assertEqual(ansi_mod.display_width("ab\tc"), 9)


class ClipAndPadTests(unittest.TestCase):
    def test_clip_keeps_styles_and_stops_at_width(self) -> None:
        clipped = ansi_mod.clip_ansi_line("\x1b[32mabcdef\x1b[0m", 3)
        self.assertEqual(clipped, "\x1b[32mabc")

    def test_wide_character_is_not_split(self) -> None:
        self.assertEqual(ansi_mod.clip_ansi_line("a日b", 2), "a")

    def test_pad_resets_styles_before_padding(self) -> None:
        padded = ansi_mod.pad_ansi_line("\x1b[31mx", 4)
        self.assertEqual(padded, "\x1b[31mx\x1b[0m   ")

    def test_pad_plain_text(self) -> None:
        self.assertEqual(ansi_mod.pad_ansi_line("ab", 4), "ab  ")


if __name__ == "__main__":
    unittest.main()
