import unittest

from graphpatch.errors import InvalidPathError
from graphpatch.path import Path, parse_index


class TestPathParsing(unittest.TestCase):
    def test_leading_root_segment_is_discarded(self) -> None:
        self.assertEqual(Path.parse("/items/-/description").segments, ("items", "-", "description"))

    def test_empty_string_addresses_root(self) -> None:
        p = Path.parse("")
        self.assertTrue(p.is_root)
        self.assertEqual(str(p), "")

    def test_escapes_are_decoded_in_order(self) -> None:
        p = Path.parse("/a~1b/c~0d/~01")
        self.assertEqual(p.segments, ("a/b", "c~d", "~1"))
        self.assertEqual(str(p), "/a~1b/c~0d/~01")

    def test_path_without_leading_slash_is_rejected(self) -> None:
        with self.assertRaises(InvalidPathError):
            Path.parse("items/0")

    def test_non_string_path_is_rejected(self) -> None:
        with self.assertRaises(InvalidPathError):
            Path.parse(3)  # type: ignore[arg-type]

    def test_index_literals(self) -> None:
        self.assertEqual(parse_index("0"), 0)
        self.assertEqual(parse_index("12"), 12)
        self.assertIsNone(parse_index("01"))
        self.assertIsNone(parse_index("-1"))
        self.assertIsNone(parse_index("-"))
        self.assertIsNone(parse_index("name"))

    def test_append_token_and_parent(self) -> None:
        p = Path.parse("/items/-")
        self.assertTrue(p.ends_with_append)
        self.assertEqual(str(p.parent), "/items")
        self.assertEqual(p.last, "-")

    def test_proper_prefix(self) -> None:
        self.assertTrue(Path.parse("/a").is_proper_prefix_of(Path.parse("/a/b")))
        self.assertFalse(Path.parse("/a").is_proper_prefix_of(Path.parse("/a")))
        self.assertFalse(Path.parse("/a/b").is_proper_prefix_of(Path.parse("/ab/c")))
        self.assertTrue(Path.parse("").is_proper_prefix_of(Path.parse("/x")))


if __name__ == "__main__":
    unittest.main()
