import unittest

from dailybrief.ingestion.url_utils import normalize_url


class TestUrlCanonicalization(unittest.TestCase):
    def test_strips_scheme_query_and_fragment(self):
        raw = "https://Example.com/Path/To/Article?utm_source=x&id=123#section"
        self.assertEqual(normalize_url(raw), "example.com/path/to/article")

    def test_query_only_difference_is_equal(self):
        a = "https://example.com/a?utm_source=x&id=1"
        b = "http://example.com/a/?id=2"
        self.assertEqual(normalize_url(a), normalize_url(b))

    def test_trailing_slash_removed(self):
        self.assertEqual(normalize_url("https://example.com/news/"), "example.com/news")

    def test_unparseable_falls_back_to_lowercase(self):
        self.assertEqual(normalize_url("  Not A URL "), "not a url")

    def test_empty(self):
        self.assertEqual(normalize_url(""), "")


if __name__ == "__main__":
    unittest.main()
