"""Tests for RAKE keyword extraction and the keyword summary."""

import pytest

from datadocs.core.keywords import (
    DEFAULT_STOPWORDS_PATH, NO_KEYWORDS, KeywordExtractor, KeywordScore, render_top,
)
from datadocs.exceptions import KeywordResourceError


@pytest.fixture()
def small_extractor():
    return KeywordExtractor(["of", "the", "is", "and", "a"])


class TestExtract:

    def test_ranks_multi_word_phrases_highest(self, small_extractor):
        result = small_extractor.extract("Compatibility of systems of linear constraints")
        assert result[0] == KeywordScore(keyword="linear constraints", score=4.0)
        assert [kw.keyword for kw in result[1:]] == ["compatibility", "systems"]

    def test_stopwords_split_phrases(self, small_extractor):
        keywords = [kw.keyword for kw in small_extractor.extract("the budget is large")]
        assert "budget" in keywords
        assert "large" in keywords
        assert all("the" not in k.split() for k in keywords)

    def test_punctuation_splits_phrases(self, small_extractor):
        keywords = [kw.keyword for kw in small_extractor.extract("housing policy. transit funding")]
        assert "housing policy" in keywords
        assert "transit funding" in keywords
        assert "policy transit" not in " ".join(keywords)

    def test_numbers_are_not_keywords(self, small_extractor):
        keywords = [kw.keyword for kw in small_extractor.extract("spent 2024 funds")]
        assert "2024" not in " ".join(keywords)

    def test_deterministic(self, small_extractor):
        content = "Regional health data sharing agreements and privacy review"
        assert small_extractor.extract(content) == small_extractor.extract(content)

    def test_repeated_phrase_listed_once(self, small_extractor):
        result = small_extractor.extract("open data, open data, open data")
        assert [kw.keyword for kw in result] == ["open data"]

    def test_empty_content_yields_no_keywords(self, small_extractor):
        assert small_extractor.extract("") == []

    def test_payload_is_json_shaped(self, small_extractor):
        payload = small_extractor.extract_payload("linear constraints")
        assert payload == [{"keyword": "linear constraints", "score": 4.0}]


class TestStopwordResource:

    def test_bundled_list_loads(self):
        extractor = KeywordExtractor.from_file()
        assert "the" in extractor.stopwords
        assert "les" in extractor.stopwords

    def test_bundled_list_exists(self):
        assert DEFAULT_STOPWORDS_PATH.exists()

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(KeywordResourceError):
            KeywordExtractor.from_file(tmp_path / "missing.txt")

    def test_empty_file_raises(self, tmp_path):
        path = tmp_path / "empty.txt"
        path.write_text("# only a comment\n\n", encoding="utf-8")
        with pytest.raises(KeywordResourceError):
            KeywordExtractor.from_file(path)


class TestRenderTop:

    def test_none_renders_sentinel(self):
        assert render_top(None) == NO_KEYWORDS

    def test_empty_list_renders_sentinel(self):
        assert render_top([]) == NO_KEYWORDS

    def test_renders_top_one_by_default(self):
        keywords = [{"keyword": "linear constraints", "score": 4.0}, {"keyword": "systems", "score": 1.0}]
        assert render_top(keywords) == '<ul><li>"linear constraints": 4</li></ul>'

    def test_honours_n(self):
        keywords = [KeywordScore("linear constraints", 4.0), KeywordScore("systems", 1.5)]
        assert render_top(keywords, n=2) == (
            '<ul><li>"linear constraints": 4</li><li>"systems": 1.5</li></ul>'
        )

    def test_n_larger_than_list(self):
        html = render_top([{"keyword": "solo", "score": 1}], n=5)
        assert html.count("<li>") == 1

    def test_keyword_is_html_escaped(self):
        html = render_top([{"keyword": "<script>", "score": 1}])
        assert "<script>" not in html
        assert "&lt;script&gt;" in html
