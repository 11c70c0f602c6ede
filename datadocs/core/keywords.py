"""Keyword extraction (RAKE) for section texts.

Candidate phrases are runs of consecutive non-stopwords inside a sentence.
Each word scores degree/frequency; a phrase scores the sum of its words.
The stopword list is loaded once at startup; a missing list is fatal there,
so ``extract`` itself never fails on ordinary content.
"""

import logging
import re
from dataclasses import asdict, dataclass
from html import escape
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Union

from ..exceptions import KeywordResourceError

logger = logging.getLogger(__name__)

DEFAULT_STOPWORDS_PATH = Path(__file__).resolve().parent.parent / "resources" / "stop_word_list.txt"

NO_KEYWORDS = "None"
"""Rendered in place of the keyword summary when a text has no keywords."""

_SENTENCE_SPLIT = re.compile(r"[.!?,;:\t\n\"()\[\]{}|–—«»“”]|\s-\s")
_WORD = re.compile(r"[^\W_]+(?:['’-][^\W_]+)*")


@dataclass(frozen=True)
class KeywordScore:
    keyword: str
    score: float

    def to_dict(self) -> dict:
        return asdict(self)


KeywordLike = Union[KeywordScore, dict]


class KeywordExtractor:
    """Stopword-based RAKE extractor. Deterministic for a given stopword set."""

    def __init__(self, stopwords: Iterable[str]):
        self.stopwords = frozenset(w.strip().lower() for w in stopwords if w.strip())

    @classmethod
    def from_file(cls, path: Union[str, Path, None] = None) -> "KeywordExtractor":
        """Load stopwords, one per line; lines starting with ``#`` are comments.

        Raises:
            KeywordResourceError: the file is missing, unreadable or empty.
        """
        path = Path(path) if path else DEFAULT_STOPWORDS_PATH
        try:
            lines = path.read_text(encoding="utf-8").splitlines()
        except OSError as e:
            raise KeywordResourceError(str(path), e) from e

        words = [line for line in lines if line.strip() and not line.lstrip().startswith("#")]
        if not words:
            raise KeywordResourceError(str(path))

        logger.debug("Loaded %d stopwords from %s", len(words), path)
        return cls(words)

    def _candidate_phrases(self, content: str) -> List[List[str]]:
        phrases: List[List[str]] = []
        for sentence in _SENTENCE_SPLIT.split(content):
            current: List[str] = []
            for word in _WORD.findall(sentence.lower()):
                if word in self.stopwords or word.isdigit():
                    if current:
                        phrases.append(current)
                    current = []
                else:
                    current.append(word)
            if current:
                phrases.append(current)
        return phrases

    def extract(self, content: str) -> List[KeywordScore]:
        """Return candidate phrases ranked by score, highest first.

        Ties keep the order in which phrases first appear in ``content``.
        """
        phrases = self._candidate_phrases(content)

        frequency: dict = {}
        degree: dict = {}
        for phrase in phrases:
            for word in phrase:
                frequency[word] = frequency.get(word, 0) + 1
                degree[word] = degree.get(word, 0) + len(phrase)

        word_score = {w: degree[w] / frequency[w] for w in frequency}

        scored: dict = {}
        for phrase in phrases:
            key = " ".join(phrase)
            if key not in scored:
                scored[key] = sum(word_score[w] for w in phrase)

        ranked = sorted(scored.items(), key=lambda item: item[1], reverse=True)
        return [KeywordScore(keyword=k, score=s) for k, s in ranked]

    def extract_payload(self, content: str) -> List[dict]:
        """``extract`` in the JSON shape stored on the text row."""
        return [kw.to_dict() for kw in self.extract(content)]


def render_top(keywords: Optional[Sequence[KeywordLike]], n: int = 1) -> str:
    """Render the top ``n`` keywords as an HTML list.

    Returns ``NO_KEYWORDS`` when there is nothing to show.
    """
    if not keywords or n < 1:
        return NO_KEYWORDS

    items = []
    for kw in list(keywords)[:n]:
        if isinstance(kw, KeywordScore):
            keyword, score = kw.keyword, kw.score
        else:
            keyword, score = kw["keyword"], kw["score"]
        items.append(f'<li>"{escape(keyword)}": {float(score):g}</li>')

    return "<ul>" + "".join(items) + "</ul>"
