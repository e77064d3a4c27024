"""Multi-strategy ranking of thoughts: exact, fuzzy, n-gram and BM25 matching."""

from __future__ import annotations

import enum
import logging
import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from unintel.models import ThoughtRecord

log = logging.getLogger(__name__)

_SCORE_MATCH = 16
_GAP_START = -3
_GAP_EXTENSION = -1
_BONUS_FIRST_CHAR_MULTIPLIER = 2
_BONUS_HEAD = _SCORE_MATCH // 2
_BONUS_BREAK = _SCORE_MATCH // 2 + _GAP_EXTENSION
_BONUS_CAMEL = _SCORE_MATCH // 2 + 2 * _GAP_EXTENSION
_BONUS_CONSECUTIVE = -(_GAP_START + _GAP_EXTENSION)

_AVG_DOC_LENGTH = 100.0
_MIN_SCORE = 10.0


class _CharClass(enum.Enum):
    WHITE = enum.auto()
    DELIMITER = enum.auto()
    LOWER = enum.auto()
    UPPER = enum.auto()
    NUMBER = enum.auto()


_WORD_CLASSES = frozenset({_CharClass.LOWER, _CharClass.UPPER, _CharClass.NUMBER})


def _char_class(c: str) -> _CharClass:
    if c.isspace():
        return _CharClass.WHITE
    if c.isupper():
        return _CharClass.UPPER
    if c.isdigit():
        return _CharClass.NUMBER
    if c.isalpha():
        return _CharClass.LOWER
    return _CharClass.DELIMITER


def _bonus(prev: _CharClass, cur: _CharClass) -> int:
    if cur is _CharClass.WHITE:
        return 0
    if prev is _CharClass.WHITE:
        return _BONUS_HEAD
    if prev is _CharClass.DELIMITER and cur in _WORD_CLASSES:
        return _BONUS_BREAK
    if prev is _CharClass.LOWER and cur is _CharClass.UPPER:
        return _BONUS_CAMEL
    if prev is not _CharClass.NUMBER and cur is _CharClass.NUMBER:
        return _BONUS_CAMEL
    return 0


def fuzzy_match(choice: str, pattern: str) -> int | None:
    """Score ``pattern`` as a subsequence of ``choice``; None when it does not occur.

    Matching is case-insensitive unless the pattern holds an upper-case letter.
    Word starts and consecutive runs earn bonuses; gaps are penalised.
    """
    if not pattern:
        return 0
    case_sensitive = any(c.isupper() for c in pattern)
    text = choice if case_sensitive else choice.lower()
    pat = pattern if case_sensitive else pattern.lower()

    classes = [_char_class(c) for c in choice]
    bonuses = [
        _bonus(classes[j - 1] if j else _CharClass.WHITE, cls)
        for j, cls in enumerate(classes)
    ]

    prev_scores: list[int | None] = []
    prev_runs: list[int] = []
    for i, pc in enumerate(pat):
        scores: list[int | None] = [None] * len(text)
        runs = [0] * len(text)
        gap_best: int | None = None
        for j, tc in enumerate(text):
            if i > 0 and j >= 2:
                candidates = []
                if gap_best is not None:
                    candidates.append(gap_best + _GAP_EXTENSION)
                if prev_scores[j - 2] is not None:
                    candidates.append(prev_scores[j - 2] + _GAP_START)
                gap_best = max(candidates) if candidates else None
            if tc != pc:
                continue
            bonus = bonuses[j]
            if i == 0:
                scores[j] = _SCORE_MATCH + bonus * _BONUS_FIRST_CHAR_MULTIPLIER
                runs[j] = bonus
                continue
            best: int | None = None
            run = bonus
            if j >= 1 and prev_scores[j - 1] is not None:
                prev_run = prev_runs[j - 1]
                best = prev_scores[j - 1] + _SCORE_MATCH + max(
                    bonus, _BONUS_CONSECUTIVE, prev_run
                )
                run = max(prev_run, bonus)
            if gap_best is not None:
                gapped = gap_best + _SCORE_MATCH + bonus
                if best is None or gapped > best:
                    best = gapped
                    run = bonus
            scores[j] = best
            runs[j] = run
        prev_scores, prev_runs = scores, runs

    found = [s for s in prev_scores if s is not None]
    return max(found) if found else None


@dataclass
class BM25Config:
    """BM25 parameters: term saturation, length normalisation and IDF smoothing."""

    k1: float = 1.2
    b: float = 0.75
    k3: float = 8.0


@dataclass
class SearchConfig:
    fuzzy_threshold: int = 60
    ngram_size: int = 3
    bm25_config: BM25Config = field(default_factory=BM25Config)
    max_results: int = 50


class SearchMatchType(enum.Enum):
    EXACT = "Exact"
    FUZZY_TITLE = "FuzzyTitle"
    FUZZY_CONTENT = "FuzzyContent"
    NGRAM_MATCH = "NGramMatch"
    SEMANTIC = "Semantic"
    COMBINED = "Combined"


@dataclass
class EnhancedSearchResult:
    thought_record: ThoughtRecord
    total_score: float
    match_type: SearchMatchType
    fuzzy_score: int | None = None
    bm25_score: float | None = None
    ngram_score: float | None = None
    matched_terms: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class SearchMetrics:
    fuzzy_threshold: int
    ngram_size: int
    max_results: int
    bm25_k1: float
    bm25_b: float


def _first_line(text: str) -> str | None:
    if not text:
        return None
    line = text.split("\n", 1)[0]
    return line[:-1] if line.endswith("\r") else line


class EnhancedSearchEngine:
    """Ranks thoughts against a query by combining several matching strategies."""

    def __init__(self, config: SearchConfig | None = None) -> None:
        self.config = config if config is not None else SearchConfig()

    def search_thoughts(
        self,
        thoughts: Iterable[ThoughtRecord],
        query: str,
        limit: int | None = None,
    ) -> list[EnhancedSearchResult]:
        """Return matching thoughts, best first, at most ``limit`` of them."""
        query_tokens = self.tokenize(query)
        log.debug("Enhanced search for query: %r, tokens: %s", query, query_tokens)
        results = [
            result
            for result in (self.score_thought(t, query, query_tokens) for t in thoughts)
            if result is not None
        ]
        results.sort(key=lambda r: r.total_score, reverse=True)
        limit = self.config.max_results if limit is None else limit
        results = results[:limit]
        log.debug("Enhanced search returned %d results", len(results))
        return results

    def score_thought(
        self, thought: ThoughtRecord, query: str, query_tokens: Sequence[str]
    ) -> EnhancedSearchResult | None:
        """Score one thought; None when its score is not meaningful."""
        total = 0.0
        fuzzy_score: int | None = None
        bm25_score: float | None = None
        ngram_score: float | None = None
        match_type = SearchMatchType.EXACT
        matched_terms: list[str] = []

        content = thought.thought.lower()
        query_lower = query.lower()

        if query_lower in content:
            total += 100.0
            match_type = SearchMatchType.EXACT
            matched_terms.append(query)

        score = fuzzy_match(content, query_lower)
        if score is not None and score >= self.config.fuzzy_threshold:
            fuzzy_score = score
            total += score * 0.8
            if total <= 100.0:
                match_type = SearchMatchType.FUZZY_CONTENT

        first_line = _first_line(content)
        if first_line is not None:
            title_score = fuzzy_match(first_line.lower(), query_lower)
            if title_score is not None and title_score >= self.config.fuzzy_threshold:
                total += title_score * 0.9
                match_type = SearchMatchType.FUZZY_TITLE

        ngram = self.calculate_ngram_score(content, query_tokens)
        if ngram > 0.0:
            ngram_score = ngram
            total += ngram * 50.0
            if total <= 100.0 and fuzzy_score is None:
                match_type = SearchMatchType.NGRAM_MATCH

        bm25 = self.calculate_bm25_score(content, query_tokens)
        if bm25 > 0.0:
            bm25_score = bm25
            total += bm25 * 30.0

        strategies = sum(
            s is not None for s in (fuzzy_score, ngram_score, bm25_score)
        )
        if strategies > 1:
            match_type = SearchMatchType.COMBINED

        if total <= _MIN_SCORE:
            return None
        return EnhancedSearchResult(
            thought_record=thought,
            total_score=total,
            match_type=match_type,
            fuzzy_score=fuzzy_score,
            bm25_score=bm25_score,
            ngram_score=ngram_score,
            matched_terms=matched_terms,
        )

    def calculate_ngram_score(self, text: str, query_tokens: Sequence[str]) -> float:
        """Fraction of the query's n-grams that occur in the text."""
        text_ngrams = set(self.generate_ngrams(text))
        query_ngrams = [g for token in query_tokens for g in self.generate_ngrams(token)]
        if not query_ngrams or not text_ngrams:
            return 0.0
        matches = sum(1 for g in query_ngrams if g in text_ngrams)
        return matches / len(query_ngrams)

    def generate_ngrams(self, text: str) -> list[str]:
        """Character n-grams of the lower-cased text, or the text itself if shorter."""
        size = self.config.ngram_size
        if size < 1:
            raise ValueError("ngram_size must be at least 1")
        text = text.lower()
        if len(text) < size:
            return [text]
        return [text[i : i + size] for i in range(len(text) - size + 1)]

    def calculate_bm25_score(self, text: str, query_tokens: Sequence[str]) -> float:
        """Simplified BM25 with a fixed average length and constant IDF."""
        words = text.split()
        doc_length = float(len(words))
        k1 = self.config.bm25_config.k1
        b = self.config.bm25_config.b
        idf = math.log(2.0)
        score = 0.0
        for token in query_tokens:
            token_lower = token.lower()
            term_freq = float(sum(1 for w in words if token_lower in w.lower()))
            if term_freq > 0.0:
                tf = (term_freq * (k1 + 1.0)) / (
                    term_freq + k1 * (1.0 - b + b * (doc_length / _AVG_DOC_LENGTH))
                )
                score += tf * idf
        return score

    def tokenize(self, query: str) -> list[str]:
        """Lower-cased whitespace-separated words longer than two bytes."""
        return [w.lower() for w in query.split() if len(w.lower().encode("utf-8")) > 2]

    def get_search_metrics(self) -> SearchMetrics:
        return SearchMetrics(
            fuzzy_threshold=self.config.fuzzy_threshold,
            ngram_size=self.config.ngram_size,
            max_results=self.config.max_results,
            bm25_k1=self.config.bm25_config.k1,
            bm25_b=self.config.bm25_config.b,
        )