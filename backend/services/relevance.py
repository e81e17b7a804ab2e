"""
Relevance Selector - keyword-scored excerpt of a large document.

Narrows the full document text to a bounded excerpt that fits the
completion prompt:

1. Query terms: lower-cased whitespace tokens of the question, edge
   punctuation stripped, minus Spanish stop words and tokens of 2 chars
   or fewer (deduplicated, first occurrence wins).
2. Paragraphs: document split on blank lines, empty ones dropped.
3. Score per paragraph: for each term, 10 x occurrences plus 5 if it
   occurs at all. Zero-score paragraphs are dropped.
4. Stable sort by score, descending; ties keep document order.
5. Greedy fill while the running length (paragraph + separator) stays
   within budget; the first paragraph that does not fit ends the fill.
6. Under half the budget filled -> the head of the document is put in
   front, sized to the remaining budget, followed by a divider.

The budget applies to ``body``; ``trailer`` is a diagnostic line added on
top. The selector is pure: same text, question and budget give the same
excerpt.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, List, Optional, Tuple

logger = logging.getLogger(__name__)

# Articles, prepositions, conjunctions and other short function words
STOPWORDS: FrozenSet[str] = frozenset({
    "el", "la", "los", "las", "un", "una", "unos", "unas", "lo", "al", "del",
    "de", "a", "en", "por", "para", "con", "sin", "sobre", "entre", "hasta",
    "desde", "hacia", "ante", "bajo", "tras", "según", "segun", "durante",
    "y", "e", "o", "u", "ni", "que", "pero", "sino", "aunque", "como", "porque",
    "pues", "si", "cuando", "donde", "mientras",
    "es", "son", "ser", "fue", "está", "esta", "están", "estan", "hay",
    "se", "su", "sus", "mi", "mis", "tu", "tus", "me", "te", "le", "les", "nos",
    "este", "estos", "estas", "ese", "esa", "esos", "esas",
    "qué", "cuál", "cuáles", "cual", "cuales", "cómo", "cuándo", "dónde",
    "quién", "quien", "cuánto", "cuanto", "cuántos", "cuantos",
    "muy", "más", "mas", "menos", "ya", "no", "sí", "también", "tambien",
    "puedo", "puede", "debo", "hacer", "tengo", "tiene",
})

_EDGE_PUNCTUATION = "¿?¡!.,;:()[]{}\"'«»“”‘’-—…*"
_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")

PARAGRAPH_SEPARATOR = "\n\n"
EXCERPT_DIVIDER = "\n\n--- SECCIONES RELEVANTES DEL DOCUMENTO ---\n\n"

TERM_OCCURRENCE_WEIGHT = 10
TERM_PRESENCE_BONUS = 5


class ExcerptKind(str, Enum):
    """How an excerpt was assembled."""

    RELEVANT = "relevant"  # keyword-scored paragraphs
    GENERAL = "general"  # no usable keywords or no matches: document prefix
    FALLBACK = "fallback"  # selector failed: document prefix


@dataclass(frozen=True)
class ScoredParagraph:
    position: int
    text: str
    score: int


@dataclass(frozen=True)
class RelevantExcerpt:
    """Bounded excerpt plus diagnostics.

    Attributes:
        body: Text sent to the model, never longer than ``budget``
        kind: How the body was assembled
        budget: Character budget the body was sized against
        keywords: Query terms used for scoring
        matched_sections: Paragraphs that scored above zero
        selected: Paragraphs included in the body, in inclusion order
        head_chars: Characters of document head placed before the
            scored paragraphs (0 when no backfill happened)
    """

    body: str
    kind: ExcerptKind
    budget: int
    keywords: Tuple[str, ...] = ()
    matched_sections: int = 0
    selected: Tuple[ScoredParagraph, ...] = ()
    head_chars: int = 0

    @property
    def partial(self) -> bool:
        """True when the body is a plain document prefix."""
        return self.kind is not ExcerptKind.RELEVANT

    @property
    def trailer(self) -> str:
        labels = {
            ExcerptKind.RELEVANT: "Extracto relevante",
            ExcerptKind.GENERAL: "Documento parcial (consulta general)",
            ExcerptKind.FALLBACK: "Documento parcial (extracto de respaldo)",
        }
        keywords = ", ".join(self.keywords) if self.keywords else "ninguna"
        return (
            f"\n\n[{labels[self.kind]} | palabras clave: {keywords} | "
            f"secciones con coincidencias: {self.matched_sections}]"
        )

    @property
    def text(self) -> str:
        return self.body + self.trailer


class RelevanceSelector:
    """Keyword scorer that builds RelevantExcerpt objects."""

    def __init__(self, stopwords: FrozenSet[str] = STOPWORDS, min_term_length: int = 3):
        """
        Args:
            stopwords: Words never used as query terms
            min_term_length: Shorter tokens are ignored
        """
        self.stopwords = stopwords
        self.min_term_length = min_term_length

    def extract_query_terms(self, question: str) -> Tuple[str, ...]:
        terms: List[str] = []
        for token in question.lower().split():
            token = token.strip(_EDGE_PUNCTUATION)
            if len(token) < self.min_term_length or token in self.stopwords:
                continue
            if token not in terms:
                terms.append(token)
        return tuple(terms)

    @staticmethod
    def split_paragraphs(document_text: str) -> List[Tuple[int, str]]:
        """Blank-line separated paragraphs with their ordinal position."""
        paragraphs = (p.strip() for p in _PARAGRAPH_BREAK.split(document_text))
        return list(enumerate(p for p in paragraphs if p))

    @staticmethod
    def score_paragraph(paragraph: str, terms: Tuple[str, ...]) -> int:
        lowered = paragraph.lower()
        score = 0
        for term in terms:
            occurrences = lowered.count(term)
            if occurrences:
                score += TERM_OCCURRENCE_WEIGHT * occurrences + TERM_PRESENCE_BONUS
        return score

    def rank(self, document_text: str, terms: Tuple[str, ...]) -> List[ScoredParagraph]:
        """Paragraphs with a positive score, best first, ties in document order."""
        scored = [
            ScoredParagraph(position=position, text=text, score=self.score_paragraph(text, terms))
            for position, text in self.split_paragraphs(document_text)
        ]
        # sorted() is stable, so equal scores keep their document order
        return sorted((p for p in scored if p.score > 0), key=lambda p: -p.score)

    def select(self, document_text: str, question: str, budget: int) -> RelevantExcerpt:
        """Build the excerpt for ``question`` within ``budget`` characters."""
        if budget < 1:
            raise ValueError(f"budget must be positive, got {budget}")

        try:
            return self._select(document_text, question, budget)
        except Exception as e:
            logger.error(f"Relevance selection failed, using document prefix: {e}", exc_info=True)
            return RelevantExcerpt(body=document_text[:budget], kind=ExcerptKind.FALLBACK, budget=budget)

    def _select(self, document_text: str, question: str, budget: int) -> RelevantExcerpt:
        terms = self.extract_query_terms(question)
        if not terms:
            return RelevantExcerpt(body=document_text[:budget], kind=ExcerptKind.GENERAL, budget=budget)

        ranked = self.rank(document_text, terms)

        selected: List[ScoredParagraph] = []
        used = 0
        for paragraph in ranked:
            cost = len(paragraph.text) + len(PARAGRAPH_SEPARATOR)
            if used + cost > budget:
                break
            selected.append(paragraph)
            used += cost

        if not selected:
            # No matches, or the best match alone exceeds the budget
            return RelevantExcerpt(
                body=document_text[:budget],
                kind=ExcerptKind.GENERAL,
                budget=budget,
                keywords=terms,
                matched_sections=len(ranked),
            )

        scored_body = PARAGRAPH_SEPARATOR.join(p.text for p in selected)
        head = self._head_backfill(document_text, used, budget)
        body = head + EXCERPT_DIVIDER + scored_body if head else scored_body

        return RelevantExcerpt(
            body=body,
            kind=ExcerptKind.RELEVANT,
            budget=budget,
            keywords=terms,
            matched_sections=len(ranked),
            selected=tuple(selected),
            head_chars=len(head) if head else 0,
        )

    @staticmethod
    def _head_backfill(document_text: str, used: int, budget: int) -> Optional[str]:
        """Document head to put before sparse results, or None."""
        if used * 2 >= budget:
            return None
        room = budget - used - len(EXCERPT_DIVIDER)
        if room <= 0:
            return None
        return document_text[:room] or None


# Shared default instance
_selector = RelevanceSelector()


def select_relevant_excerpt(document_text: str, question: str, budget: int) -> RelevantExcerpt:
    """Module-level shortcut using the default stop-word list."""
    return _selector.select(document_text, question, budget)
