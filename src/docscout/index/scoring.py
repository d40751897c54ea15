"""Weighted relevance scoring of documents against a search query.

Scores are additive: every query field that matches contributes on its own, so
a higher score means a broader or stronger match rather than a probability.
The framework filter is the only criterion that can exclude a document that
would otherwise match.
"""

from __future__ import annotations

from typing import Sequence

from docscout.config import SUPPORTED_FRAMEWORKS
from docscout.errors import FrameworkNotFoundError
from docscout.models import ScannedDocument, SearchQuery
from docscout.utils.text import split_words

BACKEND_FRAMEWORK = "nestjs"
FRONTEND_FRAMEWORK = "nuxt"

FRAMEWORK_MATCH = 10
FRAMEWORK_AGNOSTIC = 5

PHRASE_IN_NAME = 20
PHRASE_IN_DESCRIPTION = 15
PHRASE_IN_KEYWORD = 12
PHRASE_IN_TEXT = 8
PARTIAL_WORDS_MAX = 10

WORD_IN_NAME = 15
WORD_IN_DESCRIPTION = 12
WORD_IN_KEYWORD = 10
WORD_IN_TEXT = 5

PHASE_MATCH = 8
FEATURE_IN_TAGS = 8
FEATURE_IN_NAME = 5
CATEGORY_MATCH = 6
TAG_MATCH = 3
SLICE_IN_NAME = 7
WORKING_CONTEXT_MATCH = 3


def validate_framework(framework: str, supported: Sequence[str] = SUPPORTED_FRAMEWORKS) -> None:
    if framework not in supported:
        raise FrameworkNotFoundError(framework, supported)


def _framework_score(framework: str, doc: ScannedDocument, supported: Sequence[str]) -> int | None:
    """Contribution of the framework filter, or ``None`` when the document is excluded."""
    if framework in doc.tags:
        return FRAMEWORK_MATCH
    if any(tag in supported and tag != framework for tag in doc.tags):
        return None
    if framework in doc.keywords:
        return FRAMEWORK_MATCH
    return FRAMEWORK_AGNOSTIC


def _text_score(text: str, doc: ScannedDocument) -> int:
    phrase = text.lower().strip()
    if not phrase:
        return 0
    words = split_words(phrase)
    name = doc.name.lower()
    description = doc.description.lower()
    keywords = [kw.lower() for kw in doc.keywords]
    blob = f"{name} {description} {' '.join(keywords)}"

    if len(words) == 1:
        return _word_score(words[0], name, description, keywords, blob)

    if phrase in name:
        return PHRASE_IN_NAME
    if phrase in description:
        return PHRASE_IN_DESCRIPTION
    if any(phrase in kw for kw in keywords):
        return PHRASE_IN_KEYWORD
    if phrase in blob:
        return PHRASE_IN_TEXT

    matched = sum(1 for word in words if word in blob)
    if not matched:
        return 0
    # Halves round up.
    return int(PARTIAL_WORDS_MAX * matched / len(words) + 0.5)


def _word_score(word: str, name: str, description: str, keywords: list[str], blob: str) -> int:
    if word in name:
        return WORD_IN_NAME
    if word in description:
        return WORD_IN_DESCRIPTION
    if any(word in kw for kw in keywords):
        return WORD_IN_KEYWORD
    if word in blob:
        return WORD_IN_TEXT
    return 0


def score_document(
    query: SearchQuery,
    doc: ScannedDocument,
    *,
    supported_frameworks: Sequence[str] = SUPPORTED_FRAMEWORKS,
) -> int:
    """Relevance of ``doc`` for ``query``; zero means the document is not a match."""
    score = 0

    if query.framework:
        contribution = _framework_score(query.framework, doc, supported_frameworks)
        if contribution is None:
            return 0
        score += contribution

    if query.text:
        score += _text_score(query.text, doc)

    if query.phase and (query.phase in doc.tags or query.phase in doc.keywords):
        score += PHASE_MATCH

    if query.feature:
        feature = query.feature.lower()
        if any(feature in tag.lower() for tag in doc.tags) or any(feature in kw.lower() for kw in doc.keywords):
            score += FEATURE_IN_TAGS
        elif feature in doc.name.lower():
            score += FEATURE_IN_NAME

    if query.category and doc.category == query.category:
        score += CATEGORY_MATCH

    if query.tags:
        doc_tags = [tag.lower() for tag in doc.tags]
        for requested in query.tags:
            needle = requested.lower()
            if needle and any(needle in tag for tag in doc_tags):
                score += TAG_MATCH

    if query.slice_name and query.slice_name.lower() in doc.name.lower():
        score += SLICE_IN_NAME

    if query.working_on:
        if query.working_on == "api" and BACKEND_FRAMEWORK in doc.tags:
            score += WORKING_CONTEXT_MATCH
        elif query.working_on != "api" and FRONTEND_FRAMEWORK in doc.tags:
            score += WORKING_CONTEXT_MATCH

    return score
