"""
TF-IDF relevance scoring of a user's past turns against the current message.

The corpus is rebuilt for every request from the query plus that user's own history,
so IDF weights are local to the user. Scores are a soft ranking signal only.
"""

from typing import List, Sequence, Tuple

import numpy as np
from sklearn.feature_extraction.text import CountVectorizer

from ..models.core import ConversationTurn
from ..utils.logging_config import get_logger
from .text_normalizer import normalize

logger = get_logger(__name__)


def _pre_tokenized(tokens: List[str]) -> List[str]:
    return tokens


def tfidf_scores(documents: Sequence[List[str]]) -> np.ndarray:
    """Score documents 1..N against document 0 of a tokenized corpus.

    Term weights use the raw term count as tf and ``1 + ln(N / (1 + df))`` as idf,
    where N counts every document including the query. The score of a document is
    the sum over query tokens of tf * idf.

    Args:
        documents: Normalized token lists, query first

    Returns:
        Array with one non-negative score per document after the first
    """
    if len(documents) < 2:
        return np.zeros(0)
    if not any(documents):
        return np.zeros(len(documents) - 1)

    vectorizer = CountVectorizer(analyzer=_pre_tokenized, token_pattern=None, lowercase=False)
    counts = vectorizer.fit_transform(documents)

    n_docs = counts.shape[0]
    doc_freq = np.asarray((counts > 0).sum(axis=0)).ravel()
    idf = 1.0 + np.log(n_docs / (1.0 + doc_freq))

    query_weights = counts[0].toarray().ravel() * idf
    return np.asarray(counts[1:] @ query_weights).ravel()


class RelevanceScorer:
    """Lexical relevance of historical turns to a query."""

    def score(self, query: str, turns: Sequence[ConversationTurn]) -> List[float]:
        """Return one score per turn, in input order."""
        if not turns:
            return []
        documents = [normalize(query)] + [normalize(turn.text) for turn in turns]
        scores = tfidf_scores(documents)
        logger.debug(f'Scored {len(turns)} turns against query ({len(documents[0])} query terms)')
        return [float(s) for s in scores]

    def rank(self, query: str, turns: Sequence[ConversationTurn]) -> List[Tuple[ConversationTurn, float]]:
        """Turns paired with their scores, best first. Equal scores keep history order."""
        scored = list(zip(turns, self.score(query, turns)))
        scored.sort(key=lambda pair: pair[1], reverse=True)
        return scored
