"""
Query expansion for broad questions.

A fixed lexicon maps topic phrases to Sanskrit and English terms used in
the translations. If a query mentions a topic (or one of its terms), the
topic's terms are appended so the lexical pass can match passages that
use the technical vocabulary instead of the question's wording.
"""
from typing import Dict, Tuple, Mapping, Optional
from types import MappingProxyType
import re

EXPANSIONS: Mapping[str, Tuple[str, ...]] = MappingProxyType({
    'meaning of life': ('purpose', 'telos', 'moksha', 'puruṣārtha', 'artha', 'dharma', 'kāma'),
    'self': ('ātman', 'self', 'soul', 'puruṣa'),
    'god': ('brahman', 'īśvara', 'deva', 'paramātman'),
    'duty': ('dharma', 'svadharma', 'karma-yoga'),
    'desireless action': ('niṣkāma karma', 'karma-yoga', 'anāśritaḥ karma-phalam'),
    'liberation': ('moksha', 'mukti', 'nirvāṇa'),
    'knowledge': ('jñāna', 'vidyā', 'brahma-vidyā'),
    'devotion': ('bhakti', 'śraddhā'),
    'action': ('karma', 'karma-yoga'),
})


def _contains_term(text: str, term: str) -> bool:
    """Whole-word (or whole-phrase) containment, case already folded."""
    pattern = r'(?<!\w)' + re.escape(term.lower()) + r'(?!\w)'
    return re.search(pattern, text) is not None


class QueryExpander:
    """Appends topic terms to queries that touch a known topic."""

    def __init__(self, expansions: Optional[Mapping[str, Tuple[str, ...]]] = None):
        self.expansions = EXPANSIONS if expansions is None else MappingProxyType(dict(expansions))

    def matched_topics(self, query: str) -> Tuple[str, ...]:
        """Topics whose phrase or terms occur anywhere in the query, plurals and compounds included."""
        lower = query.lower()
        return tuple(
            topic for topic, terms in self.expansions.items()
            if topic.lower() in lower or any(t.lower() in lower for t in terms)
        )

    def expand(self, query: str) -> str:
        """
        Expand a query.

        Args:
            query: Original query text

        Returns:
            The query followed by the matched topics' terms, or the query
            unchanged when no topic matches. Terms already in the query are
            not repeated, so expanding twice adds nothing new for topics
            that were already expanded.
        """
        lower = query.lower()
        added: Dict[str, None] = {}

        for topic in self.matched_topics(query):
            for term in self.expansions[topic]:
                if not _contains_term(lower, term):
                    added.setdefault(term, None)

        if not added:
            return query
        return f"{query} {' '.join(added)}"


_default_expander = QueryExpander()


def expand_query(query: str) -> str:
    """Expand a query with the built-in lexicon."""
    return _default_expander.expand(query)
