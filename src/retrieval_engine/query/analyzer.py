"""Corpus-aware go/no-go retrieval analysis.

``QueryAnalyzer.analyze`` is a deterministic function of the query and a
corpus statistics snapshot. It classifies intent, scores how well the corpus
can cover the query, extracts structured filters and finally picks a
retrieval strategy.
"""

from __future__ import annotations

import re
from collections.abc import Mapping

from pydantic import ValidationError

from retrieval_engine.config.constants import (
    DOCUMENT_SPECIFIC_TERMS,
    DOCUMENT_TYPE_KEYWORDS,
    KEYWORD_STOPWORDS,
    LEGAL_DOC_MARKERS,
    LEGAL_TERMS,
    TAX_DOC_MARKERS,
    TAX_TERMS,
)
from retrieval_engine.exceptions import CorpusStatsError
from retrieval_engine.models.domain import (
    ComparisonOp,
    DateRange,
    FilteredSearch,
    HybridSearch,
    MultiStage,
    NoRetrieval,
    NumericCondition,
    QueryAnalysis,
    QueryIntent,
    QueryRequirements,
    RelevanceScore,
    RetrievalDecision,
    SearchStage,
    TopK,
    WebSearch,
)
from retrieval_engine.models.schemas import CorpusStats
from retrieval_engine.observability.logger import get_logger
from retrieval_engine.query.lexical import clean_token, has_any, has_phrase

logger = get_logger("query_analyzer")

_ARITHMETIC_RE = re.compile(r"\d\s*[+\-*/]\s*\d")
_YEAR_RE = re.compile(r"\b((?:19|20)\d{2})\b")
_NUMERIC_CONDITION_RE = re.compile(
    r"(?:\b(\w+)\s+)?"
    r"(>=|<=|>|<|=|greater than|more than|exceeds|above|less than|below|at least|at most)"
    r"\s*(\d+(?:\.\d+)?)",
    re.IGNORECASE,
)
_OPERATOR_WORDS = {
    ">=": ComparisonOp.GREATER_THAN_OR_EQUAL,
    "<=": ComparisonOp.LESS_THAN_OR_EQUAL,
    ">": ComparisonOp.GREATER_THAN,
    "<": ComparisonOp.LESS_THAN,
    "=": ComparisonOp.EQUAL,
    "greater than": ComparisonOp.GREATER_THAN,
    "more than": ComparisonOp.GREATER_THAN,
    "exceeds": ComparisonOp.GREATER_THAN,
    "above": ComparisonOp.GREATER_THAN,
    "less than": ComparisonOp.LESS_THAN,
    "below": ComparisonOp.LESS_THAN,
    "at least": ComparisonOp.GREATER_THAN_OR_EQUAL,
    "at most": ComparisonOp.LESS_THAN_OR_EQUAL,
}

# Relevance weights: coverage 40%, domain 40%, term frequency 20%.
W_COVERAGE = 0.4
W_DOMAIN = 0.4
W_FREQUENCY = 0.2

# Strategy thresholds on overall_confidence.
HIGH_CONFIDENCE = 0.7
MEDIUM_CONFIDENCE = 0.5
FILTER_MIN_CONFIDENCE = 0.4
WEB_FALLBACK_CONFIDENCE = 0.2
LOCAL_COVERAGE_THRESHOLD = 0.3
HYBRID_WEB_CONFIDENCE = 0.6


class IntentClassifier:
    """Lexical intent rules, checked from most to least specific."""

    def classify(self, query: str) -> QueryIntent:
        q = query.lower().strip()
        words = len(q.split())

        if self._is_greeting(q, words):
            return QueryIntent.GREETING
        if self._is_acknowledgment(q, words):
            return QueryIntent.SIMPLE_ACKNOWLEDGMENT
        if self._is_meta_question(q):
            return QueryIntent.META_QUESTION
        if self._is_clarification(q, words):
            return QueryIntent.CLARIFICATION
        if self._is_follow_up(q):
            return QueryIntent.FOLLOW_UP_REQUEST
        if self._is_creative_generation(q):
            return QueryIntent.CREATIVE_GENERATION
        if self._is_example_creation(q):
            return QueryIntent.EXAMPLE_CREATION
        if self._is_calculation(q):
            return QueryIntent.CALCULATION
        if self._is_current_events(q):
            return QueryIntent.CURRENT_EVENTS
        if self._is_realtime_info(q):
            return QueryIntent.REAL_TIME_INFO
        if self._is_filtered_search(q):
            return QueryIntent.FILTERED_SEARCH
        if self._is_comparative(q):
            return QueryIntent.COMPARATIVE_ANALYSIS
        if self._is_aggregation(q):
            return QueryIntent.AGGREGATION_QUERY
        if self._is_temporal(q):
            return QueryIntent.TEMPORAL_QUERY
        if self._is_multi_hop(q):
            return QueryIntent.MULTI_HOP_REASONING
        if self._is_document_search(q):
            return QueryIntent.DOCUMENT_SEARCH
        if self._is_definition(q):
            if has_any(q, DOCUMENT_SPECIFIC_TERMS):
                return QueryIntent.DEFINITION_QUERY
            return QueryIntent.GENERAL_KNOWLEDGE
        if words > 3:
            return QueryIntent.FACTUAL_LOOKUP
        return QueryIntent.GENERAL_KNOWLEDGE

    @staticmethod
    def _is_greeting(q: str, words: int) -> bool:
        if words > 5:
            return False
        return has_any(q, (
            "hello", "hi", "hey", "greetings", "good morning", "good afternoon",
            "good evening", "namaste", "thanks", "thank you", "bye", "goodbye",
        ))

    @staticmethod
    def _is_acknowledgment(q: str, words: int) -> bool:
        if words > 3:
            return False
        acks = ("ok", "okay", "yes", "no", "sure", "alright", "got it")
        return any(q == a or q.startswith(f"{a} ") for a in acks)

    @staticmethod
    def _is_meta_question(q: str) -> bool:
        return any(p in q for p in (
            "what is your name", "who are you", "what can you do", "how do you work",
            "what are your capabilities", "what context do you have",
            "what do you know about me", "what have we discussed",
            "what information do you have", "tell me about yourself",
            "what are you", "what's your role",
        ))

    @staticmethod
    def _is_clarification(q: str, words: int) -> bool:
        if words > 10:
            return False
        return any(p in q for p in (
            "what do you mean", "can you explain", "i don't understand", "clarify",
        ))

    @staticmethod
    def _is_follow_up(q: str) -> bool:
        transforms = (
            "show me", "display", "visualize", "format as", "convert to",
            "make it", "do the same", "repeat that", "do it again",
        )
        if not any(q.startswith(t) for t in transforms):
            return False
        return has_any(q, ("the same", "that", "this", "those", "these", "it", "them"))

    @staticmethod
    def _is_creative_generation(q: str) -> bool:
        doc_refs = ("from my", "from the", "from document", "from file", "based on my", "using my")
        if any(r in q for r in doc_refs):
            return False
        patterns = (
            "create fake", "create a fake", "make up", "invent", "imagine",
            "pretend", "fictional", "fabricate", "simulate", "mock up",
            "come up with", "brainstorm", "suggest some", "give me ideas",
            "make a flowchart", "make a diagram", "create a flowchart",
            "create a diagram", "draw a", "make a chart", "create a chart",
            "make an infographic",
        )
        if has_any(q, patterns):
            return True
        if q.startswith(("write a", "write an", "draft a", "draft an", "compose a")):
            return "about my" not in q and "summary of" not in q
        return False

    @staticmethod
    def _is_example_creation(q: str) -> bool:
        return any(p in q for p in (
            "example of", "give me an example", "show me an example", "sample data",
            "show me a sample", "random data", "test data", "mock data", "dummy data",
            "placeholder", "demo data", "fake data", "synthetic data", "for testing",
            "for demo",
        ))

    @staticmethod
    def _is_calculation(q: str) -> bool:
        if has_any(q, ("calculate", "compute", "sum of", "average of", "multiply", "divide")):
            return True
        digits = sum(c.isdigit() for c in q)
        return digits >= 2 and _ARITHMETIC_RE.search(q) is not None

    @staticmethod
    def _is_current_events(q: str) -> bool:
        if "document" in q or "file" in q or has_phrase(q, "my"):
            return False
        return has_any(q, (
            "news", "breaking", "headline", "happening now", "what's new in",
            "what's happening", "announcement", "current events", "recent events",
        ))

    @staticmethod
    def _is_realtime_info(q: str) -> bool:
        return has_any(q, (
            "weather", "stock price", "live score", "right now", "currently",
            "at the moment", "real-time", "up-to-date", "search online", "google",
            "search web", "look up online", "find online", "search internet", "web search",
        ))

    @staticmethod
    def _is_filtered_search(q: str) -> bool:
        if ">" in q or "<" in q:
            return True
        if has_any(q, ("greater than", "less than", "more than", "exceeds", "below", "above")):
            return True
        if has_phrase(q, "where") and has_phrase(q, "and"):
            return True
        return has_phrase(q, "with") and has_phrase(q, "than")

    @staticmethod
    def _is_comparative(q: str) -> bool:
        return has_any(q, (
            "compare", "difference between", "vs", "versus", "better than",
            "worse than", "similar to", "contrast",
        ))

    @staticmethod
    def _is_aggregation(q: str) -> bool:
        return has_any(q, (
            "how many", "count", "total", "sum", "average", "mean", "list all", "show all",
        ))

    @staticmethod
    def _is_temporal(q: str) -> bool:
        if _YEAR_RE.search(q):
            return True
        return has_any(q, (
            "last year", "this year", "last month", "this month", "last week",
            "this week", "recent", "latest", "during",
        ))

    @staticmethod
    def _is_multi_hop(q: str) -> bool:
        conditional = has_phrase(q, "if") and has_phrase(q, "then")
        return conditional or q.count("?") > 1

    @staticmethod
    def _is_document_search(q: str) -> bool:
        patterns = (
            "find", "search", "show me", "get me", "retrieve", "fetch", "locate",
            "look up", "pull up", "bring up",
        )
        return any(q.startswith(p) or f" {p} " in q for p in patterns)

    @staticmethod
    def _is_definition(q: str) -> bool:
        if has_phrase(q, "you") or has_phrase(q, "your"):
            return False
        return q.startswith(("what is", "what are", "define", "explain", "tell me about"))


class DomainMatcher:
    """Scores how well the corpus snapshot can answer a query."""

    def check_relevance(self, query: str, stats: CorpusStats) -> RelevanceScore:
        keywords = self.extract_keywords(query)
        if not keywords:
            return RelevanceScore(0.0, 0.0, 0.0, 0.0)

        matching = sum(1 for k in keywords if k in stats.vocabulary)
        corpus_coverage = matching / len(keywords)

        frequencies = [stats.domain_terms[k] for k in keywords if k in stats.domain_terms]
        term_frequency = sum(frequencies) / len(frequencies) if frequencies else 0.0

        domain_match = self._domain_match(query, stats)

        overall = (
            W_COVERAGE * corpus_coverage
            + W_DOMAIN * domain_match
            + W_FREQUENCY * term_frequency
        )
        return RelevanceScore(
            corpus_coverage=corpus_coverage,
            domain_match=domain_match,
            term_frequency=term_frequency,
            overall_confidence=max(0.0, min(1.0, overall)),
        )

    @staticmethod
    def extract_keywords(query: str) -> list[str]:
        keywords = []
        for token in query.lower().split():
            token = clean_token(token)
            if len(token) > 2 and token not in KEYWORD_STOPWORDS:
                keywords.append(token)
        return keywords

    @staticmethod
    def _domain_match(query: str, stats: CorpusStats) -> float:
        if not stats.document_types:
            return 0.5  # unknown corpus domain

        q = query.lower()
        doc_types = [t.lower() for t in stats.document_types]
        has_legal_docs = any(m in t for t in doc_types for m in LEGAL_DOC_MARKERS)
        has_tax_docs = any(m in t for t in doc_types for m in TAX_DOC_MARKERS)
        query_is_legal = has_any(q, LEGAL_TERMS)
        query_is_tax = has_any(q, TAX_TERMS)

        if (query_is_legal and has_legal_docs) or (query_is_tax and has_tax_docs):
            return 0.9
        if query_is_legal or query_is_tax:
            return 0.1
        return 0.5


class RequirementExtractor:
    """Pulls structured filters out of the query text."""

    def extract(self, query: str) -> QueryRequirements:
        numeric_conditions = self.extract_numeric_conditions(query)
        date_range = self.extract_date_range(query)
        q = query.lower()
        needs_filtering = bool(
            numeric_conditions
            or date_range is not None
            or has_phrase(q, "where")
            or ">" in q
            or "<" in q
        )
        return QueryRequirements(
            needs_filtering=needs_filtering,
            date_range=date_range,
            numeric_conditions=numeric_conditions,
            entity_references=self.extract_entities(query),
            document_type_hints=self.extract_document_types(query),
        )

    @staticmethod
    def extract_date_range(query: str) -> DateRange | None:
        years = sorted({int(y) for y in _YEAR_RE.findall(query)})
        if not years:
            return None
        return DateRange(start=f"{years[0]}-01-01", end=f"{years[-1]}-12-31")

    @staticmethod
    def extract_numeric_conditions(query: str) -> list[NumericCondition]:
        conditions = []
        for match in _NUMERIC_CONDITION_RE.finditer(query):
            field_word, op_text, number = match.groups()
            if field_word is None or field_word.lower() in KEYWORD_STOPWORDS:
                field_word = "value"
            conditions.append(
                NumericCondition(
                    field=field_word.lower(),
                    operator=_OPERATOR_WORDS[op_text.lower()],
                    value=float(number),
                )
            )
        return conditions

    @staticmethod
    def extract_entities(query: str) -> list[str]:
        entities: list[str] = []
        for token in query.split():
            token = clean_token(token)
            if (
                len(token) > 2
                and token[0].isupper()
                and token.lower() not in KEYWORD_STOPWORDS
                and token not in entities
            ):
                entities.append(token)
        return entities

    @staticmethod
    def extract_document_types(query: str) -> list[str]:
        q = query.lower()
        return [doc_type for keyword, doc_type in DOCUMENT_TYPE_KEYWORDS if has_phrase(q, keyword)]


class StrategySelector:
    """Maps (intent, relevance, requirements) onto a retrieval decision."""

    def decide(
        self,
        query: str,
        intent: QueryIntent,
        relevance: RelevanceScore,
        requirements: QueryRequirements,
        stats: CorpusStats,
    ) -> RetrievalDecision:
        conf = relevance.overall_confidence

        if intent in (QueryIntent.GREETING, QueryIntent.SIMPLE_ACKNOWLEDGMENT):
            return self._no_retrieval("Greeting or acknowledgment - no documents needed", False)
        if intent in (QueryIntent.META_QUESTION, QueryIntent.CLARIFICATION):
            return self._no_retrieval("Meta question about assistant capabilities", True)
        if intent is QueryIntent.FOLLOW_UP_REQUEST:
            return self._no_retrieval(
                "Follow-up request referencing previous context - no new documents needed", True
            )
        if intent is QueryIntent.CALCULATION:
            return self._no_retrieval("Mathematical calculation - LLM can answer directly", True)
        if intent in (QueryIntent.CREATIVE_GENERATION, QueryIntent.EXAMPLE_CREATION):
            return self._no_retrieval(
                "Creative/generative query - LLM can create content without documents", True
            )

        if intent is QueryIntent.GENERAL_KNOWLEDGE:
            if relevance.corpus_coverage > LOCAL_COVERAGE_THRESHOLD or stats.total_docs > 0:
                k = 5 if conf > MEDIUM_CONFIDENCE else 10
                return self._top_k(k, max(conf, 0.6), "General query - searching local documents first")
            if conf < WEB_FALLBACK_CONFIDENCE:
                return self._web_search(
                    query,
                    "No local documents or query terms not in vocabulary - searching web",
                    "Will search local documents if web search fails",
                )
            return self._top_k(10, max(conf, 0.5), "General query - checking local documents")

        if intent in (QueryIntent.FACTUAL_LOOKUP, QueryIntent.DEFINITION_QUERY):
            if relevance.corpus_coverage > LOCAL_COVERAGE_THRESHOLD or stats.total_docs > 0:
                k = 5 if conf > HIGH_CONFIDENCE else 10
                return self._top_k(k, max(conf, 0.6), "Factual lookup in local documents")
            return self._web_search(
                query,
                "No local documents - searching web for factual information",
                "LLM can provide general knowledge if web search fails",
            )

        if intent is QueryIntent.DOCUMENT_SEARCH:
            if stats.total_docs > 0:
                k = 10 if conf > 0.6 else 20
                return self._top_k(k, max(conf, 0.6), "Searching indexed documents")
            return self._no_retrieval_with_fallback(
                "No documents indexed in this scope",
                "Index documents before searching.",
            )

        if intent is QueryIntent.FILTERED_SEARCH:
            if conf < FILTER_MIN_CONFIDENCE:
                return self._no_retrieval_with_fallback(
                    "Filtered search but low corpus relevance",
                    "The documents may not have the required fields or data.",
                )
            return self._filtered_search(requirements, conf)

        if intent is QueryIntent.COMPARATIVE_ANALYSIS:
            if stats.total_docs < 2:
                return self._no_retrieval_with_fallback(
                    "Comparative analysis needs at least 2 documents",
                    "Add more documents to enable comparisons.",
                )
            return self._multi_stage(query, conf)

        if intent is QueryIntent.AGGREGATION_QUERY:
            if conf < MEDIUM_CONFIDENCE:
                return self._no_retrieval_with_fallback(
                    "Aggregation query but low corpus relevance",
                    "The documents may not contain the data needed for aggregation.",
                )
            k = int(min(stats.total_docs * 0.5, 100.0))
            return RetrievalDecision(
                should_retrieve=True,
                strategy=FilteredSearch(
                    initial_k=max(k, 20), filters=("Aggregate after retrieval",)
                ),
                estimated_docs_needed=k,
                confidence=conf,
                reasoning="Aggregation requires retrieving multiple documents",
                fallback_plan="Results will be aggregated across all matching documents",
            )

        if intent is QueryIntent.TEMPORAL_QUERY:
            if requirements.date_range is not None:
                return self._filtered_search(requirements, conf)
            return self._top_k(15, conf, "Temporal query without explicit dates")

        if intent is QueryIntent.MULTI_HOP_REASONING:
            if conf < MEDIUM_CONFIDENCE:
                return self._no_retrieval_with_fallback(
                    "Multi-hop reasoning query but unclear corpus relevance",
                    "Simplify the question or verify the documents contain the needed information.",
                )
            return self._multi_stage(query, conf)

        # CURRENT_EVENTS / REAL_TIME_INFO
        if conf > HYBRID_WEB_CONFIDENCE:
            return RetrievalDecision(
                should_retrieve=True,
                strategy=HybridSearch(local_k=5, web_results=5),
                estimated_docs_needed=10,
                confidence=0.9,
                reasoning="Hybrid search: combining local documents with current web information",
            )
        return RetrievalDecision(
            should_retrieve=True,
            strategy=WebSearch(query=query, max_results=10),
            estimated_docs_needed=10,
            confidence=0.95,
            reasoning="Web search needed for current/real-time information",
        )

    @staticmethod
    def _no_retrieval(reason: str, llm_can_answer: bool) -> RetrievalDecision:
        return RetrievalDecision(
            should_retrieve=False,
            strategy=NoRetrieval(reason=reason, llm_can_answer=llm_can_answer),
            estimated_docs_needed=0,
            confidence=1.0,
            reasoning=reason,
        )

    @staticmethod
    def _no_retrieval_with_fallback(reason: str, fallback: str) -> RetrievalDecision:
        return RetrievalDecision(
            should_retrieve=False,
            strategy=NoRetrieval(reason=reason, llm_can_answer=False),
            estimated_docs_needed=0,
            confidence=0.8,
            reasoning=reason,
            fallback_plan=fallback,
        )

    @staticmethod
    def _top_k(k: int, confidence: float, reason: str) -> RetrievalDecision:
        return RetrievalDecision(
            should_retrieve=True,
            strategy=TopK(k=k),
            estimated_docs_needed=k,
            confidence=confidence,
            reasoning=f"Simple top-{k} retrieval: {reason}",
        )

    @staticmethod
    def _web_search(query: str, reason: str, fallback: str) -> RetrievalDecision:
        return RetrievalDecision(
            should_retrieve=True,
            strategy=WebSearch(query=query, max_results=10),
            estimated_docs_needed=10,
            confidence=0.85,
            reasoning=reason,
            fallback_plan=fallback,
        )

    @staticmethod
    def _filtered_search(requirements: QueryRequirements, confidence: float) -> RetrievalDecision:
        filters = []
        if requirements.date_range is not None:
            filters.append(
                f"Date range: {requirements.date_range.start} to {requirements.date_range.end}"
            )
        for cond in requirements.numeric_conditions:
            filters.append(f"{cond.field} {cond.operator.value} {cond.value:g}")

        initial_k = 50 if filters else 20
        return RetrievalDecision(
            should_retrieve=True,
            strategy=FilteredSearch(initial_k=initial_k, filters=tuple(filters)),
            estimated_docs_needed=initial_k,
            confidence=confidence,
            reasoning=f"Filtered search with {len(filters)} conditions",
            fallback_plan="Results will be filtered after retrieval",
        )

    @staticmethod
    def _multi_stage(query: str, confidence: float) -> RetrievalDecision:
        stages = (
            SearchStage("Initial broad search", query, 20),
            SearchStage("Refined search on results", "Refine based on initial results", 10),
        )
        return RetrievalDecision(
            should_retrieve=True,
            strategy=MultiStage(stages=stages),
            estimated_docs_needed=30,
            confidence=confidence,
            reasoning=f"Multi-stage retrieval with {len(stages)} stages",
            fallback_plan="Multiple search iterations for complex query",
        )


class QueryAnalyzer:
    def __init__(self) -> None:
        self._intents = IntentClassifier()
        self._domain = DomainMatcher()
        self._requirements = RequirementExtractor()
        self._selector = StrategySelector()

    def analyze(self, query: str, corpus_stats: CorpusStats | Mapping) -> QueryAnalysis:
        stats = self._coerce_stats(corpus_stats)

        intent = self._intents.classify(query)
        relevance = self._domain.check_relevance(query, stats)
        requirements = self._requirements.extract(query)
        decision = self._selector.decide(query, intent, relevance, requirements, stats)

        logger.debug(
            "query_analyzed",
            intent=intent.value,
            confidence=round(relevance.overall_confidence, 4),
            should_retrieve=decision.should_retrieve,
            strategy=type(decision.strategy).__name__,
        )
        return QueryAnalysis(
            intent=intent,
            relevance=relevance,
            requirements=requirements,
            decision=decision,
        )

    @staticmethod
    def _coerce_stats(corpus_stats: CorpusStats | Mapping) -> CorpusStats:
        if isinstance(corpus_stats, CorpusStats):
            return corpus_stats
        if not isinstance(corpus_stats, Mapping):
            raise CorpusStatsError(
                f"Expected CorpusStats or mapping, got {type(corpus_stats).__name__}"
            )
        try:
            return CorpusStats.model_validate(dict(corpus_stats))
        except ValidationError as e:
            raise CorpusStatsError(f"Malformed corpus statistics: {e}") from e
