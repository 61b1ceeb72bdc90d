"""Custom exception hierarchy for the retrieval engine."""


class RetrievalEngineError(Exception):
    """Base exception for all retrieval engine errors."""


class ConfigurationError(RetrievalEngineError):
    """Error in system configuration."""


class ModelLoadError(ConfigurationError):
    """Reranker model or tokenizer files are missing or unreadable."""


class CorpusStatsError(RetrievalEngineError):
    """Corpus statistics snapshot is malformed."""


class RetrievalError(RetrievalEngineError):
    """Error fetching candidates from a retrieval backend."""


class RerankError(RetrievalEngineError):
    """Error during candidate reranking."""


class GenerationError(RetrievalEngineError):
    """Error calling the text generation provider."""
