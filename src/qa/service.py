"""Question answering and refactor suggestion flows.

Both flows share the same shape:

1. Validate the request (blank question or source id -> InvalidRequestError)
2. Embed the question (failure -> retrieval without a query vector)
3. Hybrid search over the source's chunks
4. Generate with the LLM from numbered evidence blocks
5. Post-process against the evidence (citations / grounding)
6. Record answered questions in the QA history (ask flow only)

LLM failures never surface to the caller: the ask flow answers with the
insufficient-evidence text and the refactor flow falls back to deterministic
suggestions. History write failures are logged and never fail the request.

Author: Hay Hoffman
"""

import logging
from collections.abc import Callable, Sequence

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import BaseMessage

from models.chunk import Chunk, Citation
from models.history import QAHistoryEntry
from models.qa import AskResponse, RefactorResponse
from models.refactor import RefactorSuggestion
from prompts.answer_prompt import build_answer_messages
from prompts.refactor_prompt import build_refactor_messages
from settings import (
    ANSWER_MODEL,
    DEFAULT_TOP_K,
    HISTORY_LIMIT,
    INSUFFICIENT_EVIDENCE_ANSWER,
    REFACTOR_TOP_K,
)
from src.exceptions import InvalidRequestError
from src.llm.llm import get_cached_llm, initialize_llm_cache
from src.llm.workers import generate_text
from src.qa.citations import extract_citations, format_retrieved_snippets
from src.qa.history import QAHistoryStore
from src.qa.refactor import build_fallback_refactor_suggestions, parse_refactor_suggestions
from src.retrieval.hybrid_search import HybridSearcher
from src.retrieval.repository import ChunkRepository

logger = logging.getLogger(__name__)

__all__ = ["QAService", "QueryEmbedderFn"]

QueryEmbedderFn = Callable[[str], Sequence[float]]

NO_CHUNKS_NOTE = "No indexed chunks were retrieved for this question."
NO_CITATIONS_NOTE = "No citable chunks were available for this answer."
GENERATION_FAILED_ANSWER = (
    f"{INSUFFICIENT_EVIDENCE_ANSWER} Retrieved snippets are provided below for manual verification."
)
NO_REFACTOR_CHUNKS_NOTE = "No indexed chunks were retrieved for refactor suggestions."
NO_REFACTOR_SNIPPETS_NOTE = "No citable snippets were available for refactor suggestions."


def _require_text(value: str | None, field: str) -> str:
    normalized = value.strip() if isinstance(value, str) else ""
    if not normalized:
        raise InvalidRequestError(f"{field} is required", field=field)
    return normalized


class QAService:
    """Evidence-grounded answers and refactor suggestions over indexed chunks.

    Attributes:
        searcher: Hybrid retrieval orchestrator over the repository
        embed_query: Question embedder (None disables vector search)
        history: QA history store (None disables recording)
    """

    def __init__(
        self,
        repository: ChunkRepository,
        llm: BaseChatModel | None = None,
        embed_query: QueryEmbedderFn | None = None,
        model: str = ANSWER_MODEL,
        history: QAHistoryStore | None = None,
    ):
        """Initialize the service.

        Args:
            repository: Chunk storage
            llm: Chat model; created from settings on first use when omitted
            embed_query: Callable mapping a question to its embedding
            model: Model name used when the LLM is created lazily
            history: Store that records answered questions
        """
        self.searcher = HybridSearcher(repository)
        self.embed_query = embed_query
        self.model = model
        self._llm = llm
        self.history = history

    def _get_llm(self) -> BaseChatModel:
        if self._llm is None:
            try:
                self._llm = get_cached_llm(self.model)
            except ValueError:
                initialize_llm_cache([self.model])
                self._llm = get_cached_llm(self.model)
        return self._llm

    def _generate(self, messages: list[BaseMessage]) -> str:
        return generate_text(messages, self._get_llm())

    def _embed(self, question: str) -> Sequence[float] | None:
        if self.embed_query is None:
            return None
        try:
            return self.embed_query(question)
        except Exception as e:
            logger.error(f"Query embedding failed, continuing without vector search: {e}")
            return None

    def _retrieve(self, source_id: str, question: str, top_k: int) -> list[Chunk]:
        query_vector = self._embed(question)
        return self.searcher.search(source_id, question, query_vector, top_k)

    def _record_history(self, source_id: str, question: str, answer: str, citations: list[Citation]) -> None:
        if self.history is None:
            return
        try:
            self.history.record_qa(source_id, question, answer, citations)
        except Exception as e:
            logger.error(f"Failed to save QA history for source {source_id}: {e}")

    def answer_question(self, source_id: str, question: str) -> AskResponse:
        """Answer a question from the source's indexed code.

        Args:
            source_id: Source to search
            question: Question text

        Returns:
            Answer with citations and the retrieved evidence

        Raises:
            InvalidRequestError: If question or source_id is blank
        """
        question = _require_text(question, "question")
        source_id = _require_text(source_id, "source_id")

        chunks = self._retrieve(source_id, question, DEFAULT_TOP_K)
        if not chunks:
            logger.warning(f"No evidence for question on source {source_id}")
            return AskResponse(
                answer=INSUFFICIENT_EVIDENCE_ANSWER,
                citations=[],
                retrieved_snippets=[],
                note_when_insufficient_evidence=NO_CHUNKS_NOTE,
            )

        try:
            answer = self._generate(build_answer_messages(question, chunks))
        except Exception as e:
            logger.error(f"LLM answer generation failed: {e}", exc_info=True)
            answer = GENERATION_FAILED_ANSWER

        citations = extract_citations(answer, chunks)
        response = AskResponse(
            answer=answer,
            citations=citations,
            retrieved_snippets=format_retrieved_snippets(chunks),
        )
        if not citations:
            response.note_when_insufficient_evidence = NO_CITATIONS_NOTE

        self._record_history(source_id, question, answer, citations)

        logger.info(f"[SUCCESS] Answered question with {len(citations)} citations")
        return response

    def suggest_refactors(self, source_id: str, question: str) -> RefactorResponse:
        """Propose grounded refactor suggestions for the code relevant to a question.

        Raises:
            InvalidRequestError: If question or source_id is blank
        """
        question = _require_text(question, "question")
        source_id = _require_text(source_id, "source_id")

        chunks = self._retrieve(source_id, question, REFACTOR_TOP_K)
        if not chunks:
            return RefactorResponse(
                suggestions=[],
                note_when_insufficient_evidence=NO_REFACTOR_CHUNKS_NOTE,
            )

        snippets = format_retrieved_snippets(chunks)
        suggestions: list[RefactorSuggestion] = []

        try:
            raw = self._generate(build_refactor_messages(question, chunks))
            suggestions = parse_refactor_suggestions(raw, snippets)
        except Exception as e:
            logger.error(f"Refactor suggestion generation failed: {e}", exc_info=True)

        if not suggestions:
            logger.info("Using deterministic fallback refactor suggestions")
            suggestions = build_fallback_refactor_suggestions(snippets, question)

        response = RefactorResponse(suggestions=suggestions)
        if not suggestions:
            response.note_when_insufficient_evidence = NO_REFACTOR_SNIPPETS_NOTE

        logger.info(f"[SUCCESS] Produced {len(suggestions)} refactor suggestions")
        return response

    def recent_history(self, source_id: str, limit: int = HISTORY_LIMIT) -> list[QAHistoryEntry]:
        """List the most recent answered questions of a source, newest first.

        Raises:
            InvalidRequestError: If source_id is blank
        """
        source_id = _require_text(source_id, "source_id")
        if self.history is None:
            return []
        return self.history.recent_history(source_id, limit)
