"""Two-layer intent classification: keyword rules, then embedding disambiguation."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from intent_router.config import IntentRoutingConfig
from intent_router.errors import ClassificationDegraded
from intent_router.intents.rules import (
    DEFAULT_RULES,
    KeywordRule,
    classify_with_rules,
    detect_rule_matches,
)
from intent_router.llm.service import LanguageModelService
from intent_router.retrieval.similarity import cosine_similarity, similarity_to_confidence
from intent_router.types import ClassificationResult, Intent, RoutingPath

logger = logging.getLogger(__name__)

# Short, stable descriptions whose embeddings represent each routable intent.
INTENT_PROTOTYPES: tuple[tuple[Intent, str], ...] = (
    (Intent.WORLD_TIME, "user asks for current time in a specific city"),
    (
        Intent.RUNBOOK_SEARCH,
        "user describes an incident and wants a runbook or troubleshooting steps",
    ),
    (
        Intent.GENERAL_OPS_ADVICE,
        "user asks general production operations advice for AI systems",
    ),
)


@dataclass(frozen=True, slots=True)
class PrototypeVector:
    intent: Intent
    embedding: tuple[float, ...]


@dataclass(frozen=True, slots=True)
class EmbeddingScore:
    intent: Intent
    confidence: float


def merge_embedding_decision(
    rules: ClassificationResult,
    ranked: list[EmbeddingScore],
    config: IntentRoutingConfig,
) -> ClassificationResult:
    """Combine the rule result with ranked embedding confidences.

    Order of checks:

    1. top confidence below `embedding_confidence_threshold` -> rule result;
    2. top-2 margin below `ambiguity_margin` -> GeneralOpsAdvice at
       `ambiguous_fallback_confidence`;
    3. rules name a different known intent with confidence at least
       `rule_override_threshold` -> rule result;
    4. otherwise the embedding top choice.

    Every outcome carries `RULES_PLUS_EMBEDDINGS`.
    """

    path = RoutingPath.RULES_PLUS_EMBEDDINGS
    if not ranked:
        return ClassificationResult(rules.intent, rules.confidence, RoutingPath.RULES_ONLY)

    top = ranked[0]
    second_confidence = ranked[1].confidence if len(ranked) > 1 else 0.0
    margin = top.confidence - second_confidence

    if top.confidence < config.embedding_confidence_threshold:
        logger.info(
            "Embedding confidence too low: %.2f < %.2f",
            top.confidence,
            config.embedding_confidence_threshold,
        )
        return ClassificationResult(rules.intent, rules.confidence, path)

    if margin < config.ambiguity_margin:
        logger.info(
            "Embedding ambiguity too high: margin %.2f < %.2f", margin, config.ambiguity_margin
        )
        return ClassificationResult(
            Intent.GENERAL_OPS_ADVICE, config.ambiguous_fallback_confidence, path
        )

    if (
        rules.intent is not Intent.UNKNOWN
        and rules.intent is not top.intent
        and rules.confidence >= config.rule_override_threshold
    ):
        logger.info(
            "Rules override embeddings: rules=%s (%.2f) embed=%s (%.2f)",
            rules.intent.value,
            rules.confidence,
            top.intent.value,
            top.confidence,
        )
        return ClassificationResult(rules.intent, rules.confidence, path)

    logger.info("Embedding routing selected: %s (%.2f)", top.intent.value, top.confidence)
    return ClassificationResult(top.intent, top.confidence, path)


class IntentClassifier:
    """Classifies one request; shares only the prototype cache across requests."""

    def __init__(
        self,
        service: LanguageModelService,
        config: IntentRoutingConfig | None = None,
        *,
        rules: tuple[KeywordRule, ...] = DEFAULT_RULES,
        prototypes: tuple[tuple[Intent, str], ...] = INTENT_PROTOTYPES,
    ) -> None:
        self.service = service
        self.config = config or IntentRoutingConfig()
        self.rules = rules
        self.prototypes = prototypes
        self._prototype_vectors: dict[Intent, PrototypeVector] = {}
        self._warm_lock = asyncio.Lock()

    @property
    def prototype_vectors(self) -> tuple[PrototypeVector, ...]:
        return tuple(self._prototype_vectors.values())

    def detect_rule_matches(self, text: str) -> set[Intent]:
        return detect_rule_matches(text, self.rules)

    def classify_with_rules(self, text: str) -> ClassificationResult:
        return classify_with_rules(text, self.rules)

    async def classify(self, text: str) -> ClassificationResult:
        """Classify `text`; never raises for backend problems."""

        rules = self.classify_with_rules(text)
        if rules.confidence >= self.config.rules_only_threshold:
            logger.info(
                "Rules-only routing selected: %s (%.2f)", rules.intent.value, rules.confidence
            )
            return rules

        if not self.config.use_embedding_disambiguation:
            logger.info(
                "Embeddings disabled; using rules: %s (%.2f)", rules.intent.value, rules.confidence
            )
            return rules

        try:
            ranked = await self._rank_by_embedding(text)
        except Exception:
            logger.warning("Embedding-based routing failed; falling back to rules.", exc_info=True)
            return rules

        return merge_embedding_decision(rules, ranked, self.config)

    async def warm_up(self) -> None:
        """Embed each prototype once; later calls are no-ops."""

        if len(self._prototype_vectors) == len(self.prototypes):
            return

        async with self._warm_lock:
            for intent, description in self.prototypes:
                if intent in self._prototype_vectors:
                    continue
                vector = await self.service.embed(description)
                if not vector:
                    raise ClassificationDegraded(f"No embedding for {intent.value} prototype")
                self._prototype_vectors[intent] = PrototypeVector(intent, tuple(vector))

    def score(self, query_vector: list[float]) -> list[EmbeddingScore]:
        """Rank cached prototypes by rescaled cosine confidence, best first."""

        scores = [
            EmbeddingScore(
                intent=prototype.intent,
                confidence=similarity_to_confidence(
                    cosine_similarity(prototype.embedding, query_vector)
                ),
            )
            for prototype in self._prototype_vectors.values()
        ]
        return sorted(scores, key=lambda item: item.confidence, reverse=True)

    async def _rank_by_embedding(self, text: str) -> list[EmbeddingScore]:
        await self.warm_up()
        query_vector = await self.service.embed(text)
        if not query_vector:
            raise ClassificationDegraded("No embedding for request")
        return self.score(query_vector)
