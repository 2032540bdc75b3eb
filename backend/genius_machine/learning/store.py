"""
Learning store: append-only history of run quality.

Records are never rewritten. Readers rank configurations per domain from
whatever has been appended so far.
"""

import hashlib
import json
import logging
import threading
import uuid
from abc import ABC, abstractmethod
from collections import defaultdict
from datetime import datetime, timezone
from pathlib import Path
from statistics import mean
from typing import Dict, List, Optional

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from .domain import assess_complexity
from ..engine.models import CircuitType, QualityVector, RunConfiguration
from ..engine.text import word_set, jaccard

logger = logging.getLogger(__name__)


class LearningRecord(BaseModel):
    """One recorded run"""
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    question: str
    question_hash: str
    domain: str
    complexity: int
    circuit_type: CircuitType
    processing_depth: int
    enhanced_mode: bool
    archetype_ids: List[str] = Field(default_factory=list)
    layers_processed: Optional[int] = None
    quality: QualityVector
    tags: List[str] = Field(default_factory=list)

    @property
    def signature(self) -> str:
        return configuration_signature(self.circuit_type, self.enhanced_mode, self.processing_depth)


class RankedConfiguration(BaseModel):
    """Aggregated performance of one configuration in a domain"""
    signature: str
    circuit_type: CircuitType
    processing_depth: int
    enhanced_mode: bool
    average_score: float
    sample_size: int
    confidence: float


def configuration_signature(circuit_type: CircuitType, enhanced_mode: bool, depth: int) -> str:
    mode = "enhanced" if enhanced_mode else "standard"
    return f"{CircuitType(circuit_type).value}-{mode}-depth{depth}"


def question_hash(question: str) -> str:
    return hashlib.sha256(question.strip().lower().encode("utf-8")).hexdigest()[:16]


def learning_tags(vector: QualityVector, configuration: RunConfiguration, domain: str, complexity: int) -> List[str]:
    tags = []
    if vector.overall >= 8:
        tags.append("high-quality")
    if vector.overall <= 4:
        tags.append("low-quality")
    if vector.breakthrough_potential >= 7:
        tags.append("breakthrough")
    if vector.novelty >= 7:
        tags.append("novel")
    if configuration.enhanced_mode:
        tags.append("enhanced")
    if configuration.processing_depth >= 5:
        tags.append("deep-processing")
    tags.append(f"domain-{domain.lower()}")
    tags.append(f"complexity-{complexity}")
    return tags


class LearningStore(ABC):
    """Append/read interface shared by all store backends"""

    def __init__(self, max_records: int = 10000, min_samples: int = 3):
        self.max_records = max_records
        self.min_samples = min_samples

    @abstractmethod
    def _write(self, record: LearningRecord):
        pass

    @abstractmethod
    def records(self, limit: Optional[int] = None) -> List[LearningRecord]:
        """Most recent records, oldest first"""
        pass

    def append(
        self,
        vector: QualityVector,
        configuration: RunConfiguration,
        domain: str,
        layers_processed: Optional[int] = None,
    ) -> LearningRecord:
        """
        Append a quality vector for a finished run.

        Args:
            vector: Quality vector from the scorer
            configuration: Frozen run configuration
            domain: Detected question domain
            layers_processed: Layers the run actually completed

        Returns:
            The stored record
        """
        complexity = assess_complexity(configuration.question)
        record = LearningRecord(
            question=configuration.question,
            question_hash=question_hash(configuration.question),
            domain=domain,
            complexity=complexity,
            circuit_type=configuration.circuit_type,
            processing_depth=configuration.processing_depth,
            enhanced_mode=configuration.enhanced_mode,
            archetype_ids=configuration.archetype_ids,
            layers_processed=layers_processed,
            quality=vector,
            tags=learning_tags(vector, configuration, domain, complexity),
        )
        self._write(record)
        logger.info(f"Recorded run quality {vector.overall:.2f} for domain {domain} ({record.signature})")
        return record

    def query_best_configurations(self, domain: str, limit: int = 3) -> List[RankedConfiguration]:
        """
        Rank configurations that performed best for a domain.

        Args:
            domain: Domain name (case-insensitive)
            limit: Maximum entries returned

        Returns:
            Configurations with at least min_samples records, best first
        """
        groups: Dict[str, List[LearningRecord]] = defaultdict(list)
        for record in self.records(self.max_records):
            if record.domain.lower() == domain.lower():
                groups[record.signature].append(record)

        ranked = []
        for signature, group in groups.items():
            if len(group) < self.min_samples:
                continue
            sample = group[0]
            ranked.append(RankedConfiguration(
                signature=signature,
                circuit_type=sample.circuit_type,
                processing_depth=sample.processing_depth,
                enhanced_mode=sample.enhanced_mode,
                average_score=round(mean(r.quality.overall for r in group), 2),
                sample_size=len(group),
                confidence=min(len(group) / 10.0, 1.0),
            ))

        ranked.sort(key=lambda r: (-r.average_score, -r.sample_size, r.signature))
        return ranked[:limit]

    def find_similar_questions(self, question: str, limit: int = 5, min_similarity: float = 0.2) -> List[LearningRecord]:
        """Earlier records whose questions share keywords with this one"""
        target = word_set(question)
        scored = []
        for record in self.records(self.max_records):
            score = jaccard(target, word_set(record.question))
            if score >= min_similarity:
                scored.append((score, record))
        scored.sort(key=lambda pair: (-pair[0], -pair[1].quality.overall))
        return [record for _, record in scored[:limit]]

    def learning_stats(self) -> Dict:
        records = self.records(self.max_records)
        domains: Dict[str, int] = defaultdict(int)
        for record in records:
            domains[record.domain] += 1
        return {
            "total_records": len(records),
            "domains": dict(domains),
            "average_score": round(mean(r.quality.overall for r in records), 2) if records else 0.0,
            "high_quality_runs": sum(1 for r in records if "high-quality" in r.tags),
        }


class InMemoryLearningStore(LearningStore):
    """Process-local store"""

    def __init__(self, max_records: int = 10000, min_samples: int = 3):
        super().__init__(max_records, min_samples)
        self._lock = threading.Lock()
        self._records: List[LearningRecord] = []

    def _write(self, record: LearningRecord):
        with self._lock:
            self._records.append(record)

    def records(self, limit: Optional[int] = None) -> List[LearningRecord]:
        with self._lock:
            snapshot = list(self._records)
        return snapshot[-limit:] if limit else snapshot


class JsonlLearningStore(LearningStore):
    """Store backed by a JSON Lines file, one record per line"""

    def __init__(self, path: str, max_records: int = 10000, min_samples: int = 3):
        super().__init__(max_records, min_samples)
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def _write(self, record: LearningRecord):
        line = record.model_dump_json() + "\n"
        with self._lock:
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(line)
                f.flush()

    def records(self, limit: Optional[int] = None) -> List[LearningRecord]:
        if not self.path.exists():
            return []

        with open(self.path, "r", encoding="utf-8") as f:
            lines = f.readlines()
        if limit:
            lines = lines[-limit:]

        records = []
        for number, line in enumerate(lines, 1):
            line = line.strip()
            if not line:
                continue
            try:
                records.append(LearningRecord.model_validate(json.loads(line)))
            except (json.JSONDecodeError, PydanticValidationError) as e:
                logger.warning(f"Skipping corrupt learning record at line {number}: {e}")
        return records


def create_store(store_path: str = "", max_records: int = 10000, min_samples: int = 3) -> LearningStore:
    if store_path:
        logger.info(f"Using JSONL learning store at {store_path}")
        return JsonlLearningStore(store_path, max_records, min_samples)
    return InMemoryLearningStore(max_records, min_samples)
