"""
Quiz Performance Analyzer

Aggregates answered quiz questions into per-topic and per-partition accuracy,
classifies topics as weak, strong or neutral, and decides whether a learner
has engaged with every partition they have reached.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping
from collections import OrderedDict

from content.topics import topic_label
from models.schemas import QuizQuestion


WEAK_THRESHOLD = 0.60
STRONG_THRESHOLD = 0.80


@dataclass
class TopicStats:
    """Accuracy for one topic"""
    topic: str
    total: int = 0
    correct: int = 0

    @property
    def accuracy(self) -> float:
        return self.correct / self.total if self.total else 0.0

    @property
    def label(self) -> str:
        return topic_label(self.topic)


@dataclass
class PartitionStats:
    """Accuracy over one partition's questions"""
    partition_index: int
    total: int = 0
    correct: int = 0

    @property
    def accuracy(self) -> float:
        return self.correct / self.total if self.total else 0.0


@dataclass
class PerformanceReport:
    """Full analysis of one collection's quiz results"""
    total: int
    correct: int
    topic_stats: List[TopicStats] = field(default_factory=list)
    weak_topics: List[TopicStats] = field(default_factory=list)
    strong_topics: List[TopicStats] = field(default_factory=list)
    partition_stats: List[PartitionStats] = field(default_factory=list)

    @property
    def incorrect(self) -> int:
        return self.total - self.correct

    @property
    def score(self) -> float:
        """Overall score as a percentage"""
        return round(self.correct / self.total * 100, 2) if self.total else 0.0


def classify(accuracy: float) -> str:
    """weak below 0.60, strong from 0.80, neutral in between"""
    if accuracy < WEAK_THRESHOLD:
        return "weak"
    if accuracy >= STRONG_THRESHOLD:
        return "strong"
    return "neutral"


def is_collection_complete(answered_by_partition: Mapping[int, int], through_partition: int) -> bool:
    """
    True when every partition 1..through_partition has at least one answered question.

    Partial engagement is enough; a partition missing from the mapping counts
    as unanswered.
    """
    if through_partition < 1:
        return False
    return all(
        answered_by_partition.get(index, 0) > 0
        for index in range(1, through_partition + 1)
    )


class QuizPerformanceAnalyzer:
    """Per-topic and per-partition accuracy with weak/strong classification"""

    def analyze(self, questions: Iterable[QuizQuestion]) -> PerformanceReport:
        topics: Dict[str, TopicStats] = OrderedDict()
        partitions: Dict[int, PartitionStats] = {}
        total = 0
        correct = 0

        for question in questions:
            is_correct = question.user_answer == question.correct_answer
            total += 1
            correct += int(is_correct)

            stats = topics.setdefault(question.topic, TopicStats(topic=question.topic))
            stats.total += 1
            stats.correct += int(is_correct)

            part = partitions.setdefault(
                question.partition_index,
                PartitionStats(partition_index=question.partition_index),
            )
            part.total += 1
            part.correct += int(is_correct)

        # stable sort keeps first-seen order among equal accuracies
        sorted_topics = sorted(topics.values(), key=lambda t: t.accuracy)

        return PerformanceReport(
            total=total,
            correct=correct,
            topic_stats=sorted_topics,
            weak_topics=[t for t in sorted_topics if classify(t.accuracy) == "weak"],
            strong_topics=[t for t in sorted_topics if classify(t.accuracy) == "strong"],
            partition_stats=[partitions[index] for index in sorted(partitions)],
        )

    @staticmethod
    def taken_partitions(questions: Iterable[QuizQuestion]) -> List[QuizQuestion]:
        """Questions belonging to partitions with at least one recorded answer"""
        questions = list(questions)
        taken = {q.partition_index for q in questions if q.answered}
        return [q for q in questions if q.partition_index in taken]
