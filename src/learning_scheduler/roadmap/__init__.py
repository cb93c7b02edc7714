from .models import Roadmap, RoadmapSubtopic, RoadmapTopic, TopicPerformance
from .sequencer import Chromosome, RoadmapSequencer, SequencingResult, performances_from_patterns

__all__ = [
    "Chromosome",
    "Roadmap",
    "RoadmapSequencer",
    "RoadmapSubtopic",
    "RoadmapTopic",
    "SequencingResult",
    "TopicPerformance",
    "performances_from_patterns",
]
