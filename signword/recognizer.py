"""
Word and sentence recognition on top of the trained classifier.
"""
import logging
from typing import Optional

from .config import Cfg
from .controller import ModelController
from .sentences import SentenceMatcher, display_sentence
from .types import ImageInput, Prediction, RecognitionResult

logger = logging.getLogger(__name__)

UNRECOGNIZED = "Unrecognized"
DEFAULT_CONFIDENCE_THRESHOLD = 0.8


class WordRecognizer:
    """
    Turns classifier predictions into recognized words and sentences.

    A prediction is accepted only when its confidence is strictly above the
    threshold. Accepted words go into the sentence history; rejected ones are
    reported as "Unrecognized" with the complementary confidence and leave
    the history and the last detected sentence alone.
    """

    def __init__(self, controller: ModelController, matcher: Optional[SentenceMatcher] = None,
                 confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
                 k: Optional[int] = None):
        self.controller = controller
        self.matcher = matcher or SentenceMatcher()
        self.confidence_threshold = confidence_threshold
        self.k = k
        self.sentence: Optional[str] = None

    @classmethod
    def from_config(cls, cfg: Cfg, controller: ModelController) -> "WordRecognizer":
        matcher = SentenceMatcher(cfg.sentences.targets, history_size=cfg.sentences.history_size)
        return cls(controller, matcher, confidence_threshold=cfg.classifier.confidence_threshold,
                   k=cfg.classifier.k)

    def refresh_targets(self) -> None:
        """Sync the sentence targets with the controller's current multi-word labels."""
        self.matcher.set_label_targets(self.controller.labels)

    def reset_history(self) -> None:
        self.matcher.clear()
        self.sentence = None

    async def recognize(self, image: ImageInput) -> RecognitionResult:
        """Classify one snapshot and update the sentence state."""
        prediction = await self.controller.predict(image, self.k)
        return self.accept(prediction)

    def accept(self, prediction: Prediction) -> RecognitionResult:
        """Apply the confidence threshold to a prediction."""
        if prediction.confidence <= self.confidence_threshold:
            logger.debug(f"Rejected '{prediction.label}' at {prediction.confidence:.2f}")
            return RecognitionResult(
                word=UNRECOGNIZED,
                confidence=1 - prediction.confidence,
                accepted=False,
                sentence=self.sentence,
                history=list(self.matcher.history),
            )

        self.refresh_targets()
        history = self.matcher.push_word(prediction.label)
        match = self.matcher.check_match()
        self.sentence = display_sentence(match) if match else None
        if match:
            logger.info(f"Detected sentence: {self.sentence}")

        return RecognitionResult(
            word=prediction.label,
            confidence=prediction.confidence,
            accepted=True,
            sentence=self.sentence,
            history=history,
        )
