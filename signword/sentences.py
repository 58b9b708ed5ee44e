"""
Sentence detection over a rolling history of recognized words.
"""
from collections import deque
from typing import Iterable, List, Optional, Sequence

DEFAULT_HISTORY_SIZE = 5

DEFAULT_TARGET_SENTENCES = [
    "what is your name",
    "how are you",
    "i need water",
    "good morning",
    "where is the toilet",
    "i am fine",
    "thank you",
    "please help me",
    "nice to meet you",
    "i love you",
]


class SentenceMatcher:
    """
    Keeps the last few recognized words and looks for known phrases in them.

    Matching is first-match-wins in target list order: if several phrases
    occur in the history, the one listed first is returned, not the longest.
    """

    def __init__(self, targets: Optional[Sequence[str]] = None,
                 history_size: int = DEFAULT_HISTORY_SIZE):
        """
        Initialize the matcher.

        Args:
            targets: Ordered candidate phrases; defaults to the built-in list
            history_size: Number of words kept in the history
        """
        if history_size < 1:
            raise ValueError(f"history_size must be at least 1, got {history_size}")
        self.history_size = history_size
        self.history: deque[str] = deque(maxlen=history_size)
        self.targets: List[str] = []
        self.add_targets(DEFAULT_TARGET_SENTENCES if targets is None else targets)
        self._fixed_count = len(self.targets)

    def add_targets(self, phrases: Iterable[str]) -> None:
        """Append phrases (lower-cased) to the candidate list, skipping duplicates."""
        for phrase in phrases:
            phrase = phrase.strip().lower()
            if phrase and phrase not in self.targets:
                self.targets.append(phrase)

    def set_label_targets(self, labels: Iterable[str]) -> None:
        """
        Replace the label-derived candidates with the multi-word labels given.

        Configured phrases always come first and are never dropped; phrases
        from labels that no longer exist are.
        """
        del self.targets[self._fixed_count:]
        self.add_targets(label for label in labels if " " in label.strip())

    def push_word(self, word: str) -> List[str]:
        """Append a word to the history, dropping the oldest past capacity."""
        self.history.append(word.lower())
        return list(self.history)

    def clear(self) -> None:
        self.history.clear()

    def check_match(self, history: Optional[Sequence[str]] = None,
                    target_phrases: Optional[Sequence[str]] = None) -> Optional[str]:
        """
        Find the first target phrase contained in the joined history.

        Args:
            history: Words to search; defaults to the matcher's own history
            target_phrases: Ordered candidates; defaults to the matcher's targets

        Returns:
            The first matching phrase (lower-cased), or None
        """
        words = self.history if history is None else history
        targets = self.targets if target_phrases is None else target_phrases

        recent = " ".join(words).lower()
        for phrase in targets:
            phrase = phrase.strip().lower()
            if phrase and phrase in recent:
                return phrase
        return None


def display_sentence(phrase: str) -> str:
    """Capitalize the first letter of a matched phrase for display."""
    return phrase[:1].upper() + phrase[1:]
