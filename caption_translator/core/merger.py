"""Continuation merger: join caption fragments into spoken sentences.

WHY: Players often split one spoken sentence across several cues
("I think" … "that works"). Showing each cue alone makes the translated
line read like nonsense. The merger decides, from timing and a couple of
lexical cues, whether newly settled text continues the current line or
starts a new one.

HOW: ContinuationPolicy holds the tunable heuristic; ContinuationMerger
applies it to the settled text and the prior DisplayedLine:
  continuation = elapsed < threshold
                 AND a prior line exists
                 AND (prior ends in "," or " "
                      OR (prior does not end in . ! ?
                          AND the new text does not start capitalised))

RULES:
- A settled text equal to the current line text is a no-op (returns None)
- Continuation output is ``prior + " " + settled``; otherwise ``settled``
- "Not capitalised" means first char == first char.lower(), so digits
  and symbols count as lower-case
- The lower-case heuristic can be switched off (require_lowercase_start)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from caption_translator.config import DEFAULT_CONTINUATION_THRESHOLD_S
from caption_translator.core.models import DisplayedLine

logger = logging.getLogger(__name__)


@dataclass
class ContinuationPolicy:
    """Tunable continuation heuristic.

    Attributes:
        threshold_ms: Maximum time since the prior line was shown.
        continuation_chars: Prior-line endings that always continue.
        sentence_end_chars: Prior-line endings that never continue
            (unless in continuation_chars).
        require_lowercase_start: When True, an unterminated prior line only
            continues if the new text does not start capitalised. When
            False, any unterminated prior line continues.
    """

    threshold_ms: float = DEFAULT_CONTINUATION_THRESHOLD_S * 1000.0
    continuation_chars: str = ", "
    sentence_end_chars: str = ".!?"
    require_lowercase_start: bool = True

    @classmethod
    def from_seconds(cls, seconds: Optional[float], **kwargs) -> "ContinuationPolicy":
        """Build a policy from a user threshold in seconds (None → default)."""
        if seconds is None:
            seconds = DEFAULT_CONTINUATION_THRESHOLD_S
        return cls(threshold_ms=float(seconds) * 1000.0, **kwargs)

    def is_continuation(self, prior_text: str, elapsed_ms: float, new_text: str) -> bool:
        if not prior_text or not new_text:
            return False
        if elapsed_ms >= self.threshold_ms:
            return False

        last_char = prior_text[-1]
        if last_char in self.continuation_chars:
            return True
        if last_char in self.sentence_end_chars:
            return False
        if not self.require_lowercase_start:
            return True
        first_char = new_text[0]
        return first_char == first_char.lower()


@dataclass(frozen=True)
class MergeDecision:
    """The text to display next and whether it extends the prior line."""

    text: str
    continued: bool


class ContinuationMerger:
    """Decide between "extend the current line" and "start a new line"."""

    def __init__(self, policy: Optional[ContinuationPolicy] = None) -> None:
        self.policy = policy or ContinuationPolicy()

    def merge(
        self,
        settled: str,
        current: Optional[DisplayedLine],
        now_ms: float,
        previous: Optional[DisplayedLine] = None,
    ) -> Optional[MergeDecision]:
        """Merge settled text with the prior line.

        Args:
            settled: Trimmed, non-empty settled caption text.
            current: The current DisplayedLine, or None when nothing is shown.
            now_ms: Engine clock time of the decision.
            previous: Line to continue when ``current`` is None (the last
                line shown before the overlay was cleared).

        Returns:
            The MergeDecision, or None when ``settled`` repeats the current
            line text (nothing to display or translate).
        """
        if not settled:
            return None
        if current is not None and settled == current.text:
            logger.debug("Duplicate caption ignored: %r", settled)
            return None

        prior = current if current is not None else previous

        if prior is not None and self.policy.is_continuation(
            prior.text, now_ms - prior.first_shown_at_ms, settled
        ):
            combined = "{} {}".format(prior.text, settled)
            logger.debug("Continuation detected, combined: %r", combined)
            return MergeDecision(text=combined, continued=True)

        return MergeDecision(text=settled, continued=False)
