"""Random, duplicate-free question selection for a new quiz session."""

import random

from .config import EVENTS
from .errors import InvalidInput, NoQuestionsAvailable


class QuestionSampler:
    def __init__(self, bank, rng=None):
        self.bank = bank
        # pass random.Random(seed) for reproducible draws
        self.rng = rng or random.Random()

    def sample(self, event, count):
        """Draw up to ``count`` distinct active questions of ``event``.

        Returns fewer when the pool is smaller; raises NoQuestionsAvailable when
        it is empty.
        """
        if event not in EVENTS:
            raise InvalidInput(f'Unknown event {event!r}', events=list(EVENTS))
        if isinstance(count, bool) or not isinstance(count, int) or count <= 0:
            raise InvalidInput('Question count must be a positive integer')
        ids = self.bank.active_ids(event)
        if not ids:
            raise NoQuestionsAvailable(event=event)
        chosen = self.rng.sample(ids, min(count, len(ids)))
        return self.bank.get_many(chosen)
