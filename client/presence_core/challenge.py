"""
Liveliness challenge catalog and selector.
"""

import random
from enum import Enum


class LivelinessChallenge(Enum):
    BLINK = "Blink your eyes"
    SMILE = "Smile"
    TURN_LEFT = "Turn your head slightly to the left"
    TURN_RIGHT = "Turn your head slightly to the right"

    @property
    def prompt(self) -> str:
        return self.value


CATALOG = tuple(LivelinessChallenge)


def select_challenge(rng=random) -> LivelinessChallenge:
    """Uniform pick from the catalog. May repeat across sessions."""
    return rng.choice(CATALOG)
