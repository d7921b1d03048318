import random

from presence_core.challenge import CATALOG, LivelinessChallenge, select_challenge


def test_catalog_has_the_four_actions():
    assert {c.name for c in CATALOG} == {"BLINK", "SMILE", "TURN_LEFT", "TURN_RIGHT"}
    assert LivelinessChallenge.SMILE.prompt == "Smile"


def test_selection_covers_catalog_and_may_repeat():
    rng = random.Random(1234)
    picks = [select_challenge(rng) for _ in range(200)]

    assert set(picks) == set(CATALOG)
    assert len(picks) > len(set(picks))


def test_selection_is_uniform_choice_over_catalog():
    class RecordingRng:
        def __init__(self):
            self.seen = None

        def choice(self, seq):
            self.seen = seq
            return seq[-1]

    rng = RecordingRng()

    assert select_challenge(rng) is CATALOG[-1]
    assert tuple(rng.seen) == CATALOG
