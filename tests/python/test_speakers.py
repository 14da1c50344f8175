from pytest import approx

from convergent.sim.core.rng import DeterministicRng
from convergent.sim.systems.speakers import MAX_SPEAKERS, select_speakers, speak_probability


def test_speak_probability_is_clamped():
    assert speak_probability(1.0, 0.1) == approx(0.95)
    assert speak_probability(0.0, -0.5) == approx(0.05)
    assert speak_probability(0.6, 0.1) == approx(0.7)


def test_empty_cluster_has_no_speakers():
    assert select_speakers([], {}, 0.6, DeterministicRng(1)) == []


def test_speakers_are_members_capped_and_unique():
    rng = DeterministicRng(8)
    cluster = ["A", "B", "C", "D", "E", "F"]
    for _ in range(100):
        speakers = select_speakers(cluster, {}, 1.0, rng)
        assert 1 <= len(speakers) <= MAX_SPEAKERS
        assert len(set(speakers)) == len(speakers)
        assert set(speakers) <= set(cluster)


def test_non_empty_cluster_always_gets_a_speaker():
    rng = DeterministicRng(2)
    for _ in range(100):
        assert len(select_speakers(["A", "B"], {"A": -1.0, "B": -1.0}, 0.1, rng)) >= 1
