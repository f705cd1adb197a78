import itertools
import random

from chase.models import Area, Coordinate
from chase.services.games.bonus import BonusAreaGenerator
from chase.services.games.geometry import distance_between
from conftest import AREA, CENTER


def test_generates_requested_count_in_roomy_area():
    generator = BonusAreaGenerator(rng=random.Random(1))
    areas = generator.generate(AREA, 3)
    assert len(areas) == 3
    assert len({a.id for a in areas}) == 3
    assert all(a.radius_meters == 25 and a.is_active for a in areas)


def test_bonus_areas_stay_inside_margin():
    generator = BonusAreaGenerator(rng=random.Random(2))
    for _ in range(20):
        for bonus in generator.generate(AREA, 3):
            # 500 - 25 - 50, plus slack for the flat-earth conversion
            assert distance_between(bonus.center, CENTER) <= 425 * 1.01


def test_bonus_areas_pairwise_separated():
    generator = BonusAreaGenerator(rng=random.Random(3))
    for _ in range(20):
        areas = generator.generate(AREA, 3)
        for a, b in itertools.combinations(areas, 2):
            assert distance_between(a.center, b.center) >= 100


def test_yields_fewer_when_separation_cannot_be_met():
    # Inner radius is zero, so every candidate lands on the center
    tiny = Area(Coordinate(10.0, 10.0), 60.0)
    generator = BonusAreaGenerator(rng=random.Random(4))
    areas = generator.generate(tiny, 3)
    assert len(areas) == 1


def test_gives_up_after_max_attempts():
    calls = []

    class CountingRandom(random.Random):
        def random(self):
            calls.append(1)
            return super().random()

    tiny = Area(Coordinate(10.0, 10.0), 60.0)
    generator = BonusAreaGenerator(max_attempts=50, rng=CountingRandom(5))
    generator.generate(tiny, 3)
    # first slot succeeds on attempt one; the other two burn 50 attempts each, two draws per sample
    assert len(calls) == 2 * (1 + 50 + 50)
