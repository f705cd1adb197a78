"""Random bonus-area placement inside a circular game area."""
import math
import random
import uuid
from typing import List

from chase.models import Area, BonusArea, Coordinate
from .geometry import distance_between, offset_point


class BonusAreaGenerator:
    def __init__(self, radius_m=25.0, edge_margin_m=50.0, min_separation_m=100.0,
                 max_attempts=50, rng=None):
        self.radius_m = radius_m
        self.edge_margin_m = edge_margin_m
        self.min_separation_m = min_separation_m
        self.max_attempts = max_attempts
        self.rng = rng or random.Random()

    @classmethod
    def from_settings(cls, settings, rng=None):
        return cls(
            radius_m=settings.bonus_area_radius_m,
            edge_margin_m=settings.bonus_edge_margin_m,
            min_separation_m=settings.bonus_min_separation_m,
            max_attempts=settings.bonus_max_attempts,
            rng=rng,
        )

    def sample_point(self, area: Area) -> Coordinate:
        """Uniform random point in the shrunk circle that keeps a bonus area off the edge."""
        inner = max(0.0, area.radius_meters - self.radius_m - self.edge_margin_m)
        angle = self.rng.random() * 2 * math.pi
        # sqrt keeps the density uniform over the disc, not clustered at the center
        dist = math.sqrt(self.rng.random()) * inner
        lat, lon = offset_point(
            area.center.latitude, area.center.longitude,
            dist * math.cos(angle), dist * math.sin(angle),
        )
        return Coordinate(lat, lon)

    def _far_enough(self, candidate: Coordinate, accepted: List[BonusArea]) -> bool:
        return all(distance_between(candidate, b.center) >= self.min_separation_m for b in accepted)

    def generate(self, area: Area, count: int = 3) -> List[BonusArea]:
        """Place up to ``count`` bonus areas; slots that run out of attempts are skipped."""
        accepted: List[BonusArea] = []
        for _ in range(count):
            for _attempt in range(self.max_attempts):
                candidate = self.sample_point(area)
                if self._far_enough(candidate, accepted):
                    accepted.append(BonusArea(
                        id=str(uuid.uuid4()),
                        center=candidate,
                        radius_meters=self.radius_m,
                    ))
                    break
        return accepted
