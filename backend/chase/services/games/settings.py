from dataclasses import dataclass, fields


@dataclass(frozen=True)
class GameSettings:
    reveal_interval_ms: int = 120000
    reveal_tick_sec: float = 1.0
    catch_radius_m: float = 50.0
    bonus_area_count: int = 3
    bonus_area_radius_m: float = 25.0
    bonus_edge_margin_m: float = 50.0
    bonus_min_separation_m: float = 100.0
    bonus_max_attempts: int = 50
    bonus_reveal_ms: int = 5000
    location_update_interval_ms: int = 1000

    @classmethod
    def from_mapping(cls, config):
        """Build settings from a Flask config (upper-case keys); missing keys keep defaults."""
        values = {}
        for f in fields(cls):
            key = f.name.upper()
            if key in config:
                values[f.name] = type(f.default)(config[key])
        return cls(**values)
