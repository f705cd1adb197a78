import pytest

from chase.models import BonusArea, Coordinate, Player, Role
from chase.services.games.proximity import (
    CatchOutcome, evaluate_catch, find_entered_bonus_area, is_out_of_bounds,
)
from conftest import AREA, at


def pursuer(**kwargs):
    kwargs.setdefault('location', at())
    return Player(id='p1', handle='s1', name='Hunter', role=Role.PURSUER, **kwargs)


def evader(**kwargs):
    kwargs.setdefault('location', at())
    return Player(id='e1', handle='s2', name='Runner', role=Role.EVADER, **kwargs)


def test_catch_at_same_spot():
    result = evaluate_catch(pursuer(), evader())
    assert result.captured
    assert result.distance == pytest.approx(0.0, abs=1e-6)
    assert result.to_dict() == {'success': True, 'captured': True, 'distance': result.distance}


def test_catch_within_threshold():
    result = evaluate_catch(pursuer(), evader(location=at(north_m=45)))
    assert result.outcome is CatchOutcome.CAPTURED
    assert result.distance <= 50


@pytest.mark.parametrize('north_m', [55, 75, 99])
def test_catch_too_far_reports_distance(north_m):
    result = evaluate_catch(pursuer(), evader(location=at(north_m=north_m)))
    assert result.outcome is CatchOutcome.TOO_FAR
    assert 50 < result.distance <= 100
    payload = result.to_dict()
    assert payload['captured'] is False
    assert payload['success'] is False
    assert payload['distance'] == pytest.approx(result.distance)


def test_validation_order():
    # Each failing check is reported before the ones after it
    assert evaluate_catch(evader(), evader()).outcome is CatchOutcome.NOT_PURSUER
    assert evaluate_catch(pursuer(), None).outcome is CatchOutcome.TARGET_NOT_FOUND
    assert evaluate_catch(pursuer(), pursuer()).outcome is CatchOutcome.TARGET_NOT_EVADER
    assert evaluate_catch(pursuer(is_out_of_bounds=True), evader(is_captured=True)).outcome is CatchOutcome.ALREADY_CAPTURED
    assert evaluate_catch(pursuer(is_out_of_bounds=True, location=None), evader()).outcome is CatchOutcome.OUT_OF_BOUNDS
    assert evaluate_catch(pursuer(location=None), evader()).outcome is CatchOutcome.LOCATION_UNAVAILABLE
    assert evaluate_catch(pursuer(), evader(location=None)).outcome is CatchOutcome.LOCATION_UNAVAILABLE


def test_failed_validation_is_typed():
    payload = evaluate_catch(pursuer(is_out_of_bounds=True), evader()).to_dict()
    assert payload == {'success': False, 'error': 'You are out of bounds', 'code': 'OUT_OF_BOUNDS'}


def test_out_of_bounds_exactly_beyond_radius():
    assert not is_out_of_bounds(at(north_m=100), AREA)
    assert not is_out_of_bounds(at(north_m=490), AREA)
    assert is_out_of_bounds(at(north_m=510), AREA)
    assert not is_out_of_bounds(at(north_m=10_000), None)


def _bonus(bonus_id, north_m, active=True):
    loc = at(north_m=north_m)
    return BonusArea(bonus_id, Coordinate(loc.latitude, loc.longitude), 25.0, active)


def test_bonus_entry_first_match_only():
    areas = [_bonus('a', 0), _bonus('b', 10)]
    hit = find_entered_bonus_area(evader(), at(north_m=5), areas)
    assert hit.id == 'a'


def test_bonus_ignores_inactive_and_far_areas():
    areas = [_bonus('a', 0, active=False), _bonus('b', 200), _bonus('c', 20)]
    assert find_entered_bonus_area(evader(), at(), areas).id == 'c'
    assert find_entered_bonus_area(evader(), at(north_m=-100), areas) is None


def test_pursuers_never_trigger_bonus():
    assert find_entered_bonus_area(pursuer(), at(), [_bonus('a', 0)]) is None
