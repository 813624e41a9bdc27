import pytest

from core.spatial import GeometryService
from tracking.distance import DistanceAccumulator, distance_km
from sensing_fakes import sample


def test_haversine_one_degree_of_latitude() -> None:
    km = GeometryService.haversine_distance(0.0, 10.0, 1.0, 10.0)
    assert km == pytest.approx(111.195, abs=0.01)


def test_haversine_units() -> None:
    km = GeometryService.haversine_distance(51.5007, -0.1246, 40.6892, -74.0445)
    meters = GeometryService.haversine_distance(
        51.5007, -0.1246, 40.6892, -74.0445, unit="meters"
    )
    miles = GeometryService.haversine_distance(
        51.5007, -0.1246, 40.6892, -74.0445, unit="miles"
    )
    assert km == pytest.approx(5574.8, rel=1e-3)
    assert meters == pytest.approx(km * 1000)
    assert miles == pytest.approx(km / 1.609344)


def test_haversine_rejects_unknown_unit() -> None:
    with pytest.raises(ValueError):
        GeometryService.haversine_distance(0, 0, 1, 1, unit="furlongs")


@pytest.mark.parametrize(
    ("a", "b"),
    [
        ((40.7128, -74.0060), (34.0522, -118.2437)),
        ((-33.8688, 151.2093), (35.6762, 139.6503)),
        ((89.9, 0.0), (-89.9, 179.9)),
        ((12.5, 179.99), (12.5, -179.99)),
    ],
)
def test_distance_is_symmetric(a: tuple[float, float], b: tuple[float, float]) -> None:
    first = sample(*a)
    second = sample(*b)
    assert distance_km(first, second) == distance_km(second, first)


def test_distance_to_self_is_zero() -> None:
    point = sample(48.8566, 2.3522)
    assert distance_km(point, point) == 0.0


def test_accumulator_total_never_decreases() -> None:
    accumulator = DistanceAccumulator()
    path = [
        sample(40.7128, -74.0060),
        sample(40.7138, -74.0060),
        sample(40.7138, -74.0060),
        sample(40.7128, -74.0050),
        sample(40.7128, -74.0060),
    ]
    totals = []
    for prev, curr in zip(path, path[1:]):
        segment = accumulator.accumulate(prev, curr)
        assert segment >= 0.0
        totals.append(accumulator.total_distance_km)

    assert totals == sorted(totals)
    assert accumulator.segments == 4
    assert accumulator.total_distance_km == pytest.approx(sum(
        distance_km(p, c) for p, c in zip(path, path[1:])
    ))
