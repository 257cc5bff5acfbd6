from tripmemories.core.geo import GeoPoint
from tripmemories.vacation.dbscan import GeoDbscanHelper


def _identity(p: GeoPoint) -> GeoPoint:
    return p


def test_two_dense_groups_and_one_outlier():
    berlin = [GeoPoint(52.52 + i * 0.001, 13.405) for i in range(5)]
    munich = [GeoPoint(48.137, 11.575 + i * 0.001) for i in range(3)]
    stray = GeoPoint(40.0, 0.0)

    result = GeoDbscanHelper().cluster(berlin + [stray] + munich, eps_km=0.3, min_samples=3, get_point=_identity)

    assert result.clusters == [berlin, munich]
    assert result.noise == [stray]


def test_too_few_items_are_all_noise():
    points = [GeoPoint(52.52, 13.405), GeoPoint(52.5201, 13.405)]

    result = GeoDbscanHelper().cluster(points, eps_km=1.0, min_samples=3, get_point=_identity)

    assert result.clusters == []
    assert result.noise == points


def test_empty_input():
    result = GeoDbscanHelper().cluster([], eps_km=1.0, min_samples=3, get_point=_identity)

    assert result.clusters == [] and result.noise == []


def test_border_point_joins_cluster():
    # The last point is within eps of one core point only.
    core = [GeoPoint(52.52, 13.405 + i * 0.001) for i in range(3)]
    border = GeoPoint(52.52, 13.405 + 0.0055)

    result = GeoDbscanHelper().cluster([border] + core, eps_km=0.3, min_samples=3, get_point=_identity)

    assert len(result.clusters) == 1
    assert set(result.clusters[0]) == set(core) | {border}
    assert result.noise == []
