import random

from playout_lib.stats import cluster_values, js_round, median, percentile, y_key


def test_cluster_values_is_order_invariant():
    values = [50.0, 51.0, 150.0, 149.5, 250.0, 300.0, 52.5, 301.0]
    expected = cluster_values(sorted(values), 2.0)

    rng = random.Random(7)
    for _ in range(10):
        shuffled = values[:]
        rng.shuffle(shuffled)
        assert cluster_values(shuffled, 2.0) == expected


def test_cluster_values_uses_median_centers():
    clusters = cluster_values([10, 11, 12, 40], 1.5)

    assert [c["count"] for c in clusters] == [3, 1]
    assert clusters[0]["center"] == 11.0
    assert clusters[1]["center"] == 40.0


def test_median_and_percentile_tolerate_empty_input():
    assert median([]) == 0.0
    assert percentile([], 50) == 0.0
    assert median([1, 2, 3, 4]) == 2.5


def test_js_round_rounds_half_up():
    assert js_round(2.5) == 3
    assert js_round(-2.5) == -2
    assert js_round(1.49) == 1


def test_y_key_normalizes_close_coordinates():
    assert y_key(100.0, 1.2) == y_key(100.04, 1.2)
    assert y_key(100.0, 1.2) != y_key(105.0, 1.2)
