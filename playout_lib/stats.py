# --- playout_lib/stats.py ---
"""
playout_lib/stats.py: Small statistical helpers shared by the analyzers.

This module contains:
- cluster_values / cluster_objects: 1-D tolerance clustering (median centers).
- median, percentile, mean, std: thin wrappers that tolerate empty input.
- js_round / y_key: half-up rounding and the normalized Y join key.
"""
import math

import numpy as np


def median(values):
    """Median of the values; mean of the middle two when the count is even."""
    if not values:
        return 0.0
    return float(np.median(np.asarray(values, dtype=float)))


def mean(values):
    return float(np.mean(np.asarray(values, dtype=float))) if len(values) else 0.0


def std(values):
    """Population standard deviation."""
    return float(np.std(np.asarray(values, dtype=float))) if len(values) else 0.0


def percentile(sorted_values, p):
    """Nearest-rank percentile over an already sorted sequence."""
    if not sorted_values:
        return 0.0
    n = len(sorted_values)
    return sorted_values[min(int(math.floor(n * p / 100)), n - 1)]


def js_round(value):
    """Rounds half up (towards +inf), so 2.5 -> 3 and -2.5 -> -2."""
    return math.floor(value + 0.5)


def y_key(y, tolerance):
    """Normalizes a Y coordinate to the nearest multiple of the tolerance."""
    if tolerance <= 0:
        return round(y, 2)
    return round(js_round(y / tolerance) * tolerance, 2)


def cluster_objects(items, key, tolerance):
    """
    Groups objects whose `key` values are within `tolerance` of the previous
    value in sorted order. Returns a list of clusters (lists of objects) in
    ascending key order. Equal keys keep their input order.
    """
    ordered = sorted(items, key=key)
    clusters = []
    for item in ordered:
        if clusters and abs(key(item) - key(clusters[-1][-1])) <= tolerance:
            clusters[-1].append(item)
        else:
            clusters.append([item])
    return clusters


def cluster_values(values, tolerance):
    """
    1-D tolerance clustering of numeric values.

    Returns a list of dicts with `center` (median of members), `values`
    (sorted members) and `count`. The result only depends on the multiset
    of values, never on their input order.
    """
    clusters = cluster_objects([float(v) for v in values], lambda v: v, tolerance)
    return [{"center": median(c), "values": c, "count": len(c)} for c in clusters]


def nearest_cluster_index(value, centers):
    """Index of the center closest to value, or None if there are none."""
    if not centers:
        return None
    return min(range(len(centers)), key=lambda i: abs(centers[i] - value))


def coefficient_of_variation(values):
    m = mean(values)
    return std(values) / m if m else 0.0
